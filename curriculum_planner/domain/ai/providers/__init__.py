"""Completion providers."""

from curriculum_planner.domain.ai.providers.gemini import GeminiProvider
from curriculum_planner.domain.ai.providers.openai import OpenAICompatibleProvider

__all__ = ["GeminiProvider", "OpenAICompatibleProvider"]
