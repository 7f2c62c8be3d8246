"""AI domain services and provider abstractions."""

from curriculum_planner.domain.ai.factory import build_ai_service
from curriculum_planner.domain.ai.service import AIService

__all__ = ["AIService", "build_ai_service"]
