from functools import lru_cache

from fastapi import Depends

from curriculum_planner.core.config import Settings, get_settings
from curriculum_planner.core.cors import build_cors_policy
from curriculum_planner.domain.ai import AIService, build_ai_service
from curriculum_planner.services.chat_assistant import ChatAssistant
from curriculum_planner.services.curriculum_planner import CurriculumPlanner


cors_policy = build_cors_policy(get_settings().cors_origins)


@lru_cache(maxsize=1)
def _cached_ai_service() -> AIService:
    return build_ai_service(get_settings())


def get_ai_service() -> AIService:
    return _cached_ai_service()


def get_curriculum_planner(
    settings: Settings = Depends(get_settings),
    ai_service: AIService = Depends(get_ai_service),
) -> CurriculumPlanner:
    return CurriculumPlanner(
        ai_service,
        temperature=settings.curriculum_temperature,
        max_attempts=settings.ai_max_attempts,
        retry_backoff_sec=settings.ai_retry_backoff_ms / 1000,
    )


def get_chat_assistant(
    settings: Settings = Depends(get_settings),
    ai_service: AIService = Depends(get_ai_service),
) -> ChatAssistant:
    return ChatAssistant(
        ai_service,
        temperature=settings.chat_temperature,
        max_attempts=settings.ai_max_attempts,
        retry_backoff_sec=settings.ai_retry_backoff_ms / 1000,
    )
