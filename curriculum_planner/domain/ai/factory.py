from curriculum_planner.core.config import Settings
from curriculum_planner.core.errors import ConfigurationError
from curriculum_planner.domain.ai.providers.gemini import GeminiProvider
from curriculum_planner.domain.ai.providers.openai import OpenAICompatibleProvider
from curriculum_planner.domain.ai.service import AIService


def build_ai_service(settings: Settings) -> AIService:
    primary = _build_primary_provider(settings)
    return AIService(
        primary=primary,
        max_concurrency=settings.ai_max_concurrency,
        acquire_timeout_ms=settings.ai_backpressure_acquire_timeout_ms,
    )


def _build_primary_provider(settings: Settings) -> GeminiProvider | OpenAICompatibleProvider:
    if settings.ai_provider == "gemini":
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_sec=settings.ai_request_timeout_sec,
        )

    if settings.ai_provider == "gateway":
        return OpenAICompatibleProvider(
            api_key=settings.ai_api_key,
            model=settings.ai_model,
            base_url=settings.ai_base_url,
            timeout_sec=settings.ai_request_timeout_sec,
            credential_name=settings.credential_env_name(),
        )

    raise ConfigurationError(f"unsupported_ai_provider:{settings.ai_provider}")
