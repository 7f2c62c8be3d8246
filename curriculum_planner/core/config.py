from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    env: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # gateway: OpenAI 호환 chat/completions 엔드포인트, gemini: Google Generative Language API
    ai_provider: Literal["gateway", "gemini"] = "gateway"
    ai_request_timeout_sec: int = 45
    ai_max_concurrency: int = 4
    ai_backpressure_acquire_timeout_ms: int = 200
    ai_max_attempts: int = 2
    ai_retry_backoff_ms: int = 500

    ai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("LOVABLE_API_KEY", "AI_GATEWAY_API_KEY"),
    )
    ai_base_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_model: str = "google/gemini-2.5-flash"

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"),
    )
    gemini_model: str = "gemini-2.5-flash"

    curriculum_temperature: float = 0.7
    chat_temperature: float = 0.8

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def credential_env_name(self) -> str:
        if self.ai_provider == "gemini":
            return "GEMINI_API_KEY"
        return "LOVABLE_API_KEY"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
