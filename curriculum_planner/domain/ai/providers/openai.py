from typing import Any, Sequence

from curriculum_planner.core.errors import ConfigurationError, UpstreamError
from curriculum_planner.domain.ai.providers.common import post_json


class OpenAICompatibleProvider:
    """Provider for any OpenAI-style ``/chat/completions`` endpoint (the AI gateway included)."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout_sec: int = 45,
        credential_name: str = "LOVABLE_API_KEY",
    ) -> None:
        if not api_key:
            raise ConfigurationError(f"{credential_name} is not configured")
        if not base_url:
            raise ConfigurationError("AI_BASE_URL is not configured")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec

    def complete(
        self,
        *,
        messages: Sequence[dict[str, str]],
        temperature: float,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": msg["role"], "content": msg["content"]} for msg in messages],
            "temperature": temperature,
        }
        decoded = post_json(
            provider="gateway",
            endpoint=f"{self.base_url}/chat/completions",
            payload=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout_sec=self.timeout_sec,
        )
        return self._extract_text(decoded)

    @staticmethod
    def _extract_text(response_json: dict[str, Any]) -> str:
        choices = response_json.get("choices")
        if not isinstance(choices, list) or not choices:
            raise UpstreamError("gateway_choices_missing", kind="empty_output")

        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content")

        if isinstance(content, str) and content.strip():
            return content

        if isinstance(content, list):
            texts: list[str] = []
            for part in content:
                if isinstance(part, dict):
                    text = part.get("text")
                    if isinstance(text, str) and text.strip():
                        texts.append(text)
            if texts:
                return "\n".join(texts)

        raise UpstreamError("gateway_content_missing", kind="empty_output")
