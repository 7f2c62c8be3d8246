from typing import Any, Sequence
from urllib import parse

from curriculum_planner.core.errors import ConfigurationError, UpstreamError
from curriculum_planner.domain.ai.providers.common import post_json


class GeminiProvider:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_sec: int = 45,
    ) -> None:
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        self.api_key = api_key
        self.model = model
        self.timeout_sec = timeout_sec

    def complete(
        self,
        *,
        messages: Sequence[dict[str, str]],
        temperature: float,
    ) -> str:
        endpoint = (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            f"{parse.quote(self.model)}:generateContent?key={parse.quote(self.api_key)}"
        )
        decoded = post_json(
            provider="gemini",
            endpoint=endpoint,
            payload=self._build_payload(messages, temperature),
            headers={},
            timeout_sec=self.timeout_sec,
        )
        return self._extract_text(decoded)

    @staticmethod
    def _build_payload(messages: Sequence[dict[str, str]], temperature: float) -> dict[str, Any]:
        # Gemini는 system 역할이 없어 systemInstruction으로 분리하고 assistant는 model로 매핑한다.
        system_parts = [{"text": msg["content"]} for msg in messages if msg["role"] == "system"]
        contents = [
            {
                "role": "model" if msg["role"] == "assistant" else "user",
                "parts": [{"text": msg["content"]}],
            }
            for msg in messages
            if msg["role"] != "system"
        ]
        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {"temperature": temperature},
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    @staticmethod
    def _extract_text(response_json: dict[str, Any]) -> str:
        candidates = response_json.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise UpstreamError("gemini_candidates_missing", kind="empty_output")

        first = candidates[0] if isinstance(candidates[0], dict) else {}
        content = first.get("content", {})
        parts = content.get("parts", [])
        if not isinstance(parts, list):
            raise UpstreamError("gemini_parts_missing", kind="empty_output")

        for part in parts:
            text = part.get("text") if isinstance(part, dict) else None
            if isinstance(text, str) and text.strip():
                return text

        raise UpstreamError("gemini_text_missing", kind="empty_output")
