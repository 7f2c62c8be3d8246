"""Error taxonomy shared by the planner, the chat assistant and the HTTP layer.

Every error carries the public message returned to the caller separately from
the diagnostic reason that only goes to the log.
"""

from typing import Literal


UpstreamKind = Literal["timeout", "rate_limited", "provider_error", "empty_output"]
MalformedKind = Literal["invalid_json", "schema_mismatch"]

PUBLIC_MESSAGES = {
    "validation_error": "Invalid request",
    "config_error": "AI service configuration error",
    "timeout": "AI request timed out",
    "rate_limited": "AI provider rate limited the request",
    "provider_error": "AI provider request failed",
    "empty_output": "AI returned empty content",
    "busy": "AI service is busy, please retry",
    "invalid_json": "AI response could not be parsed",
    "schema_mismatch": "AI response did not match the expected curriculum shape",
    "unknown": "Request failed",
}


class PlannerError(Exception):
    error_code = "unknown"
    status_code = 500
    retryable = False
    public_message = PUBLIC_MESSAGES["unknown"]

    def __init__(self, reason: str = "") -> None:
        self.reason = " ".join(str(reason or "").split())[:300]
        super().__init__(self.reason or self.public_message)


class ValidationError(PlannerError):
    error_code = "validation_error"
    status_code = 400

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        # 입력 오류 메시지는 사용자에게 그대로 보여도 안전하다.
        self.public_message = self.reason or PUBLIC_MESSAGES[self.error_code]


class ConfigurationError(PlannerError):
    error_code = "config_error"
    status_code = 503

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.public_message = self.reason or PUBLIC_MESSAGES[self.error_code]


class UpstreamError(PlannerError):
    _STATUS_BY_KIND = {
        "timeout": 504,
        "rate_limited": 503,
        "provider_error": 502,
        "empty_output": 502,
    }

    def __init__(
        self,
        reason: str,
        *,
        kind: UpstreamKind = "provider_error",
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(reason)
        self.kind = kind
        self.upstream_status = upstream_status
        self.error_code = kind
        self.status_code = self._STATUS_BY_KIND[kind]
        self.public_message = PUBLIC_MESSAGES[kind]
        self.retryable = _is_transient(kind, upstream_status)


class ConcurrencyLimitError(PlannerError):
    error_code = "busy"
    status_code = 503
    retryable = True
    public_message = PUBLIC_MESSAGES["busy"]


class MalformedResponseError(PlannerError):
    status_code = 502
    retryable = False

    def __init__(self, reason: str, *, kind: MalformedKind = "invalid_json", raw_text: str = "") -> None:
        super().__init__(reason)
        self.kind = kind
        self.error_code = kind
        self.raw_text = raw_text
        self.public_message = PUBLIC_MESSAGES[kind]


def _is_transient(kind: str, upstream_status: int | None) -> bool:
    if kind in {"timeout", "rate_limited"}:
        return True
    if kind != "provider_error":
        return False
    # 네트워크 계층 실패(status 없음)와 5xx만 재시도 대상
    return upstream_status is None or upstream_status >= 500
