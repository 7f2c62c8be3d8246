from typing import Any

from curriculum_planner.core.errors import PUBLIC_MESSAGES, PlannerError


KNOWN_ERROR_CODES = frozenset(PUBLIC_MESSAGES)


def normalize_error_code(value: Any) -> str:
    raw = str(value or "").strip().lower()
    if raw in KNOWN_ERROR_CODES:
        return raw
    return "unknown"


def build_error_payload(
    *,
    error_code: str,
    message: str | None,
    retryable: bool,
    trace_id: str,
) -> dict[str, Any]:
    code = normalize_error_code(error_code)
    message_text = " ".join(str(message or "").split()).strip() or PUBLIC_MESSAGES[code]
    return {
        "error": message_text[:260],
        "error_code": code,
        "retryable": bool(retryable),
        "trace_id": trace_id,
    }


def build_planner_error_payload(exc: PlannerError, trace_id: str) -> dict[str, Any]:
    # reason은 로그 전용이다. 응답에는 공개 메시지만 싣는다.
    return build_error_payload(
        error_code=exc.error_code,
        message=exc.public_message,
        retryable=exc.retryable,
        trace_id=trace_id,
    )


def build_validation_error_payload(errors: list[dict[str, Any]], trace_id: str) -> dict[str, Any]:
    fields = []
    for item in errors:
        loc = [str(part) for part in item.get("loc", ()) if part != "body"]
        if loc:
            fields.append(".".join(loc))
    message = "Invalid request body"
    if fields:
        message = f"Invalid request body: {', '.join(sorted(set(fields)))}"
    return build_error_payload(
        error_code="validation_error",
        message=message,
        retryable=False,
        trace_id=trace_id,
    )


def build_unexpected_error_payload(trace_id: str) -> dict[str, Any]:
    return build_error_payload(
        error_code="unknown",
        message="Unexpected server error",
        retryable=False,
        trace_id=trace_id,
    )
