import http.client
import json
import logging
import re
import time
from typing import Any
from urllib import error, request

from curriculum_planner.core.errors import UpstreamError


logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    return _FENCE_PATTERN.sub("", text or "").strip()


def parse_json_text(text: str) -> Any:
    return json.loads(strip_code_fence(text))


def post_json(
    *,
    provider: str,
    endpoint: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    timeout_sec: float,
) -> dict[str, Any]:
    req = request.Request(
        endpoint,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )

    started = time.monotonic()
    logger.info("[%s] request started", provider)
    try:
        with request.urlopen(req, timeout=timeout_sec) as response:
            raw_body = response.read()
    except error.HTTPError as exc:
        logger.error("[%s] http %s: %s", provider, exc.code, _read_error_body(exc))
        kind = "rate_limited" if exc.code == 429 else "provider_error"
        raise UpstreamError(
            f"{provider}_http_{exc.code}",
            kind=kind,
            upstream_status=exc.code,
        ) from exc
    except TimeoutError as exc:
        logger.error("[%s] timed out after %.1fs", provider, time.monotonic() - started)
        raise UpstreamError(f"{provider}_timeout", kind="timeout") from exc
    except error.URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            logger.error("[%s] timed out after %.1fs", provider, time.monotonic() - started)
            raise UpstreamError(f"{provider}_timeout", kind="timeout") from exc
        logger.error("[%s] unreachable: %s", provider, exc.reason)
        raise UpstreamError(f"{provider}_unreachable:{exc.reason}") from exc
    except (ConnectionError, http.client.HTTPException) as exc:
        # 본문 수신 중 끊김(reset, IncompleteRead)도 네트워크 실패로 본다.
        logger.error("[%s] connection failed while reading: %r", provider, exc)
        raise UpstreamError(f"{provider}_unreachable:{type(exc).__name__}") from exc

    logger.info("[%s] request completed in %.2fs", provider, time.monotonic() - started)

    try:
        decoded = json.loads(raw_body.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise UpstreamError(f"{provider}_envelope_not_utf8", upstream_status=200) from exc
    except json.JSONDecodeError as exc:
        raise UpstreamError(f"{provider}_envelope_not_json", upstream_status=200) from exc
    if not isinstance(decoded, dict):
        raise UpstreamError(f"{provider}_envelope_not_object", upstream_status=200)
    return decoded


def _read_error_body(exc: error.HTTPError) -> str:
    try:
        return exc.read().decode("utf-8", errors="replace")[:500]
    except Exception:  # pragma: no cover - network boundary
        return ""
