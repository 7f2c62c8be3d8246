import logging
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from curriculum_planner.api.chat import router as chat_router
from curriculum_planner.api.curriculum import router as curriculum_router
from curriculum_planner.api.deps import cors_policy
from curriculum_planner.core.config import get_settings
from curriculum_planner.core.errors import PlannerError
from curriculum_planner.core.logger import configure_logging
from curriculum_planner.services.error_policy import (
    build_planner_error_payload,
    build_unexpected_error_payload,
    build_validation_error_payload,
)


settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Curriculum Planner API",
    version="0.1.0",
    description="AI study curriculum generation and ethical learning assistant",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(cors_policy.allow_origins),
    allow_credentials=False,
    allow_methods=list(cors_policy.allow_methods),
    allow_headers=list(cors_policy.allow_headers),
)


def _trace_id(request: Request) -> str:
    return request.headers.get("x-trace-id") or uuid4().hex


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok", "env": settings.env}


@app.exception_handler(PlannerError)
async def handle_planner_error(request: Request, exc: PlannerError) -> JSONResponse:
    trace_id = _trace_id(request)
    logger.error(
        "%s %s failed: code=%s status=%s reason=%s trace_id=%s",
        request.method,
        request.url.path,
        exc.error_code,
        exc.status_code,
        exc.reason,
        trace_id,
    )
    payload = build_planner_error_payload(exc, trace_id)
    return JSONResponse(status_code=exc.status_code, content=payload, headers=cors_policy.headers())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    trace_id = _trace_id(request)
    logger.warning("%s %s invalid body: %s trace_id=%s", request.method, request.url.path, exc.errors(), trace_id)
    payload = build_validation_error_payload(list(exc.errors()), trace_id)
    return JSONResponse(status_code=400, content=payload, headers=cors_policy.headers())


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    trace_id = _trace_id(request)
    logger.exception("%s %s unexpected error trace_id=%s", request.method, request.url.path, trace_id, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=build_unexpected_error_payload(trace_id),
        headers=cors_policy.headers(),
    )


app.include_router(curriculum_router)
app.include_router(chat_router)
