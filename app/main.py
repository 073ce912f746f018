from __future__ import annotations

import logging
import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.logging_utils import (
    clear_request_context,
    configure_logging,
    current_request_id,
    elapsed_ms,
    log_event,
    new_request_id,
    set_request_context,
)
from app.models import PaletteResponse, PatternSearchRequest, PatternSearchResponse
from app.services.highlighting import MATERIAL_COLORS, highlight_plan, translucent
from app.services.pattern_matcher import MatchOptions, find_pattern
from app.services.score_model import load_musicxml

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Score Pattern Finder")


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or new_request_id()
    set_request_context(request_id=request_id, route=request.url.path, method=request.method)
    started = time.perf_counter()
    log_event(logger, "request_started")
    try:
        response = await call_next(request)
    except Exception:
        log_event(logger, "request_completed", status_code=500, duration_ms=elapsed_ms(started))
        raise

    log_event(logger, "request_completed", status_code=response.status_code, duration_ms=elapsed_ms(started))
    response.headers["X-Request-ID"] = request_id
    clear_request_context()
    return response


@app.exception_handler(Exception)
async def global_exception_handler(_request: Request, exc: Exception):
    request_id = current_request_id()
    logger.exception(
        "unhandled_exception",
        extra={"event": "unhandled_exception", "request_id": request_id},
    )
    response = JSONResponse(
        status_code=500,
        content={
            "detail": "Something went wrong while processing your request. Please try again.",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )
    clear_request_context()
    return response


def _handle_user_error(action: str, exc: ValueError) -> HTTPException:
    log_event(
        logger,
        "request_failed",
        level=logging.WARNING,
        action=action,
        error_type=type(exc).__name__,
        reason=str(exc),
    )
    return HTTPException(
        status_code=422,
        detail={
            "message": f"{action} failed: {exc}",
            "request_id": current_request_id(),
        },
    )


@app.post("/api/find-pattern", response_model=PatternSearchResponse)
def find_pattern_endpoint(payload: PatternSearchRequest):
    action = "Pattern search"
    try:
        document = load_musicxml(payload.musicxml)
        result = find_pattern(
            document,
            payload.pattern,
            MatchOptions(approximate_ratio=payload.approximate_ratio),
        )
    except ValueError as exc:
        raise _handle_user_error(action, exc) from exc

    return PatternSearchResponse(
        exact_pattern_occurrences=result.exact_pattern_occurrences,
        approximate_pattern_occurrences=result.approximate_pattern_occurrences,
        highlights=highlight_plan(result),
    )


@app.get("/api/palette", response_model=PaletteResponse)
def palette_endpoint():
    return PaletteResponse(exact=list(MATERIAL_COLORS), approximate=translucent(MATERIAL_COLORS))
