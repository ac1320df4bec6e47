from __future__ import annotations

"""FastAPI host surface for the DeepLore retrieval engine."""

import logging
import uuid

from fastapi import FastAPI, HTTPException, Request

from deeplore.app.dependencies import get_pipeline, get_vault_source
from deeplore.app.metrics import metrics_middleware, metrics_response, record_refresh, record_retrieval
from deeplore.app.schemas import (
    ConnectionResponse,
    RefreshResponse,
    RetrieveRequest,
    RetrieveResponse,
    ReviewRequest,
    ReviewResponse,
    SelectedEntry,
    StatusResponse,
)
from deeplore.app.settings import settings
from deeplore.loaders.obsidian import SourceUnavailableError
from deeplore.rag.types import DialogueTurn

logger = logging.getLogger(__name__)

app = FastAPI(title="DeepLore", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _safe_error_message(exc: Exception) -> str:
    """Return a safe error type name for logs and responses."""
    return type(exc).__name__


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.post("/retrieve", response_model=RetrieveResponse)
async def retrieve(request: RetrieveRequest, http_request: Request) -> RetrieveResponse:
    """Select lore entries for the given dialogue window."""
    request_id = http_request.state.request_id
    pipeline = get_pipeline()
    window = [DialogueTurn(speaker=msg.speaker, text=msg.text) for msg in request.messages]
    result = await pipeline.retrieve(
        window,
        settings.lore_config(),
        context_size=request.context_size,
    )
    record_retrieval(result.refusal_reason or "injected")
    logger.info(
        "retrieve_request_complete",
        extra={
            "request_id": request_id,
            "selected": result.selected_count,
            "refusal_reason": result.refusal_reason,
        },
    )
    return RetrieveResponse(
        injection_text=result.injection_text,
        selected_count=result.selected_count,
        matched_count=result.matched_count,
        total_tokens=result.total_tokens,
        match_reasons=result.match_reasons,
        selected=[
            SelectedEntry(
                path=entry.path,
                title=entry.title,
                priority=entry.priority,
                tokens=entry.token_estimate,
                constant=entry.constant,
                matched_key=result.match_reasons.get(entry.path),
            )
            for entry in result.selected
        ],
        refusal_reason=result.refusal_reason,
        warning=result.warning,
        index_error=result.index_error,
        request_id=request_id,
    )


@app.post("/refresh", response_model=RefreshResponse)
async def refresh() -> RefreshResponse:
    """Rebuild the vault index now, ignoring the cache TTL."""
    pipeline = get_pipeline()
    try:
        index = await pipeline.force_refresh(settings.lore_config())
    except SourceUnavailableError as exc:
        record_refresh("failed")
        logger.error("index_refresh_failed", extra={"detail": _safe_error_message(exc)})
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if index is None:
        record_refresh("skipped")
        snapshot = pipeline.indexer.get_snapshot()
        return RefreshResponse(skipped=True, entry_count=len(snapshot) if snapshot else 0)
    record_refresh("ok")
    return RefreshResponse(
        skipped=False,
        entry_count=len(index),
        source_total=index.source_total,
    )


@app.get("/status", response_model=StatusResponse)
async def status() -> StatusResponse:
    """Report index size, token totals and cache age."""
    pipeline = get_pipeline()
    index_status = pipeline.get_status()
    return StatusResponse(
        **index_status.__dict__,
        summary=pipeline.describe(settings.lore_config()),
    )


@app.get("/connection", response_model=ConnectionResponse)
async def connection() -> ConnectionResponse:
    """Check that the Obsidian REST API is reachable."""
    result = await get_vault_source().check_connection()
    return ConnectionResponse(**result.__dict__)


@app.post("/review", response_model=ReviewResponse)
async def review(request: ReviewRequest) -> ReviewResponse:
    """Build a prompt that asks a model to review the whole lorebook."""
    pipeline = get_pipeline()
    try:
        prompt = await pipeline.review_prompt(
            settings.lore_config(),
            default_response_tokens=settings.default_response_tokens,
            question=request.question,
        )
    except SourceUnavailableError as exc:
        logger.error("review_failed", extra={"detail": _safe_error_message(exc)})
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    snapshot = pipeline.indexer.get_snapshot()
    return ReviewResponse(prompt=prompt, entry_count=len(snapshot) if snapshot else 0)
