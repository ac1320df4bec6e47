from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DialogueMessage(BaseModel):
    speaker: str = ""
    text: str = ""


class RetrieveRequest(BaseModel):
    messages: list[DialogueMessage] = Field(default_factory=list)
    context_size: int = Field(default=0, ge=0)


class SelectedEntry(BaseModel):
    path: str
    title: str
    priority: int
    tokens: int
    constant: bool
    matched_key: str | None = None


class RetrieveResponse(BaseModel):
    injection_text: str
    selected_count: int
    matched_count: int
    total_tokens: int
    match_reasons: dict[str, str] = Field(default_factory=dict)
    selected: list[SelectedEntry] = Field(default_factory=list)
    refusal_reason: str | None = None
    warning: str | None = None
    index_error: str | None = None
    request_id: str


class RefreshResponse(BaseModel):
    skipped: bool
    entry_count: int
    source_total: int = 0


class StatusResponse(BaseModel):
    entry_count: int
    constant_count: int
    keyword_count: int
    total_tokens: int
    cache_age_seconds: float | None = None
    rebuilding: bool
    summary: list[str] = Field(default_factory=list)


class ConnectionResponse(BaseModel):
    ok: bool
    authenticated: bool = False
    versions: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class ReviewRequest(BaseModel):
    question: str | None = None


class ReviewResponse(BaseModel):
    prompt: str | None = None
    entry_count: int
