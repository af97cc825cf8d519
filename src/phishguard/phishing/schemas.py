"""Request/response schemas for phishing endpoints and the verdict cache payload."""

from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from phishguard.schemas import CamelModel


class CachedVerdict(CamelModel):
    """Payload cached under ``phishing:url:<url>``."""

    is_phishing: bool
    explanation: str | None = None


class CheckPhishingRequest(CamelModel):
    url: str = Field(..., max_length=2048)

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "URL must not be empty"
            raise ValueError(msg)
        return v


class CheckPhishingResponse(CamelModel):
    success: bool
    error: str | None = None
    is_phishing: bool | None = None
    code: str | None = None
    explanation: str | None = None
    confidence: float | None = None
    visited_before: bool | None = None


class SubmitPhishingRequest(CamelModel):
    url: str = Field(..., max_length=2048)
    is_phishing: bool
    explanation: str | None = None
    confidence: float = Field(1.0, ge=0.0, le=1.0)

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "URL must not be empty"
            raise ValueError(msg)
        return v


class SubmitPhishingResponse(CamelModel):
    success: bool
    error: str | None = None


class BlockedEvent(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    url: str
    domain: str
    timestamp: datetime


class BlockedPhishingResponse(CamelModel):
    """Body of ``GET /blocked-phishing``; cached verbatim under ``blocked_phishing:<user_id>``."""

    success: bool
    error: str | None = None
    data: list[BlockedEvent] | None = None


class CodeLookupResponse(CamelModel):
    success: bool
    error: str | None = None
    url: str | None = None
