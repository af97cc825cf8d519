"""Phishing endpoints: check, submit, history, code lookup."""

from __future__ import annotations

import secrets

import structlog
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from phishguard.auth.dependencies import AuthContext, get_auth_context
from phishguard.cache import Cache, get_cache
from phishguard.config import get_settings
from phishguard.notifications.push import ExpoPushClient, get_push_client
from phishguard.notifications.service import NotificationFanout
from phishguard.phishing.scanner import ScannerClient, get_scanner
from phishguard.phishing.schemas import (
    BlockedPhishingResponse,
    CheckPhishingRequest,
    CheckPhishingResponse,
    CodeLookupResponse,
    SubmitPhishingRequest,
    SubmitPhishingResponse,
)
from phishguard.phishing.service import PhishingService
from phishguard.store import Store, get_store

logger = structlog.get_logger()

router = APIRouter(tags=["Phishing"])


def get_phishing_service(
    store: Store = Depends(get_store),  # noqa: B008
    cache: Cache = Depends(get_cache),  # noqa: B008
    scanner: ScannerClient = Depends(get_scanner),  # noqa: B008
    push: ExpoPushClient = Depends(get_push_client),  # noqa: B008
) -> PhishingService:
    return PhishingService(store, cache, scanner, NotificationFanout(store, cache, push))


def _submit_token_matches(presented: str | None) -> bool:
    expected = get_settings().submit_token
    if not expected or presented is None:
        return False
    return secrets.compare_digest(presented.encode(), expected.encode())


@router.post("/check-phishing", response_model=CheckPhishingResponse, response_model_exclude_none=True)
async def check_phishing(
    body: CheckPhishingRequest,
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    service: PhishingService = Depends(get_phishing_service),  # noqa: B008
) -> CheckPhishingResponse:
    """Check a URL; on a phishing hit the caller's trusted contacts are alerted."""
    return await service.check_url(auth.user.id, body.url)


@router.post("/submit-phishing", response_model=SubmitPhishingResponse, response_model_exclude_none=True)
async def submit_phishing(
    body: SubmitPhishingRequest,
    x_api_key: str | None = Header(None),
    service: PhishingService = Depends(get_phishing_service),  # noqa: B008
):
    """Record a scanner verdict. Requires the pre-shared ``x-api-key``."""
    if not _submit_token_matches(x_api_key):
        logger.warning("verdict_submission_unauthorized")
        return JSONResponse(status_code=401, content={"success": False, "error": "Unauthorized"})
    return await service.submit_verdict(body.url, body.is_phishing, body.explanation, body.confidence)


@router.get("/blocked-phishing", response_model=BlockedPhishingResponse, response_model_exclude_none=True)
async def blocked_phishing(
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    service: PhishingService = Depends(get_phishing_service),  # noqa: B008
) -> BlockedPhishingResponse:
    """The caller's blocked phishing history."""
    return await service.list_blocked(auth.user.id)


@router.get("/phishing/codes/{code}", response_model=CodeLookupResponse, response_model_exclude_none=True)
async def lookup_code(
    code: str,
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    service: PhishingService = Depends(get_phishing_service),  # noqa: B008
) -> CodeLookupResponse:
    """Resolve a verification code a trusted contact received in an alert."""
    try:
        url = await service.resolve_code(code)
    except ValueError as e:
        return CodeLookupResponse(success=False, error=str(e))
    if url is None:
        return CodeLookupResponse(success=False, error="Code not found or expired")
    return CodeLookupResponse(success=True, url=url)
