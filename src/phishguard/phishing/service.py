"""
Phishing verdict resolution.

Verdicts live in the ``domains`` table keyed by normalized domain. Redis
shadows them under ``phishing:url:<raw url>``:

    check_url(url)
      ├─ cache hit, safe      → {isPhishing: false}, no side effects
      ├─ cache hit, phishing  → alert → {isPhishing: true, code}
      └─ cache miss
          ├─ unknown domain   → submit to scanner, no cache write
          │                     → {isPhishing: false, visitedBefore: false}
          └─ known domain     → cache verdict (24h), alert if phishing
                                → {..., visitedBefore: true, explanation}

Alerting issues a one-time code, records a block event, and pushes a
notification to each of the user's trusted contacts.
"""

from __future__ import annotations

import re

import structlog
from pydantic import ValidationError

from phishguard.cache import Cache, blocked_key, code_key, verdict_key
from phishguard.config import Settings, get_settings
from phishguard.notifications.service import NotificationFanout
from phishguard.phishing.codes import generate_code, is_valid_code
from phishguard.phishing.scanner import ScannerClient
from phishguard.phishing.schemas import (
    BlockedEvent,
    BlockedPhishingResponse,
    CachedVerdict,
    CheckPhishingResponse,
    SubmitPhishingResponse,
)
from phishguard.store import Store
from phishguard.trust.service import notify_trusted_contacts

logger = structlog.get_logger()

ALERT_TITLE = "Phishing Alert"
ALERT_BODY = "A trusted contact was prevented from accessing a phishing website"

_SCHEME = re.compile(r"^(\w+:)?//")
_TRAILING_SLASHES = re.compile(r"/+$")


def normalize_domain(url: str) -> str:
    """Strip a leading ``scheme://`` (or ``//``) and any trailing slashes."""
    return _TRAILING_SLASHES.sub("", _SCHEME.sub("", url))


class PhishingService:
    """Resolve URLs to verdicts and alert trusted contacts on phishing hits."""

    def __init__(
        self,
        store: Store,
        cache: Cache,
        scanner: ScannerClient,
        fanout: NotificationFanout,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.scanner = scanner
        self.fanout = fanout
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Check
    # ------------------------------------------------------------------

    async def check_url(self, user_id: int, url: str) -> CheckPhishingResponse:
        """Classify ``url`` for ``user_id``. Never raises."""
        domain = normalize_domain(url)
        try:
            cached = await self._read_verdict(url)
            if cached is not None:
                if not cached.is_phishing:
                    return CheckPhishingResponse(success=True, is_phishing=False)
                code = await self._alert(user_id, url, domain)
                return CheckPhishingResponse(success=True, is_phishing=True, code=code)

            verdict = await self.store.get_domain(domain)
            if verdict is None:
                await self._submit_for_scan(url)
                return CheckPhishingResponse(success=True, is_phishing=False, visited_before=False)

            await self._write_verdict(
                url,
                CachedVerdict(is_phishing=verdict.is_phishing, explanation=verdict.explanation),
                self.settings.verdict_cache_ttl_seconds,
            )

            code = await self._alert(user_id, url, domain) if verdict.is_phishing else None
            return CheckPhishingResponse(
                success=True,
                is_phishing=verdict.is_phishing,
                code=code,
                visited_before=True,
                explanation=verdict.explanation,
                confidence=verdict.confidence,
            )
        except Exception:
            logger.error("phishing_check_failed", user_id=user_id, domain=domain, exc_info=True)
            return CheckPhishingResponse(success=False, error="Failed to check URL")

    async def _alert(self, user_id: int, url: str, domain: str) -> str:
        """Issue a code, record the block and notify trusted contacts. Returns the code."""
        # The code goes first: if it cannot be stored, nothing else happens.
        code = generate_code()
        await self.cache.set(code_key(code), url, self.settings.verification_code_ttl_seconds)

        await self.store.insert_block_event(user_id, url, domain)
        await self._delete_quietly(blocked_key(user_id))

        report = await notify_trusted_contacts(
            self.store,
            self.fanout,
            user_id,
            ALERT_TITLE,
            ALERT_BODY,
            {"url": url, "code": code},
        )
        logger.info(
            "phishing_blocked",
            user_id=user_id,
            domain=domain,
            contacts=len(report.attempted),
            failed=len(report.failed),
        )
        return code

    async def _submit_for_scan(self, url: str) -> None:
        # Fire-and-forget: the answer for an unseen domain does not depend on the scanner.
        try:
            await self.scanner.submit(url)
        except Exception:
            logger.warning("scan_submission_failed", exc_info=True)

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    async def submit_verdict(
        self,
        url: str,
        is_phishing: bool,
        explanation: str | None = None,
        confidence: float = 1.0,
    ) -> SubmitPhishingResponse:
        """Replace the stored verdict for ``url``'s domain and refresh its cache entry.

        The cache write is attempted even when the store write fails, so the
        two can diverge until the entry expires.
        """
        domain = normalize_domain(url)
        cached = CachedVerdict(is_phishing=is_phishing, explanation=explanation)
        try:
            await self.store.replace_domain(domain, is_phishing, explanation or "", confidence)
            await self.cache.set(
                verdict_key(url),
                cached.model_dump_json(by_alias=True, exclude_none=True),
                self.settings.submitted_verdict_ttl_seconds,
            )
        except Exception:
            logger.error("verdict_submission_failed", domain=domain, is_phishing=is_phishing, exc_info=True)
            try:
                await self.cache.set(
                    verdict_key(url),
                    cached.model_dump_json(by_alias=True, exclude_none=True),
                    self.settings.submitted_verdict_ttl_seconds,
                )
            except Exception:
                logger.error("verdict_cache_update_failed", domain=domain, exc_info=True)
            return SubmitPhishingResponse(success=False, error="Failed to submit phishing data")

        logger.info("verdict_submitted", domain=domain, is_phishing=is_phishing)
        return SubmitPhishingResponse(success=True)

    # ------------------------------------------------------------------
    # History & codes
    # ------------------------------------------------------------------

    async def list_blocked(self, user_id: int) -> BlockedPhishingResponse:
        """The user's block events, oldest first, cache-aside on ``blocked_phishing:<id>``."""
        key = blocked_key(user_id)
        cached = await self._read_cached(key)
        if cached:
            try:
                return BlockedPhishingResponse.model_validate_json(cached)
            except ValidationError:
                logger.warning("blocked_list_cache_corrupt", user_id=user_id)

        try:
            events = await self.store.list_block_events(user_id)
        except Exception:
            logger.error("phishing_history_failed", user_id=user_id, exc_info=True)
            return BlockedPhishingResponse(success=False, error="Failed to fetch phishing history")

        response = BlockedPhishingResponse(success=True, data=[BlockedEvent.model_validate(e) for e in events])
        await self._write_cached(
            key,
            response.model_dump_json(by_alias=True, exclude_none=True),
            self.settings.blocked_list_ttl_seconds,
        )
        return response

    async def resolve_code(self, code: str) -> str | None:
        """Return the URL a live code was issued for, or None if unknown or expired."""
        if not is_valid_code(code):
            msg = "Code must be exactly 6 digits"
            raise ValueError(msg)
        return await self.cache.get(code_key(code))

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    async def _read_cached(self, key: str) -> str | None:
        # An unreachable cache is a miss; the store can still answer.
        try:
            return await self.cache.get(key)
        except Exception:
            logger.warning("cache_read_failed", key=key, exc_info=True)
            return None

    async def _write_cached(self, key: str, value: str, ttl: int) -> None:
        try:
            await self.cache.set(key, value, ttl)
        except Exception:
            logger.warning("cache_write_failed", key=key, exc_info=True)

    async def _read_verdict(self, url: str) -> CachedVerdict | None:
        """Cached verdict for ``url``; read failures and corrupt entries count as misses."""
        key = verdict_key(url)
        raw = await self._read_cached(key)
        if raw is None:
            return None
        try:
            return CachedVerdict.model_validate_json(raw)
        except ValidationError:
            logger.warning("verdict_cache_corrupt", key=key)
            await self._delete_quietly(key)
            return None

    async def _write_verdict(self, url: str, verdict: CachedVerdict, ttl: int) -> None:
        await self._write_cached(verdict_key(url), verdict.model_dump_json(by_alias=True, exclude_none=True), ttl)

    async def _delete_quietly(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except Exception:
            logger.warning("cache_delete_failed", key=key, exc_info=True)
