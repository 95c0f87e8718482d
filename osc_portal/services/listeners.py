"""Queued listeners for application events.

Each listener runs inside a Celery task (see ``osc_portal.tasks``), opens its
own database session for audit rows and re-raises on failure so the task is
retried. ``attempt`` is 1-based.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from osc_portal.core.config import settings
from osc_portal.core.exceptions import ExternalServiceError
from osc_portal.core.storage import LocalStorage, storage
from osc_portal.db.base import async_session_factory
from osc_portal.services.audit import AuditService

logger = logging.getLogger(__name__)

# Retry policy shared by every listener and job: the first attempt plus
# MAX_RETRIES retries, each delayed by the matching BACKOFF_SECONDS entry
MAX_RETRIES = 3
BACKOFF_SECONDS = (1, 5, 15)


def backoff_for(retries: int) -> int:
    """Countdown before the next attempt, given how many retries already ran."""
    return BACKOFF_SECONDS[min(retries, len(BACKOFF_SECONDS) - 1)]


class _AuditingListener:
    entity_type: str = "permohonan"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory or async_session_factory

    async def _audit(self, action: str, entity_id: str, meta: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await AuditService(session).log(action, self.entity_type, entity_id, meta)
            await session.commit()


class _HttpForwardListener(_AuditingListener):
    """POSTs the event to a downstream module and audits the outcome."""

    service_name: str
    action: str
    path: str

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(session_factory)
        self._http = http_client

    def base_url(self) -> str | None:
        raise NotImplementedError

    def timeout(self) -> float:
        raise NotImplementedError

    def build_body(self, payload: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    async def _post(self, url: str, body: dict[str, Any]) -> httpx.Response:
        if self._http is not None:
            return await self._http.post(url, json=body, timeout=self.timeout())
        async with httpx.AsyncClient(timeout=self.timeout()) as client:
            return await client.post(url, json=body)

    async def handle(self, payload: dict[str, Any], attempt: int = 1) -> None:
        permohonan_id = payload["permohonan_id"]
        try:
            base_url = self.base_url()
            if not base_url:
                raise ExternalServiceError(
                    self.service_name, f"{self.service_name} base URL not configured"
                )

            response = await self._post(f"{base_url.rstrip('/')}{self.path}", self.build_body(payload))
            if not response.is_success:
                raise ExternalServiceError(
                    self.service_name,
                    f"{self.service_name} returned status {response.status_code}",
                )
        except Exception as exc:
            error = exc.message if isinstance(exc, ExternalServiceError) else str(exc)
            await self._audit(
                f"{self.action}_failed",
                permohonan_id,
                {
                    "permohonan_id": permohonan_id,
                    "status": "failed",
                    "error": error,
                    "attempt": attempt,
                },
            )
            logger.error(
                "%s failed for permohonan %s (attempt %d): %s",
                self.action, permohonan_id, attempt, error,
            )
            raise

        await self._audit(
            self.action,
            permohonan_id,
            {
                "permohonan_id": permohonan_id,
                "status": "success",
                "response_status": response.status_code,
            },
        )


class ForwardToReviewQueueListener(_HttpForwardListener):
    """Forwards a submitted application to the Module 5 review queue."""

    service_name = "Module 5"
    action = "forward_to_module5"
    path = "/api/review-queue"

    def base_url(self) -> str | None:
        return settings.module5_base_url

    def timeout(self) -> float:
        return settings.module5_timeout

    def build_body(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "permohonan_id": payload["permohonan_id"],
            "user_id": payload["user_id"],
            "company_id": payload["company_id"],
            "jenis_lesen_id": payload["jenis_lesen_id"],
            "tarikh_serahan": payload.get("tarikh_serahan"),
            "butiran_operasi": payload.get("butiran_operasi"),
        }


class SendSubmissionNotificationListener(_HttpForwardListener):
    """Asks Module 12 to notify the applicant that the submission was received."""

    service_name = "Module 12"
    action = "send_submission_notification"
    path = "/api/notifications/send"

    def base_url(self) -> str | None:
        return settings.module12_base_url

    def timeout(self) -> float:
        return settings.module12_timeout

    def build_body(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "user_id": payload["user_id"],
            "notification_type": "permohonan_diserahkan",
            "data": {
                "permohonan_id": payload["permohonan_id"],
                "jenis_lesen_id": payload["jenis_lesen_id"],
                "tarikh_serahan": payload.get("tarikh_serahan"),
            },
        }


class QueueAntivirusScanListener(_AuditingListener):
    """Queues ``scan_dokumen`` for an uploaded document when scanning is enabled.

    Args:
        enqueue: ``enqueue(payload, queue)`` puts the scan job on a queue.
    """

    entity_type = "permohonan_dokumen"

    def __init__(
        self,
        enqueue: Callable[[dict[str, Any], str], None],
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        super().__init__(session_factory)
        self._enqueue = enqueue

    async def handle(self, payload: dict[str, Any], attempt: int = 1) -> bool:
        """Returns whether a scan was queued."""
        dokumen_id = payload["dokumen_id"]
        if not settings.av_scan_enabled:
            logger.info("AV scanning is disabled, skipping scan of dokumen %s", dokumen_id)
            return False

        queue = settings.av_scan_queue
        try:
            self._enqueue(payload, queue)
        except Exception as exc:
            await self._audit(
                "queue_av_scan_failed",
                dokumen_id,
                {"dokumen_id": dokumen_id, "status": "failed", "error": str(exc), "attempt": attempt},
            )
            logger.error("Failed to queue AV scan for dokumen %s: %s", dokumen_id, exc)
            raise

        await self._audit(
            "queue_av_scan",
            dokumen_id,
            {
                "dokumen_id": dokumen_id,
                "status": "queued",
                "queue": queue,
                "permohonan_id": payload["permohonan_id"],
            },
        )
        return True


class ScanDokumenJob(_AuditingListener):
    """Antivirus scan of a stored document.

    No scanning engine is wired in yet: a file that exists is reported clean.
    """

    entity_type = "permohonan_dokumen"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        file_storage: LocalStorage | None = None,
    ):
        super().__init__(session_factory)
        self._storage = file_storage or storage

    async def handle(self, payload: dict[str, Any], attempt: int = 1) -> None:
        dokumen_id = payload["dokumen_id"]
        try:
            if not await self._storage.exists(payload["url_storan"]):
                raise FileNotFoundError(f"File not found: {payload['url_storan']}")
            logger.info("Performing AV scan of dokumen %s", dokumen_id)
        except Exception as exc:
            await self._audit(
                "av_scan_failed",
                dokumen_id,
                {"dokumen_id": dokumen_id, "status": "error", "error": str(exc), "attempt": attempt},
            )
            logger.error("AV scan failed for dokumen %s: %s", dokumen_id, exc)
            raise

        await self._audit(
            "av_scan_completed",
            dokumen_id,
            {"dokumen_id": dokumen_id, "status": "clean", "scan_result": "passed"},
        )
