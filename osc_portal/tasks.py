"""
Celery tasks for application events.

Flow:
1. A service dispatches an event (osc_portal.services.events)
2. The dispatcher queues one task per listener with the event payload
3. The task runs the listener; on failure it is retried with a fixed
   backoff of 1s, 5s and 15s
"""
import asyncio
import logging
from typing import Any, Dict

from celery import Task

from osc_portal.core.celery_app import celery_app
from osc_portal.core.config import settings
from osc_portal.db.base import engine, session_scope
from osc_portal.services.audit import AuditService
from osc_portal.services.listeners import (
    MAX_RETRIES,
    ForwardToReviewQueueListener,
    QueueAntivirusScanListener,
    ScanDokumenJob,
    SendSubmissionNotificationListener,
    backoff_for,
)

logger = logging.getLogger(__name__)


class ListenerTask(Task):
    """Celery task with async support and the shared retry policy"""
    abstract = True
    max_retries = MAX_RETRIES

    def run_async(self, coro):
        """Run async coroutine in sync context"""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(self._with_engine_cleanup(coro))
        finally:
            asyncio.set_event_loop(None)
            loop.close()

    @staticmethod
    async def _with_engine_cleanup(coro):
        try:
            return await coro
        finally:
            # Pooled connections are bound to this loop
            await engine.dispose()

    @property
    def attempt(self) -> int:
        return self.request.retries + 1

    def run_listener(self, listener, payload: Dict[str, Any]):
        try:
            return self.run_async(listener.handle(payload, attempt=self.attempt))
        except Exception as exc:
            if self.request.retries >= self.max_retries:
                logger.error("%s gave up after %d attempts", self.name, self.attempt)
                raise
            raise self.retry(exc=exc, countdown=backoff_for(self.request.retries))


def _enqueue_scan(payload: Dict[str, Any], queue: str) -> None:
    scan_dokumen.apply_async(args=[payload], queue=queue)


@celery_app.task(bind=True, base=ListenerTask, name="osc_portal.tasks.forward_to_review_queue")
def forward_to_review_queue(self, payload: Dict[str, Any]):
    return self.run_listener(ForwardToReviewQueueListener(), payload)


@celery_app.task(bind=True, base=ListenerTask, name="osc_portal.tasks.send_submission_notification")
def send_submission_notification(self, payload: Dict[str, Any]):
    return self.run_listener(SendSubmissionNotificationListener(), payload)


@celery_app.task(bind=True, base=ListenerTask, name="osc_portal.tasks.queue_antivirus_scan")
def queue_antivirus_scan(self, payload: Dict[str, Any]):
    return self.run_listener(QueueAntivirusScanListener(enqueue=_enqueue_scan), payload)


@celery_app.task(
    bind=True,
    base=ListenerTask,
    name="osc_portal.tasks.scan_dokumen",
    time_limit=settings.av_scan_timeout,
)
def scan_dokumen(self, payload: Dict[str, Any]):
    return self.run_listener(ScanDokumenJob(), payload)


async def _purge_audit_logs(days: int) -> int:
    async with session_scope() as session:
        return await AuditService(session).purge_older_than(days)


@celery_app.task(bind=True, base=ListenerTask, name="osc_portal.tasks.purge_audit_logs")
def purge_audit_logs(self, days: int):
    """Scheduled retention cleanup (enabled by AUDIT_AUTO_CLEANUP)"""
    return self.run_async(_purge_audit_logs(days))
