"""Domain events raised by the application workflow and their dispatcher.

Events carry a self-contained snapshot of the entity, so a worker can act on
them without reading the rows back. Request handlers wrap the dispatcher in
``AfterCommitDispatcher`` so nothing is queued for a transaction that rolls
back.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Protocol

from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.celery_app import celery_app
from osc_portal.domain.permohonan import Permohonan, PermohonanDokumen

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermohonanDiserahkan:
    """A draft application was submitted."""

    listeners: ClassVar[tuple[str, ...]] = (
        "osc_portal.tasks.forward_to_review_queue",
        "osc_portal.tasks.send_submission_notification",
    )

    permohonan_id: str
    user_id: str
    company_id: str
    jenis_lesen_id: int
    tarikh_serahan: str | None
    butiran_operasi: dict[str, Any] | None

    @classmethod
    def from_permohonan(cls, permohonan: Permohonan) -> "PermohonanDiserahkan":
        return cls(
            permohonan_id=permohonan.id,
            user_id=permohonan.user_id,
            company_id=permohonan.company_id,
            jenis_lesen_id=permohonan.jenis_lesen_id,
            tarikh_serahan=(
                permohonan.tarikh_serahan.isoformat() if permohonan.tarikh_serahan else None
            ),
            butiran_operasi=permohonan.butiran_operasi,
        )

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DokumenDimuatNaik:
    """A document was uploaded (or replaced) on a draft application."""

    listeners: ClassVar[tuple[str, ...]] = ("osc_portal.tasks.queue_antivirus_scan",)

    dokumen_id: str
    permohonan_id: str
    keperluan_dokumen_id: int
    nama_fail: str
    url_storan: str
    uploaded_by: str | None

    @classmethod
    def from_dokumen(cls, dokumen: PermohonanDokumen) -> "DokumenDimuatNaik":
        return cls(
            dokumen_id=dokumen.id,
            permohonan_id=dokumen.permohonan_id,
            keperluan_dokumen_id=dokumen.keperluan_dokumen_id,
            nama_fail=dokumen.nama_fail,
            url_storan=dokumen.url_storan,
            uploaded_by=dokumen.uploaded_by,
        )

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


Event = PermohonanDiserahkan | DokumenDimuatNaik


class EventDispatcher(Protocol):
    def dispatch(self, event: Event) -> None: ...


class CeleryEventDispatcher:
    """Queues one Celery task per listener of the event."""

    def dispatch(self, event: Event) -> None:
        payload = event.to_payload()
        for task_name in event.listeners:
            try:
                celery_app.send_task(task_name, args=[payload])
            except Exception:
                logger.exception(
                    "Failed to queue %s for %s", task_name, type(event).__name__
                )
                raise
            logger.debug("Queued %s for %s", task_name, type(event).__name__)


class AfterCommitDispatcher:
    """Holds events until the session commits, then hands them to *dispatcher*.

    A rollback discards whatever is pending, so listeners never hear about
    changes that were not persisted.
    """

    def __init__(self, session: AsyncSession, dispatcher: EventDispatcher):
        self._dispatcher = dispatcher
        self._pending: list[Event] = []
        sa_event.listen(session.sync_session, "after_commit", self._release)
        sa_event.listen(session.sync_session, "after_rollback", self._discard)

    @property
    def pending(self) -> list[Event]:
        return list(self._pending)

    def dispatch(self, event: Event) -> None:
        self._pending.append(event)

    def _release(self, _session) -> None:
        pending, self._pending = self._pending, []
        for event in pending:
            self._dispatcher.dispatch(event)

    def _discard(self, _session) -> None:
        if self._pending:
            logger.info("Dropping %d event(s) after rollback", len(self._pending))
        self._pending.clear()


_dispatcher = CeleryEventDispatcher()


def get_dispatcher() -> EventDispatcher:
    """FastAPI dependency; tests override it with a recording dispatcher."""
    return _dispatcher
