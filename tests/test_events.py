import pytest

from osc_portal.domain import AuditLog
from osc_portal.services.events import AfterCommitDispatcher, DokumenDimuatNaik

from tests.conftest import RecordingDispatcher

UPLOADED = DokumenDimuatNaik(
    dokumen_id="5d1c7f7e-0000-4000-8000-000000000010",
    permohonan_id="5d1c7f7e-0000-4000-8000-000000000001",
    keperluan_dokumen_id=4,
    nama_fail="ssm.pdf",
    url_storan="permohonan/x/dokumen/ssm.pdf",
    uploaded_by=None,
)


@pytest.mark.asyncio
async def test_events_are_released_on_commit(session_factory):
    recorder = RecordingDispatcher()
    async with session_factory() as session:
        dispatcher = AfterCommitDispatcher(session, recorder)
        session.add(AuditLog(action="dokumen_uploaded", entity_type="permohonan_dokumen"))
        await session.flush()

        dispatcher.dispatch(UPLOADED)
        assert recorder.events == []
        assert dispatcher.pending == [UPLOADED]

        await session.commit()

    assert recorder.events == [UPLOADED]
    assert dispatcher.pending == []


@pytest.mark.asyncio
async def test_events_are_dropped_on_rollback(session_factory):
    recorder = RecordingDispatcher()
    async with session_factory() as session:
        dispatcher = AfterCommitDispatcher(session, recorder)
        session.add(AuditLog(action="dokumen_uploaded", entity_type="permohonan_dokumen"))
        await session.flush()
        dispatcher.dispatch(UPLOADED)

        await session.rollback()
        # A later commit in the same session must not resurrect them
        await session.commit()

    assert recorder.events == []
    assert dispatcher.pending == []
