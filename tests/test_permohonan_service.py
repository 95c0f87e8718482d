import pytest
from sqlalchemy import select

from osc_portal.core.exceptions import PermohonanError, ValidationError
from osc_portal.domain import AuditLog, PermohonanDokumen, PermohonanStatus
from osc_portal.services.events import PermohonanDiserahkan
from osc_portal.services.permohonan import PermohonanService

from tests.conftest import make_company, make_user


@pytest.fixture
def service(db_session, catalog, dispatcher) -> PermohonanService:
    return PermohonanService(db_session, catalog, dispatcher)


async def _attach(db_session, permohonan, *requirement_ids):
    for req_id in requirement_ids:
        db_session.add(
            PermohonanDokumen(
                permohonan_id=permohonan.id,
                keperluan_dokumen_id=req_id,
                nama_fail=f"doc-{req_id}.pdf",
                mime="application/pdf",
                saiz_bait=10,
                url_storan=f"permohonan/{permohonan.id}/dokumen/{req_id}.pdf",
            )
        )
    await db_session.flush()


@pytest.mark.asyncio
async def test_create_draft(service, db_session, applicant, company, butiran_operasi):
    permohonan = await service.create_draft(applicant, company.id, 1, butiran_operasi)

    assert permohonan.status == PermohonanStatus.DRAF.value
    assert permohonan.tarikh_serahan is None
    assert permohonan.company.id == company.id
    entry = (await db_session.execute(select(AuditLog))).scalar_one()
    assert entry.action == "permohonan_created"
    assert entry.entity_id == permohonan.id


@pytest.mark.asyncio
async def test_create_draft_requires_owned_company(service, db_session, applicant, butiran_operasi):
    someone_else = await make_user(db_session)
    foreign = await make_company(db_session, owner=someone_else)

    with pytest.raises(PermohonanError) as exc_info:
        await service.create_draft(applicant, foreign.id, 1, butiran_operasi)
    assert exc_info.value.code == "COMPANY_NOT_OWNED"
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_create_draft_rejects_unknown_license_type(service, applicant, company, butiran_operasi):
    with pytest.raises(PermohonanError) as exc_info:
        await service.create_draft(applicant, company.id, 404, butiran_operasi)
    assert exc_info.value.code == "INVALID_JENIS_LESEN"


@pytest.mark.asyncio
async def test_update_draft_records_original(service, db_session, applicant, company, butiran_operasi):
    permohonan = await service.create_draft(applicant, company.id, 1, butiran_operasi)

    updated = await service.update_draft(permohonan, applicant, {"jenis_lesen_id": 2})

    assert updated.jenis_lesen_id == 2
    entry = (
        await db_session.execute(select(AuditLog).where(AuditLog.action == "permohonan_updated"))
    ).scalar_one()
    assert entry.meta["original"]["jenis_lesen_id"] == 1
    assert entry.meta["updated"]["jenis_lesen_id"] == 2


@pytest.mark.asyncio
async def test_completeness_lists_missing_fields_and_documents(service, applicant, company):
    permohonan = await service.create_draft(
        applicant, company.id, 1, {"alamat_premis": {"alamat_1": "Lot 1", "poskod": ""}}
    )

    errors = await service.validate_completeness(permohonan)

    assert errors == [
        "City (bandar) is required",
        "Postal code (poskod) is required",
        "State (negeri) is required",
        "Required document missing: Salinan Pendaftaran SSM (ID: 1)",
        "Required document missing: Gambar Premis Perniagaan (ID: 2)",
        "Required document missing: Sijil Kesihatan (ID: 3)",
    ]


@pytest.mark.asyncio
async def test_completeness_without_butiran(service, applicant, company):
    permohonan = await service.create_draft(applicant, company.id, 2, None)

    errors = await service.validate_completeness(permohonan)

    assert errors[0] == "Business operation details (butiran_operasi) are required"


@pytest.mark.asyncio
async def test_completeness_when_catalog_fails(db_session, dispatcher, applicant, company, butiran_operasi):
    class BrokenCatalog:
        async def jenis_lesen_exists(self, jenis_lesen_id):
            return True

        async def get_keperluan_dokumen(self, jenis_lesen_id):
            raise RuntimeError("catalog down")

    service = PermohonanService(db_session, BrokenCatalog(), dispatcher)
    permohonan = await service.create_draft(applicant, company.id, 1, butiran_operasi)

    errors = await service.validate_completeness(permohonan)

    assert errors == ["Unable to verify document requirements. Please try again later."]


@pytest.mark.asyncio
async def test_submit_incomplete_lists_missing_documents(
    service, db_session, dispatcher, applicant, company, butiran_operasi
):
    permohonan = await service.create_draft(applicant, company.id, 1, butiran_operasi)
    await _attach(db_session, permohonan, 1)

    with pytest.raises(PermohonanError) as exc_info:
        await service.submit(permohonan, applicant)

    assert exc_info.value.code == "PERMOHONAN_INCOMPLETE"
    assert exc_info.value.details == [
        "Required document missing: Gambar Premis Perniagaan (ID: 2)",
        "Required document missing: Sijil Kesihatan (ID: 3)",
    ]
    assert permohonan.status == PermohonanStatus.DRAF.value
    assert dispatcher.events == []


@pytest.mark.asyncio
async def test_submit_complete_application(
    service, db_session, dispatcher, applicant, company, butiran_operasi
):
    permohonan = await service.create_draft(applicant, company.id, 2, butiran_operasi)
    await _attach(db_session, permohonan, 4, 5)

    submitted = await service.submit(permohonan, applicant)

    assert submitted.status == PermohonanStatus.DISERAHKAN.value
    assert submitted.tarikh_serahan is not None
    [event] = dispatcher.of_type(PermohonanDiserahkan)
    assert event.permohonan_id == permohonan.id
    assert event.jenis_lesen_id == 2
    assert event.butiran_operasi == butiran_operasi
    actions = (await db_session.execute(select(AuditLog.action))).scalars().all()
    assert "permohonan_submitted" in actions


@pytest.mark.asyncio
async def test_submit_requires_verified_identity(service, db_session, butiran_operasi):
    user = await make_user(db_session, verified=False)
    company = await make_company(db_session, owner=user)
    permohonan = await service.create_draft(user, company.id, 2, butiran_operasi)

    with pytest.raises(PermohonanError) as exc_info:
        await service.submit(permohonan, user)
    assert exc_info.value.code == "IDENTITY_NOT_VERIFIED"


@pytest.mark.asyncio
async def test_non_draft_rejects_changes(service, db_session, applicant, company, butiran_operasi):
    permohonan = await service.create_draft(applicant, company.id, 2, butiran_operasi)
    await _attach(db_session, permohonan, 4, 5)
    submitted = await service.submit(permohonan, applicant)

    with pytest.raises(PermohonanError) as update_exc:
        await service.update_draft(submitted, applicant, {"jenis_lesen_id": 1})
    with pytest.raises(PermohonanError) as cancel_exc:
        await service.cancel(submitted, applicant, "no longer needed")
    with pytest.raises(PermohonanError) as submit_exc:
        await service.submit(submitted, applicant)

    for exc_info in (update_exc, cancel_exc, submit_exc):
        assert exc_info.value.code == "PERMOHONAN_NOT_DRAFT"
        assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_cancel_draft(service, db_session, applicant, company, butiran_operasi):
    permohonan = await service.create_draft(applicant, company.id, 3, butiran_operasi)

    cancelled = await service.cancel(permohonan, applicant, "Premis ditutup")

    assert cancelled.status == PermohonanStatus.DIBATALKAN.value
    entry = (
        await db_session.execute(select(AuditLog).where(AuditLog.action == "permohonan_cancelled"))
    ).scalar_one()
    assert entry.meta["reason"] == "Premis ditutup"


@pytest.mark.asyncio
async def test_cancel_requires_reason(service, applicant, company, butiran_operasi):
    permohonan = await service.create_draft(applicant, company.id, 3, butiran_operasi)

    with pytest.raises(ValidationError):
        await service.cancel(permohonan, applicant, "   ")
    with pytest.raises(ValidationError):
        await service.cancel(permohonan, applicant, "x" * 501)


@pytest.mark.asyncio
async def test_list_filters_and_enrichment(service, applicant, company, butiran_operasi):
    from osc_portal.core.pagination import PaginationParams

    first = await service.create_draft(applicant, company.id, 1, butiran_operasi)
    await service.create_draft(applicant, company.id, 2, butiran_operasi)
    await service.cancel(first, applicant, "duplicate")

    pagination = PaginationParams(page=1, limit=15)
    drafts, total = await service.list_permohonan(
        applicant, pagination, status=PermohonanStatus.DRAF.value
    )
    assert total == 1
    assert drafts[0].jenis_lesen_id == 2

    everything, total = await service.list_permohonan(applicant, pagination)
    assert total == 2
    details = await service.catalog_details(everything)
    assert details[1]["jenis_lesen_nama"] == "Lesen Perniagaan Makanan"
    assert details[1]["kategori"] == "Berisiko"
    assert details[2]["yuran_proses"] == 100.0
