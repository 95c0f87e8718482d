import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from osc_portal.core.config import settings
from osc_portal.domain import AuditLog, Permohonan, User
from osc_portal.main import app
from osc_portal.services.events import DokumenDimuatNaik, PermohonanDiserahkan

from tests.conftest import PASSWORD, bearer_for, fake, make_company, make_user

PDF = ("doc.pdf", b"%PDF-1.4 test", "application/pdf")


def _register_payload(**overrides) -> dict:
    payload = {
        "name": fake.name(),
        "email": fake.unique.email(),
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
        "ic_no": "900101145672",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["modules"] == {"MODULE_M01": True, "MODULE_M02": True}


@pytest.mark.asyncio
async def test_register_and_fetch_current_user(client: AsyncClient):
    payload = _register_payload()
    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["email"] == payload["email"].lower()
    assert data["user"]["role"] == "PEMOHON"
    assert data["user"]["statusVerifiedPerson"] is False
    assert data["tokenType"] == "Bearer"

    me = await client.get("/api/user", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["id"] == data["user"]["id"]


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client: AsyncClient):
    payload = _register_payload()
    await client.post("/api/auth/register", json=payload)

    response = await client.post(
        "/api/auth/register", json={**payload, "ic_no": "900101145674"}
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"ic_no": "12345"},
        {"ic_no": "90010114567A"},
        {"password": "short", "password_confirmation": "short"},
        {"password_confirmation": "different-password"},
    ],
)
async def test_register_validation(client: AsyncClient, overrides):
    response = await client.post("/api/auth/register", json=_register_payload(**overrides))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_and_logout(client: AsyncClient, applicant):
    bad = await client.post("/api/auth/login", json={"email": applicant.email, "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json()["error"]["message"] == "The provided credentials are incorrect."

    login = await client.post("/api/auth/login", json={"email": applicant.email, "password": PASSWORD})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

    assert (await client.post("/api/auth/logout", headers=headers)).status_code == 200
    assert (await client.get("/api/user", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_missing_or_garbage_token(client: AsyncClient):
    assert (await client.get("/api/user")).status_code == 401
    response = await client.get("/api/user", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_deactivated_account_cannot_log_in(client: AsyncClient, applicant, auth_headers):
    response = await client.post("/api/account/deactivate", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["revokedTokenCount"] == 1

    assert (await client.get("/api/user", headers=auth_headers)).status_code == 401
    login = await client.post("/api/auth/login", json={"email": applicant.email, "password": PASSWORD})
    assert login.status_code == 401
    assert login.json()["error"]["message"] == "The provided credentials are incorrect."


# ---------------------------------------------------------------------------
# Feature flags
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_disabled_modules_answer_404(client: AsyncClient, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "module_m01", False)
    monkeypatch.setattr(settings, "module_m02", False)

    for method, path in [
        ("POST", "/api/profile/verify-identity"),
        ("GET", "/api/company/my-companies"),
        ("GET", "/api/audit/logs"),
        ("GET", "/api/permohonan"),
        ("GET", "/api/catalog/jenis-lesen"),
    ]:
        response = await client.request(method, path, headers=auth_headers, json={})
        assert response.status_code == 404, path
        assert response.json()["error"]["code"] == "NOT_FOUND"

    # Auth routes are not behind a flag
    assert (await client.get("/api/user", headers=auth_headers)).status_code == 200


# ---------------------------------------------------------------------------
# Profile / company
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_verify_identity(client: AsyncClient, session_factory, db_session):
    user = await make_user(db_session, verified=False)
    headers = await bearer_for(db_session, user)

    response = await client.post(
        "/api/profile/verify-identity", json={"ic_no": "900101145678"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["data"]["verified"] is True
    async with session_factory() as session:
        stored = (await session.execute(select(User).where(User.id == user.id))).scalar_one()
        assert stored.status_verified_person is True


@pytest.mark.asyncio
async def test_verify_and_link_company(client: AsyncClient, auth_headers):
    verified = await client.post(
        "/api/company/verify-ssm", json={"ssm_no": "SSM-202501"}, headers=auth_headers
    )
    assert verified.status_code == 200
    company = verified.json()["data"]["company"]
    assert company["status"] == "active"

    linked = await client.post(
        "/api/company/link", json={"company_id": company["id"]}, headers=auth_headers
    )
    assert linked.status_code == 200

    mine = await client.get("/api/company/my-companies", headers=auth_headers)
    assert [c["ssmNo"] for c in mine.json()["data"]] == ["SSM-202501"]


@pytest.mark.asyncio
async def test_link_company_owned_by_another_user(client: AsyncClient, db_session, auth_headers):
    other = await make_user(db_session)
    company = await make_company(db_session, owner=other)

    response = await client.post(
        "/api/company/link", json={"company_id": company.id}, headers=auth_headers
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "COMPANY_ALREADY_OWNED"


@pytest.mark.asyncio
async def test_all_companies_is_admin_only(client: AsyncClient, auth_headers, admin_auth_headers, company):
    assert (await client.get("/api/company/all", headers=auth_headers)).status_code == 403

    response = await client.get("/api/company/all", headers=admin_auth_headers)
    assert response.status_code == 200
    [item] = response.json()["data"]
    assert item["owner"]["id"] == company.owner_user_id


# ---------------------------------------------------------------------------
# Permohonan workflow
# ---------------------------------------------------------------------------

async def _create_draft(client, headers, company, butiran_operasi, jenis_lesen_id=2) -> dict:
    response = await client.post(
        "/api/permohonan",
        json={
            "company_id": company.id,
            "jenis_lesen_id": jenis_lesen_id,
            "butiran_operasi": butiran_operasi,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _upload(client, headers, permohonan_id, keperluan_dokumen_id, file=PDF):
    return await client.post(
        f"/api/permohonan/{permohonan_id}/dokumen",
        data={"keperluan_dokumen_id": str(keperluan_dokumen_id)},
        files={"file": file},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_full_application_flow(client: AsyncClient, auth_headers, company, butiran_operasi, dispatcher):
    draft = await _create_draft(client, auth_headers, company, butiran_operasi)
    assert draft["status"] == "Draf"
    assert draft["companyName"] == company.name
    assert draft["jenisLesenNama"] == "Lesen Kedai Runcit"
    assert draft["kategori"] == "Tidak Berisiko"

    completeness = await client.get(f"/api/permohonan/{draft['id']}/completeness", headers=auth_headers)
    assert completeness.json()["data"]["complete"] is False
    assert len(completeness.json()["data"]["errors"]) == 2

    for req_id in (4, 5):
        uploaded = await _upload(client, auth_headers, draft["id"], req_id)
        assert uploaded.status_code == 201, uploaded.text
    assert len(dispatcher.of_type(DokumenDimuatNaik)) == 2

    submitted = await client.post(f"/api/permohonan/{draft['id']}/submit", headers=auth_headers)
    assert submitted.status_code == 200, submitted.text
    body = submitted.json()["data"]
    assert body["status"] == "Diserahkan"
    assert body["tarikhSerahan"] is not None
    assert sorted(d["keperluanDokumenId"] for d in body["dokumen"]) == [4, 5]
    [event] = dispatcher.of_type(PermohonanDiserahkan)
    assert event.permohonan_id == draft["id"]

    cancel = await client.post(
        f"/api/permohonan/{draft['id']}/cancel", json={"reason": "too late"}, headers=auth_headers
    )
    assert cancel.status_code == 422
    assert cancel.json()["error"]["code"] == "PERMOHONAN_NOT_DRAFT"

    listing = await client.get("/api/permohonan?status=Diserahkan", headers=auth_headers)
    assert listing.json()["meta"]["total"] == 1


@pytest.mark.asyncio
async def test_submit_incomplete_returns_details(client: AsyncClient, auth_headers, company, butiran_operasi):
    draft = await _create_draft(client, auth_headers, company, butiran_operasi, jenis_lesen_id=1)
    await _upload(client, auth_headers, draft["id"], 1)

    response = await client.post(f"/api/permohonan/{draft['id']}/submit", headers=auth_headers)

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "PERMOHONAN_INCOMPLETE"
    assert error["details"] == [
        "Required document missing: Gambar Premis Perniagaan (ID: 2)",
        "Required document missing: Sijil Kesihatan (ID: 3)",
    ]


@pytest.mark.asyncio
async def test_failed_submit_request_queues_no_events(
    client: AsyncClient, session_factory, auth_headers, company, butiran_operasi, catalog, dispatcher,
    monkeypatch,
):
    draft = await _create_draft(client, auth_headers, company, butiran_operasi)
    for req_id in (4, 5):
        await _upload(client, auth_headers, draft["id"], req_id)
    dispatcher.events.clear()

    async def catalog_cache_down():
        raise RuntimeError("cache connection lost")

    # Submission succeeds; building the response afterwards fails
    monkeypatch.setattr(catalog, "get_jenis_lesen", catalog_cache_down)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as raw:
        response = await raw.post(f"/api/permohonan/{draft['id']}/submit", headers=auth_headers)

    assert response.status_code == 500
    assert dispatcher.events == []
    async with session_factory() as session:
        stored = await session.get(Permohonan, draft["id"])
        assert stored.status == "Draf"
        assert stored.tarikh_serahan is None


@pytest.mark.asyncio
async def test_create_requires_premise_address(client: AsyncClient, auth_headers, company):
    response = await client.post(
        "/api/permohonan",
        json={"company_id": company.id, "jenis_lesen_id": 1, "butiran_operasi": {"nama_perniagaan": "X"}},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_other_users_cannot_touch_application(
    client: AsyncClient, db_session, auth_headers, company, butiran_operasi
):
    draft = await _create_draft(client, auth_headers, company, butiran_operasi)
    stranger = await make_user(db_session, verified=True)
    headers = await bearer_for(db_session, stranger)

    assert (await client.get(f"/api/permohonan/{draft['id']}", headers=headers)).status_code == 403
    assert (await client.post(f"/api/permohonan/{draft['id']}/submit", headers=headers)).status_code == 403
    assert (await _upload(client, headers, draft["id"], 4)).status_code == 403
    assert (await client.get("/api/permohonan/does-not-exist", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_upload_rejects_wrong_type_and_delete_document(
    client: AsyncClient, auth_headers, company, butiran_operasi
):
    draft = await _create_draft(client, auth_headers, company, butiran_operasi)

    rejected = await _upload(client, auth_headers, draft["id"], 4, ("notes.txt", b"hello", "text/plain"))
    assert rejected.status_code == 422
    assert rejected.json()["error"]["code"] == "INVALID_FILE_TYPE"

    uploaded = await _upload(client, auth_headers, draft["id"], 4)
    dokumen_id = uploaded.json()["data"]["id"]

    deleted = await client.delete(f"/api/permohonan/{draft['id']}/dokumen/{dokumen_id}", headers=auth_headers)
    assert deleted.status_code == 204

    fetched = await client.get(f"/api/permohonan/{draft['id']}", headers=auth_headers)
    assert fetched.json()["data"]["dokumen"] == []


@pytest.mark.asyncio
async def test_catalog_routes(client: AsyncClient, auth_headers):
    jenis = await client.get("/api/catalog/jenis-lesen", headers=auth_headers)
    assert [j["kod"] for j in jenis.json()["data"]] == ["SAMPLE-01", "SAMPLE-02", "SAMPLE-03"]

    keperluan = await client.get("/api/catalog/jenis-lesen/3/keperluan-dokumen", headers=auth_headers)
    assert [k["id"] for k in keperluan.json()["data"]] == [6, 7]


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_audit_logs_scoped_to_caller(
    client: AsyncClient, session_factory, auth_headers, admin_auth_headers, applicant
):
    await client.post("/api/company/verify-ssm", json={"ssm_no": "SSM-1"}, headers=auth_headers)
    await client.post("/api/company/verify-ssm", json={"ssm_no": "SSM-2"}, headers=admin_auth_headers)

    mine = await client.get("/api/audit/logs?limit=100", headers=auth_headers)
    assert mine.status_code == 200
    assert mine.json()["meta"]["limit"] == 50
    assert {e["actorId"] for e in mine.json()["data"]} == {applicant.id}

    assert (await client.get("/api/audit/all-logs", headers=auth_headers)).status_code == 403
    everything = await client.get("/api/audit/all-logs", headers=admin_auth_headers)
    assert everything.json()["meta"]["total"] == 2

    async with session_factory() as session:
        entry = (await session.execute(
            select(AuditLog).where(AuditLog.actor_id == applicant.id)
        )).scalar_one()
        assert entry.meta["request_id"]
        assert entry.meta["user_agent"]
