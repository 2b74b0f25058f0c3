from core.security import create_access_token
from services.users import UserDirectory

from conftest import VALID_APPLICATION

PDF = "application/pdf"


def _create(client, headers, **overrides):
    r = client.post("/applications", json={**VALID_APPLICATION, **overrides}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_healthz_is_public(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_requests_without_token_are_rejected(client):
    r = client.get("/applications")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"
    assert "login_url" in r.json()


def test_invalid_and_expired_tokens_are_rejected(client, cfg):
    assert client.get("/stats", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
    expired = create_access_token("employer-x", minutes=-5, cfg=cfg)
    assert client.get("/stats", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_first_login_registers_employer_and_keeps_role(client, cfg, session):
    token = create_access_token("newcomer", claims={"email": "new@firm.example", "first_name": "Ana"}, cfg=cfg)
    r = client.get("/auth/user", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["role"] == "employer"
    assert r.json()["first_name"] == "Ana"

    UserDirectory(session).set_role("newcomer", "administrator")
    token = create_access_token("newcomer", claims={"first_name": "Anna"}, cfg=cfg)
    body = client.get("/auth/user", headers={"Authorization": f"Bearer {token}"}).json()
    assert body["role"] == "administrator"
    assert body["first_name"] == "Anna"


def test_login_with_email_of_another_user(client, cfg, employer):
    token = create_access_token("newcomer", claims={"email": employer.email}, cfg=cfg)
    r = client.get("/auth/user", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["id"] == "newcomer"
    assert r.json()["email"] is None


def test_review_scenario(client, auth_headers, employer, admin):
    emp, adm = auth_headers(employer), auth_headers(admin)

    created = _create(client, emp)
    assert created["status"] == "draft"
    assert created["allowed_transitions"] == ["submitted"]
    assert client.get("/stats", headers=emp).json()["draft"] == 1

    r = client.post(f"/applications/{created['id']}/submit", headers=emp)
    assert r.json()["status"] == "submitted"
    assert client.get("/stats", headers=adm).json()["pending"] == 1

    r = client.patch(
        f"/applications/{created['id']}/status",
        json={"status": "approved", "review_comments": "looks good"},
        headers=adm,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "approved"
    assert body["reviewed_by"] == admin.id
    assert body["review_comments"] == "looks good"
    assert body["reference_number"] == created["reference_number"]
    assert body["allowed_transitions"] == []

    stats = client.get("/stats", headers=adm).json()
    assert stats["pending"] == 0
    assert stats["processed_today"] == 1


def test_employer_cannot_change_status(client, auth_headers, employer):
    emp = auth_headers(employer)
    created = _create(client, emp)
    client.post(f"/applications/{created['id']}/submit", headers=emp)

    r = client.patch(f"/applications/{created['id']}/status", json={"status": "approved"}, headers=emp)

    assert r.status_code == 403
    assert client.get(f"/applications/{created['id']}", headers=emp).json()["status"] == "submitted"


def test_status_update_to_unsupported_value(client, auth_headers, employer, admin):
    created = _create(client, auth_headers(employer))
    client.post(f"/applications/{created['id']}/submit", headers=auth_headers(employer))

    r = client.patch(f"/applications/{created['id']}/status", json={"status": "draft"}, headers=auth_headers(admin))

    assert r.status_code == 400


def test_create_with_missing_fields(client, auth_headers, employer):
    data = {k: v for k, v in VALID_APPLICATION.items() if k != "services_description"}
    assert client.post("/applications", json=data, headers=auth_headers(employer)).status_code == 422


def test_patch_cannot_smuggle_status(client, auth_headers, employer):
    emp = auth_headers(employer)
    created = _create(client, emp)

    r = client.patch(f"/applications/{created['id']}", json={"status": "approved"}, headers=emp)

    assert r.status_code == 422
    r = client.patch(f"/applications/{created['id']}", json={"number_of_workers": 40}, headers=emp)
    assert r.json()["number_of_workers"] == 40


def test_application_access(client, auth_headers, employer, other_employer, admin):
    created = _create(client, auth_headers(employer))

    assert client.get(f"/applications/{created['id']}", headers=auth_headers(other_employer)).status_code == 403
    assert client.get(f"/applications/{created['id']}", headers=auth_headers(admin)).status_code == 200
    assert client.get("/applications/missing", headers=auth_headers(admin)).status_code == 404


def test_listing_depends_on_role(client, auth_headers, employer, other_employer, admin):
    mine = _create(client, auth_headers(employer), owner_name="Harbour Abatement Ltd")
    _create(client, auth_headers(other_employer), owner_name="Inland Demolition")

    own = client.get("/applications", params={"search": "Inland"}, headers=auth_headers(employer)).json()
    assert [a["id"] for a in own] == [mine["id"]]

    everything = client.get("/applications", headers=auth_headers(admin)).json()
    assert len(everything) == 2

    found = client.get("/applications", params={"search": "abatement ltd"}, headers=auth_headers(admin)).json()
    assert [a["id"] for a in found] == [mine["id"]]

    drafts = client.get(
        "/applications",
        params={"status": "draft", "application_type": "renewal_application"},
        headers=auth_headers(admin),
    ).json()
    assert drafts == []


def test_document_upload_download_delete(client, auth_headers, employer, admin):
    emp = auth_headers(employer)
    created = _create(client, emp)

    r = client.post(
        f"/applications/{created['id']}/documents",
        files=[
            ("documents", ("policy.pdf", b"%PDF-1.4 policy", PDF)),
            ("documents", ("notes.txt", b"plain", "text/plain")),
        ],
        data={"document_type": "insurance"},
        headers=emp,
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert [d["original_name"] for d in body["documents"]] == ["policy.pdf"]
    assert body["documents"][0]["document_type"] == "insurance"
    assert [x["filename"] for x in body["rejected"]] == ["notes.txt"]
    doc_id = body["documents"][0]["id"]

    detail = client.get(f"/applications/{created['id']}", headers=emp).json()
    assert [d["id"] for d in detail["documents"]] == [doc_id]

    r = client.get(f"/documents/{doc_id}/download", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.content == b"%PDF-1.4 policy"
    assert "policy.pdf" in r.headers["content-disposition"]

    assert client.delete(f"/documents/{doc_id}", headers=emp).status_code == 204
    assert client.get(f"/documents/{doc_id}/download", headers=emp).status_code == 404


def test_upload_with_no_valid_files(client, auth_headers, employer):
    emp = auth_headers(employer)
    created = _create(client, emp)

    r = client.post(
        f"/applications/{created['id']}/documents",
        files=[("documents", ("photo.png", b"\x89PNG", "image/png"))],
        headers=emp,
    )

    assert r.status_code == 400
    assert "photo.png" in r.json()["errors"]


def test_upload_by_admin_is_denied(client, auth_headers, employer, admin):
    created = _create(client, auth_headers(employer))
    r = client.post(
        f"/applications/{created['id']}/documents",
        files=[("documents", ("policy.pdf", b"%PDF", PDF))],
        headers=auth_headers(admin),
    )
    assert r.status_code == 403


def test_triage_checklist_endpoints(client, auth_headers, employer, admin):
    created = _create(client, auth_headers(employer))
    adm = auth_headers(admin)

    assert client.get(f"/triaging-checklist/{created['id']}", headers=adm).json() == {}

    r = client.post(
        f"/applications/{created['id']}/triaging-checklist",
        json={"decision": "approve", "employer_start_date": "2019-06-01", "transport_acms": True},
        headers=adm,
    )
    assert r.status_code == 200
    assert r.json()["employer_start_date"] == "2019-06-01"

    client.post(
        f"/applications/{created['id']}/triaging-checklist", json={"prepared_by": "R. Singh"}, headers=adm
    )
    saved = client.get(f"/triaging-checklist/{created['id']}", headers=adm).json()
    assert saved["decision"] == "approve"
    assert saved["prepared_by"] == "R. Singh"

    emp = auth_headers(employer)
    assert client.get(f"/triaging-checklist/{created['id']}", headers=emp).status_code == 403
    assert (
        client.post(f"/applications/{created['id']}/triaging-checklist", json={}, headers=emp).status_code
        == 403
    )


def test_audit_history(client, auth_headers, employer, admin):
    emp = auth_headers(employer)
    created = _create(client, emp)
    client.post(f"/applications/{created['id']}/submit", headers=emp)

    r = client.get(f"/applications/{created['id']}/audit", headers=auth_headers(admin))
    assert [e["action"] for e in r.json()] == ["created_application", "submitted_application"]
    assert client.get(f"/applications/{created['id']}/audit", headers=emp).status_code == 403
