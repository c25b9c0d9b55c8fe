"""
API tests for QR code sharing: issuing tokens and resolving them for doctors
"""

from datetime import datetime, timedelta

import pytest

from app.models.activity_log import AccessLog
from app.models.qr_code import QrCode

from conftest import register_and_login, pdf_payload

@pytest.fixture
def patient(client):
    user_id, headers = register_and_login(client, "patient")
    return user_id, headers

def create_document(client, headers, category_id, title):
    response = client.post("/api/v1/documents", headers=headers, json={
        "title": title,
        "category_id": category_id,
        "date": "2024-02-01",
        "file": pdf_payload()
    })
    assert response.status_code == 201, response.text
    return response.json()

class TestQrCodeIssuance:

    def test_get_qr_code(self, client, patient):
        user_id, headers = patient

        response = client.get(f"/api/v1/users/{user_id}/qrcode", headers=headers)
        assert response.status_code == 200

        data = response.json()
        assert set(data) == {"id", "userId", "token", "expiresAt", "documentId", "createdAt"}
        assert data["userId"] == user_id
        assert len(data["token"]) == 32
        assert data["documentId"] is None

        expires_at = datetime.fromisoformat(data["expiresAt"])
        assert timedelta(days=29) < expires_at - datetime.utcnow() <= timedelta(days=30)

    def test_get_qr_code_returns_live_token(self, client, patient):
        user_id, headers = patient

        first = client.get(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()
        second = client.get(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()

        assert first["token"] == second["token"]

    def test_regenerate_invalidates_previous_token(self, client, patient):
        user_id, headers = patient

        old = client.get(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()
        response = client.post(f"/api/v1/users/{user_id}/qrcode", headers=headers)
        assert response.status_code == 201
        new = response.json()

        assert new["token"] != old["token"]
        assert client.get(f"/api/v1/qrcode/{old['token']}").status_code == 404
        assert client.get(f"/api/v1/qrcode/{new['token']}").status_code == 200

    def test_two_regenerations_yield_distinct_tokens(self, client, patient):
        user_id, headers = patient

        first = client.post(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()
        second = client.post(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()

        assert first["token"] != second["token"]
        response = client.get(f"/api/v1/qrcode/{first['token']}")
        assert response.status_code == 404
        assert "user" not in response.json()

    def test_cannot_issue_for_another_user(self, client, patient):
        other_id, _ = register_and_login(client, "someoneelse")
        _, headers = patient

        response = client.get(f"/api/v1/users/{other_id}/qrcode", headers=headers)
        assert response.status_code == 403

    def test_doctor_cannot_issue(self, client):
        doctor_id, headers = register_and_login(client, "doc", role="doctor")

        response = client.post(f"/api/v1/users/{doctor_id}/qrcode", headers=headers)
        assert response.status_code == 403

    def test_issue_requires_login(self, client, patient):
        user_id, _ = patient
        response = client.get(f"/api/v1/users/{user_id}/qrcode")
        assert response.status_code in (401, 403)

class TestQrCodeResolution:

    def test_doctor_sees_patient_documents(self, client, patient):
        user_id, headers = patient
        labs = client.post("/api/v1/categories", headers=headers, json={"name": "Lab Reports"}).json()
        scans = client.post("/api/v1/categories", headers=headers, json={"name": "X-Rays"}).json()
        create_document(client, headers, labs["id"], "Blood panel")
        create_document(client, headers, labs["id"], "Lipids")
        create_document(client, headers, scans["id"], "Chest X-ray")

        token = client.get(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()["token"]

        response = client.get(f"/api/v1/qrcode/{token}")
        assert response.status_code == 200

        data = response.json()
        assert data["user"]["id"] == user_id
        assert set(data["user"]) == {"id", "username", "displayName", "email", "role", "createdAt"}
        assert len(data["documents"]) == 3
        assert {d["categoryName"] for d in data["documents"]} == {"Lab Reports", "X-Rays"}

        categories = client.get(f"/api/v1/users/{user_id}/categories", headers=headers).json()
        assert {c["name"]: c["count"] for c in categories} == {"Lab Reports": 2, "X-Rays": 1}

    def test_unknown_token(self, client):
        response = client.get("/api/v1/qrcode/doesnotexist")
        assert response.status_code == 404
        assert response.json() == {"message": "QR code not found", "code": "TOKEN_NOT_FOUND"}

    def test_expired_token(self, client, patient, db_session):
        user_id, _ = patient
        db_session.add(QrCode(
            user_id=user_id,
            token="e" * 32,
            expires_at=datetime.utcnow() - timedelta(seconds=1)
        ))
        db_session.commit()

        response = client.get(f"/api/v1/qrcode/{'e' * 32}")
        assert response.status_code == 410
        assert response.json() == {"message": "QR code has expired", "code": "TOKEN_EXPIRED"}

    def test_demo_token_disabled_by_default(self, client, patient):
        response = client.get("/api/v1/qrcode/patient-qr-code")
        assert response.status_code == 404

    def test_resolution_is_audited_without_full_token(self, client, patient, db_session):
        user_id, headers = patient
        token = client.get(f"/api/v1/users/{user_id}/qrcode", headers=headers).json()["token"]

        client.get(f"/api/v1/qrcode/{token}")
        client.get("/api/v1/qrcode/doesnotexist")

        logs = db_session.query(AccessLog).order_by(AccessLog.id).all()
        assert [log.status_code for log in logs] == [200, 200, 404]
        assert all(token not in log.endpoint for log in logs)
        assert logs[1].user_id == user_id
        assert logs[1].token_prefix == token[:8]

        response = client.get(f"/api/v1/users/{user_id}/access-log", headers=headers)
        assert response.status_code == 200
        assert [entry["statusCode"] for entry in response.json()] == [200, 200]
