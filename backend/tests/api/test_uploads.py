"""Tests for the upload and job status endpoints."""

import asyncio
import json
import time

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import Tables
from tests.conftest import TEST_USER_ID, create_test_token, seed_profile_sync

CSV = (
    b"Name,Email,Phone\n"
    b"Aisha Rahman,aisha@example.com,012-345 6789\n"
    b"Tan Wei Ming,tan@example.com,0129876543\n"
)


def csv_file(content: bytes = CSV, name: str = "contacts.csv"):
    return {"file": (name, content, "text/csv")}


@pytest.fixture
def client(container):
    seed_profile_sync(container)
    return TestClient(create_app())


def contact_rows(container):
    page = asyncio.run(container.repository(Tables.CONTACTS).find())
    return page.rows


class TestPreview:
    def test_preview_suggests_mapping(self, client, auth_headers, container):
        response = client.post("/api/uploads/spreadsheet/preview", files=csv_file(), headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total_rows"] == 2
        assert data["headers"] == ["Name", "Email", "Phone"]
        assert data["column_mappings"]["email"] == "Email"
        assert data["data_quality"] is None
        assert contact_rows(container) == []

    def test_rejects_non_spreadsheet(self, client, auth_headers):
        response = client.post(
            "/api/uploads/spreadsheet/preview",
            files={"file": ("photo.png", b"\x89PNG", "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"


class TestSynchronousImport:
    def test_import_with_mappings(self, client, auth_headers, container):
        mappings = {"name": "Name", "email": "Email", "phone": "Phone"}

        response = client.post(
            "/api/uploads/spreadsheet/import",
            files=csv_file(),
            data={"mappings": json.dumps(mappings), "defaultCategory": "Prospect"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["imported"] == 2
        assert data["total"] == 2
        assert data["message"] == "Imported 2 of 2 contacts"

        rows = contact_rows(container)
        assert {r["phone"] for r in rows} == {"+60123456789", "+60129876543"}
        assert {r["category"] for r in rows} == {"Prospect"}
        profile = asyncio.run(container.repository(Tables.PROFILES).get(TEST_USER_ID))
        assert profile["contact_count"] == 2

    def test_bad_mappings(self, client, auth_headers):
        response = client.post(
            "/api/uploads/spreadsheet/import",
            files=csv_file(),
            data={"mappings": "not json"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_MAPPINGS"

    def test_empty_file(self, client, auth_headers):
        response = client.post(
            "/api/uploads/spreadsheet/import", files=csv_file(b""), headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_FILE"


class TestBackgroundImport:
    def test_job_runs_to_completion(self, auth_headers, container):
        seed_profile_sync(container)
        with TestClient(create_app()) as client:
            response = client.post("/api/uploads/spreadsheet", files=csv_file(), headers=auth_headers)

            assert response.status_code == 202
            accepted = response.json()["data"]
            assert accepted["statusUrl"] == f"/api/uploads/status/{accepted['jobId']}"

            deadline = time.monotonic() + 5
            status = None
            while time.monotonic() < deadline:
                status = client.get(accepted["statusUrl"], headers=auth_headers).json()["data"]
                if status["status"] != "processing":
                    break
                time.sleep(0.05)

        assert status["status"] == "completed"
        assert status["progress"] == 100
        assert status["result"]["imported"] == 2
        assert len(contact_rows(container)) == 2


class TestJobStatus:
    def test_owner_sees_job(self, client, auth_headers, container):
        job_id = asyncio.run(container.jobs.create(owner_id=TEST_USER_ID, kind="spreadsheet_import"))

        response = client.get(f"/api/uploads/status/{job_id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["jobId"] == job_id
        assert data["status"] == "processing"
        assert data["progress"] == 0

    def test_other_tenant_gets_not_found(self, client, container):
        job_id = asyncio.run(container.jobs.create(owner_id=TEST_USER_ID))
        other = {"Authorization": f"Bearer {create_test_token(user_id='someone-else')}"}

        response = client.get(f"/api/uploads/status/{job_id}", headers=other)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "JOB_NOT_FOUND"


class TestNamecards:
    def test_rejects_non_image(self, client, auth_headers):
        response = client.post(
            "/api/uploads/namecard/instant",
            files={"image": ("card.pdf", b"%PDF", "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"

    def test_no_model_configured(self, client, auth_headers):
        response = client.post(
            "/api/uploads/namecard/instant",
            files={"image": ("card.jpg", b"\xff\xd8\xff", "image/jpeg")},
            headers=auth_headers,
        )
        assert response.status_code == 502
        assert response.json()["error"]["code"] == "AI_UNAVAILABLE"
