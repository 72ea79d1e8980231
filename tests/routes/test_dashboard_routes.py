"""
Tests for dashboard, sync, project and transaction endpoints.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from backoffice.auth.dependencies import require_auth
from backoffice.db.storage import get_storage
from backoffice.main import app
from backoffice.services.errors import GoogleSheetsError
from backoffice.services.google_sheets_service import get_google_sheets_service


@pytest.fixture
def sheets_api():
    return AsyncMock()


def make_client(user, storage, sheets_api):
    app.dependency_overrides[require_auth] = lambda: user
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_google_sheets_service] = lambda: sheets_api
    return TestClient(app)


@pytest.fixture
def client(auth_user, fresh_storage, sheets_api):
    yield make_client(auth_user, fresh_storage, sheets_api)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(admin_user, fresh_storage, sheets_api):
    yield make_client(admin_user, fresh_storage, sheets_api)
    app.dependency_overrides.clear()


TRANSACTION = {
    "date": "2025-09-02T00:00:00",
    "description": "Beton alımı",
    "amount": "150000.50",
    "type": "expense",
    "category": "Malzeme",
}


class TestDashboard:

    def test_empty_dashboard(self, client):
        response = client.get("/api/dashboard")

        assert response.status_code == 200
        body = response.json()
        assert body["total_income"] == 0
        assert body["net_profit"] == 0
        assert len(body["monthly_data"]) == 6
        assert body["expense_categories"] == []
        assert body["projects"] == []

    def test_totals_follow_transactions(self, client):
        client.post("/api/transactions", json=TRANSACTION)
        client.post("/api/transactions", json={**TRANSACTION, "type": "income", "amount": "200000"})

        body = client.get("/api/dashboard").json()

        assert body["total_income"] == 200000
        assert body["total_expenses"] == 150000.5
        assert body["net_profit"] == 49999.5
        assert body["expense_categories"] == [{"category": "Malzeme", "amount": 150000.5, "percentage": 100.0}]


class TestSync:

    def test_without_spreadsheet_returns_400(self, client):
        with patch("backoffice.routes.dashboard.settings") as mock_settings:
            mock_settings.GOOGLE_SPREADSHEET_ID = ""
            response = client.post("/api/sync")

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "not_configured"

    def test_refreshes_headers_and_skips_failures(self, client, sheets_api, fresh_storage):
        ok = asyncio.run(fresh_storage.create_sheet(name="Muhasebe", google_sheet_id="s1"))
        asyncio.run(fresh_storage.create_sheet(name="Personel", google_sheet_id="s1"))

        async def rows_for(spreadsheet_id, name):
            if name == "Personel":
                raise GoogleSheetsError("timeout")
            return [["Tarih", "Tutar"], ["2025-09-01", "100"]]

        sheets_api.get_sheet_data.side_effect = rows_for

        with patch("backoffice.routes.dashboard.settings") as mock_settings:
            mock_settings.GOOGLE_SPREADSHEET_ID = "s1"
            response = client.post("/api/sync")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Synced 1 sheets successfully"
        assert body["timestamp"]
        assert fresh_storage.sheets[ok.id].headers == ["Tarih", "Tutar"]


class TestProjects:

    def test_create_get_update(self, client):
        response = client.post("/api/projects", json={"name": "Merkez Ofis", "budget": "1000000"})

        assert response.status_code == 201
        project = response.json()
        assert project["status"] == "active"
        assert project["progress"] == 0

        response = client.put(f"/api/projects/{project['id']}", json={"progress": 40})
        assert response.json()["progress"] == 40
        assert response.json()["name"] == "Merkez Ofis"

        response = client.get(f"/api/projects/{project['id']}")
        assert response.json()["progress"] == 40

        assert len(client.get("/api/projects").json()) == 1

    def test_unknown_project_returns_404(self, client):
        response = client.get("/api/projects/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == {"error": "not_found", "details": "Project not found"}

    def test_invalid_progress_returns_422(self, client):
        response = client.post("/api/projects", json={"name": "X", "progress": 150})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_null_name_is_rejected(self, client):
        project = client.post("/api/projects", json={"name": "Depo"}).json()

        response = client.put(f"/api/projects/{project['id']}", json={"name": None, "description": None})

        assert response.status_code == 422
        assert client.get(f"/api/projects/{project['id']}").json()["name"] == "Depo"


class TestTransactions:

    def test_listing_is_newest_first(self, client):
        client.post("/api/transactions", json={**TRANSACTION, "date": "2025-01-10T00:00:00"})
        client.post("/api/transactions", json={**TRANSACTION, "date": "2025-03-10T00:00:00"})

        dates = [t["date"] for t in client.get("/api/transactions").json()]

        assert dates == ["2025-03-10T00:00:00Z", "2025-01-10T00:00:00Z"]

    def test_update_transaction(self, client):
        created = client.post("/api/transactions", json=TRANSACTION).json()

        response = client.put(f"/api/transactions/{created['id']}", json={"category": "İşçilik"})

        assert response.status_code == 200
        assert response.json()["category"] == "İşçilik"

    def test_mixed_offsets_sort_as_utc(self, client):
        client.post("/api/transactions", json={**TRANSACTION, "date": "2025-03-10T09:00:00"})
        client.post("/api/transactions", json={**TRANSACTION, "date": "2025-03-10T10:00:00+03:00"})
        client.post("/api/transactions", json={**TRANSACTION, "date": "2025-03-10T08:00:00Z"})

        response = client.get("/api/transactions")

        assert response.status_code == 200
        assert [t["date"] for t in response.json()] == [
            "2025-03-10T09:00:00Z", "2025-03-10T08:00:00Z", "2025-03-10T07:00:00Z",
        ]

    def test_null_amount_is_rejected(self, client):
        created = client.post("/api/transactions", json=TRANSACTION).json()

        response = client.put(f"/api/transactions/{created['id']}", json={"amount": None})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert client.get("/api/dashboard").status_code == 200
        assert client.get("/api/transactions").json()[0]["amount"] == created["amount"]

    def test_delete_requires_admin(self, client):
        created = client.post("/api/transactions", json=TRANSACTION).json()

        response = client.delete(f"/api/transactions/{created['id']}")

        assert response.status_code == 403

    def test_admin_can_delete(self, admin_client, fresh_storage):
        created = admin_client.post("/api/transactions", json=TRANSACTION).json()

        response = admin_client.delete(f"/api/transactions/{created['id']}")

        assert response.status_code == 200
        assert fresh_storage.transactions == {}

    def test_delete_unknown_returns_404(self, admin_client):
        response = admin_client.delete("/api/transactions/missing")

        assert response.status_code == 404
        assert response.json()["detail"]["details"] == "Transaction not found"
