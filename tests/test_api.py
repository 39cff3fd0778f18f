"""
Testy API z użyciem FastAPI TestClient.
"""

import pytest

from app.config import settings
from app.integrations import google_sheets


TARIFF = {
    "slabs": [
        {"limit": 50, "rate": 4.0},
        {"limit": 100, "rate": 5.0},
        {"limit": 99999, "rate": 6.0},
    ],
    "vat_rate": 0.05,
    "demand_charge": 100.0,
    "meter_rent": 50.0,
    "bkash_charge": 10.0
}

CONFIG = {
    "month": "January 2025",
    "date_generated": "2025-01-31",
    "include_late_fee": False,
    "include_bkash_fee": True
}


def fill_draft(client):
    """Pomocnicza funkcja budująca szkic: licznik główny 0 -> 120, dwa liczniki po 60 kWh."""
    client.patch("/api/billing/draft/config", json=CONFIG)
    client.put("/api/billing/draft/main-meter", json={"previous": 0, "current": 120})
    for name in ("Flat 1", "Flat 2"):
        meter = client.post("/api/billing/draft/meters", json={"name": name}).json()
        client.put(f"/api/billing/draft/meters/{meter['id']}", json={"current": 60})


class TestRoot:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == settings.api_title

    def test_favicon(self, client):
        assert client.get("/favicon.ico").status_code == 204


class TestBillingApi:
    """Testy /api/billing."""

    def test_calculate(self, client):
        response = client.post("/api/billing/calculate", json={
            "config": CONFIG,
            "main_meter": {"id": "main", "previous": 0, "current": 120},
            "meters": [
                {"id": "1", "name": "Flat 1", "previous": 0, "current": 60},
                {"id": "2", "name": "Flat 2", "previous": 0, "current": 50},
            ],
            "tariff": TARIFF
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_collection"] == pytest.approx(766.0)
        assert data["main_units"] == pytest.approx(120.0)
        assert data["system_loss_units"] == pytest.approx(10.0)
        assert len(data["user_calculations"]) == 2
        assert sum(calc["total_payable"] for calc in data["user_calculations"]) == pytest.approx(766.0)

    def test_calculate_with_active_tariff(self, client):
        client.put("/api/settings/tariff", json=TARIFF)
        response = client.post("/api/billing/calculate", json={
            "config": CONFIG,
            "main_meter": {"id": "main", "previous": 0, "current": 120},
            "meters": [{"id": "1", "previous": 0, "current": 120}]
        })

        assert response.json()["total_collection"] == pytest.approx(766.0)

    def test_calculate_invalid_body(self, client):
        response = client.post("/api/billing/calculate", json={"config": CONFIG})
        assert response.status_code == 422

    def test_calculate_rejects_unsorted_tariff(self, client):
        """Test: taryfa z nieposortowanymi progami w zapytaniu daje 400."""
        tariff = dict(TARIFF, slabs=[{"limit": 100, "rate": 6.0}, {"limit": 50, "rate": 4.0}])

        response = client.post("/api/billing/calculate", json={
            "config": CONFIG,
            "main_meter": {"id": "main", "previous": 0, "current": 120},
            "meters": [{"id": "1", "previous": 0, "current": 120}],
            "tariff": tariff
        })

        assert response.status_code == 400
        assert "Próg 2" in response.json()["detail"]

    def test_estimate_rejects_invalid_tariff(self, client):
        tariff = dict(TARIFF, slabs=[{"limit": 100, "rate": 6.0}, {"limit": 50, "rate": 4.0}])
        assert client.post("/api/billing/estimate", json={"units": 120, "tariff": tariff}).status_code == 400

        no_slabs = dict(TARIFF, slabs=[])
        response = client.post("/api/billing/estimate", json={"units": 120, "tariff": no_slabs})
        assert response.status_code == 400
        assert "co najmniej jeden próg" in response.json()["detail"]

    def test_estimate(self, client):
        response = client.post("/api/billing/estimate", json={"units": 120, "include_bkash_fee": True, "tariff": TARIFF})

        assert response.status_code == 200
        data = response.json()
        assert data["energy_cost"] == pytest.approx(570.0)
        assert data["total"] == pytest.approx(766.0)
        assert len(data["slabs"]) == 3

    def test_draft_flow(self, client):
        fill_draft(client)

        draft = client.get("/api/billing/draft").json()
        assert draft["config"]["month"] == "January 2025"
        assert draft["main_meter"]["current"] == 120.0
        assert [meter["name"] for meter in draft["meters"]] == ["Flat 1", "Flat 2"]

        client.put("/api/settings/tariff", json=TARIFF)
        calculation = client.get("/api/billing/draft/calculation").json()
        assert calculation["total_collection"] == pytest.approx(766.0)
        assert calculation["calculated_rate"] == pytest.approx(4.9875)

    def test_save_whole_draft(self, client):
        response = client.put("/api/billing/draft", json={
            "config": CONFIG,
            "main_meter": {"id": "main", "current": 50},
            "meters": [{"id": "a", "name": "Flat 1", "current": 50}]
        })

        assert response.status_code == 200
        assert response.json()["updated_at"] is not None
        assert client.get("/api/billing/draft").json()["meters"][0]["id"] == "a"

    def test_unknown_meter(self, client):
        assert client.put("/api/billing/draft/meters/missing", json={"current": 1}).status_code == 404
        assert client.delete("/api/billing/draft/meters/missing").status_code == 404

    def test_delete_meter(self, client):
        meter = client.post("/api/billing/draft/meters", json={"name": "Flat 1"}).json()

        response = client.delete(f"/api/billing/draft/meters/{meter['id']}")

        assert response.status_code == 200
        assert response.json()["meters"] == []

    def test_draft_report(self, client):
        fill_draft(client)

        response = client.get("/api/billing/draft/report")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")


class TestHistoryApi:
    """Testy /api/history."""

    def test_save_draft_to_history(self, client):
        client.put("/api/settings/tariff", json=TARIFF)
        fill_draft(client)

        response = client.post("/api/history/")

        assert response.status_code == 200
        bill = response.json()
        assert bill["config"]["total_bill_payable"] == pytest.approx(766.0)
        assert len(bill["meters"]) == 2

    def test_save_given_bill(self, client):
        response = client.post("/api/history/", json={
            "config": CONFIG,
            "main_meter": {"id": "main", "current": 10},
            "meters": []
        })

        assert response.status_code == 200
        assert response.json()["config"]["month"] == "January 2025"

    def test_list_get_delete(self, client):
        bill_id = client.post("/api/history/").json()["id"]

        assert len(client.get("/api/history/").json()) == 1
        assert client.get(f"/api/history/{bill_id}").json()["id"] == bill_id

        assert client.delete(f"/api/history/{bill_id}").status_code == 200
        assert client.get(f"/api/history/{bill_id}").status_code == 404
        assert client.delete(f"/api/history/{bill_id}").status_code == 404

    def test_calculation_of_stored_bill(self, client):
        client.put("/api/settings/tariff", json=TARIFF)
        fill_draft(client)
        bill_id = client.post("/api/history/").json()["id"]

        data = client.get(f"/api/history/{bill_id}/calculation").json()

        assert data["total_collection"] == pytest.approx(766.0)
        assert client.get("/api/history/999/calculation").status_code == 404

    def test_load_and_next_period(self, client):
        fill_draft(client)
        bill_id = client.post("/api/history/").json()["id"]
        client.patch("/api/billing/draft/config", json={"month": "Something else"})

        loaded = client.post(f"/api/history/{bill_id}/load").json()
        assert loaded["config"]["month"] == "January 2025"

        draft = client.post(f"/api/history/{bill_id}/next-period", json={
            "month": "February 2025",
            "date_generated": "2025-02-28"
        }).json()
        assert draft["config"]["month"] == "February 2025"
        assert draft["main_meter"]["previous"] == 120.0
        assert all(meter["previous"] == 60.0 for meter in draft["meters"])

    def test_next_period_missing_bill(self, client):
        response = client.post("/api/history/5/next-period", json={
            "month": "February 2025",
            "date_generated": "2025-02-28"
        })
        assert response.status_code == 404

    def test_trends(self, client):
        client.put("/api/settings/tariff", json=TARIFF)
        fill_draft(client)
        client.post("/api/history/")

        data = client.get("/api/history/trends").json()

        assert [point["name"] for point in data["points"]] == ["Jan"]
        assert data["users"] == ["Flat 1", "Flat 2"]
        assert data["points"][0]["month_total"] == 766
        assert data["stats"]["total"] == pytest.approx(766.0)

    def test_bill_report(self, client):
        fill_draft(client)
        bill_id = client.post("/api/history/").json()["id"]

        response = client.get(f"/api/history/{bill_id}/report")

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_bill_reports_of_same_date_do_not_overwrite(self, client, tmp_path):
        """Test: dwa rachunki z tą samą datą mają osobne pliki PDF."""
        fill_draft(client)
        first_id = client.post("/api/history/").json()["id"]
        second_id = client.post("/api/history/").json()["id"]

        client.get(f"/api/history/{first_id}/report")
        client.get(f"/api/history/{second_id}/report")
        client.get("/api/billing/draft/report")

        names = sorted(path.name for path in (tmp_path / "bills").iterdir())
        assert names == [
            f"electricity_bill_2025-01-31_bill_{first_id}.pdf",
            f"electricity_bill_2025-01-31_bill_{second_id}.pdf",
            "electricity_bill_2025-01-31_draft.pdf",
        ]


class TestSettingsApi:
    """Testy /api/settings."""

    def test_default_tariff(self, client):
        data = client.get("/api/settings/tariff").json()
        assert data["version"] == 0
        assert data["vat_rate"] == settings.default_vat_rate

    def test_save_tariff(self, client):
        response = client.put("/api/settings/tariff", json=TARIFF)

        assert response.status_code == 200
        assert response.json()["version"] == 1
        assert client.get("/api/settings/tariff").json()["version"] == 1
        assert len(client.get("/api/settings/tariff/versions").json()) == 1

    def test_invalid_tariff(self, client):
        tariff = dict(TARIFF, slabs=[{"limit": 100, "rate": 4.0}, {"limit": 50, "rate": 5.0}])

        response = client.put("/api/settings/tariff", json=tariff)

        assert response.status_code == 400
        assert "Próg 2" in response.json()["detail"]

    def test_tenants(self, client):
        created = client.post("/api/settings/tenants", json={"name": "Flat 1", "meter_no": "1"})
        assert created.status_code == 200
        tenant_id = created.json()["id"]

        assert client.post("/api/settings/tenants", json={"name": "Flat 1"}).status_code == 400

        updated = client.put(f"/api/settings/tenants/{tenant_id}", json={"phone": "555-0101"})
        assert updated.json()["phone"] == "555-0101"
        assert updated.json()["meter_no"] == "1"

        assert [tenant["name"] for tenant in client.get("/api/settings/tenants").json()] == ["Flat 1"]

        assert client.delete(f"/api/settings/tenants/{tenant_id}").status_code == 200
        assert client.delete(f"/api/settings/tenants/{tenant_id}").status_code == 404
        assert client.put(f"/api/settings/tenants/{tenant_id}", json={"phone": "1"}).status_code == 404


class TestSyncApi:
    def test_sync_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "google_sheets_credentials_path", "")
        monkeypatch.setattr(settings, "google_sheets_spreadsheet_id", "")

        assert client.post("/api/sync/push").status_code == 400
        assert client.post("/api/sync/pull").status_code == 400


class RecordingSync:
    """Synchronizacja zapisująca wysłane dane zamiast łączyć się z arkuszem."""

    def __init__(self):
        self.calls = []

    def push_bill(self, bill):
        self.calls.append(("bill", bill.month))

    def push_tariff(self, db):
        self.calls.append(("tariff", None))

    def push_tenants(self, db):
        self.calls.append(("tenants", None))


class TestSheetsWriteThrough:
    """Testy wysyłania zmian do Google Sheets zaraz po zapisie."""

    @pytest.fixture
    def recorder(self, monkeypatch):
        recording_sync = RecordingSync()
        monkeypatch.setattr(settings, "google_sheets_credentials_path", "credentials.json")
        monkeypatch.setattr(settings, "google_sheets_spreadsheet_id", "spreadsheet-id")
        monkeypatch.setattr(google_sheets, "create_sync_from_settings", lambda: recording_sync)
        return recording_sync

    def test_saved_bill_is_sent(self, client, recorder):
        fill_draft(client)

        assert client.post("/api/history/").status_code == 200
        assert recorder.calls == [("bill", "January 2025")]

    def test_tariff_and_tenants_are_sent(self, client, recorder):
        client.put("/api/settings/tariff", json=TARIFF)
        tenant_id = client.post("/api/settings/tenants", json={"name": "Flat 1"}).json()["id"]
        client.put(f"/api/settings/tenants/{tenant_id}", json={"phone": "555-0101"})
        client.delete(f"/api/settings/tenants/{tenant_id}")

        assert recorder.calls == [
            ("tariff", None),
            ("tenants", None),
            ("tenants", None),
            ("tenants", None),
        ]

    def test_rejected_changes_are_not_sent(self, client, recorder):
        client.put("/api/settings/tariff", json=dict(TARIFF, slabs=[]))
        client.post("/api/settings/tenants", json={"name": " "})
        client.delete("/api/settings/tenants/99")

        assert recorder.calls == []

    def test_sheets_error_does_not_fail_save(self, client, monkeypatch):
        def broken():
            raise PermissionError("no access")

        monkeypatch.setattr(settings, "google_sheets_credentials_path", "credentials.json")
        monkeypatch.setattr(settings, "google_sheets_spreadsheet_id", "spreadsheet-id")
        monkeypatch.setattr(google_sheets, "create_sync_from_settings", broken)
        fill_draft(client)

        assert client.post("/api/history/").status_code == 200
        assert len(client.get("/api/history/").json()) == 1
        assert client.put("/api/settings/tariff", json=TARIFF).status_code == 200

    def test_not_configured_nothing_is_sent(self, client, monkeypatch):
        recording_sync = RecordingSync()
        monkeypatch.setattr(settings, "google_sheets_credentials_path", "")
        monkeypatch.setattr(settings, "google_sheets_spreadsheet_id", "")
        monkeypatch.setattr(google_sheets, "create_sync_from_settings", lambda: recording_sync)

        client.post("/api/history/")
        client.put("/api/settings/tariff", json=TARIFF)

        assert recording_sync.calls == []
