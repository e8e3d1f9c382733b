from datetime import date

import pytest
from fastapi.testclient import TestClient

from PlayLog.api.deps import get_clock, get_settings
from PlayLog.api.main import app
from PlayLog.database.store import PlaytimeStore

BASE = "/api/v1/playtime"


class FixedClock:
    def today(self):
        return date(2025, 6, 1)


@pytest.fixture
def client(settings, make_session):
    with PlaytimeStore.open(settings.db_path) as store:
        store.replace_window_sessions("2025-06-01", [
            make_session("2025-06-01T14:00:00", 90, ordinal=1),
            make_session("2025-06-01T16:00:00", 60, game_id="730", game_name="Counter-Strike 2"),
        ])
        store.replace_window_sessions("2025-05-28", [make_session("2025-05-28T15:00:00", 30)])

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: FixedClock()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_read_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "PlayLog API" in response.json()["message"]


def test_read_day(client):
    response = client.get(f"{BASE}/day/2025-06-01")
    assert response.status_code == 200
    body = response.json()
    assert body["total_minutes"] == 150
    assert body["total_hours"] == 2.5
    assert [s["record_id"] for s in body["sessions"]] == [
        "DAILY_2025-06-01_570_PERIOD_1",
        "DAILY_2025-06-01_730_PERIOD_1",
    ]
    assert body["sessions"][0]["start_local"].endswith("-04:00")


def test_query_defaults_to_today(client):
    response = client.get(f"{BASE}/")
    assert response.status_code == 200
    assert response.json()["label"] == "2025-06-01"
    assert response.json()["total_minutes"] == 150


def test_query_by_date_and_range(client):
    assert client.get(f"{BASE}/", params={"date": "2025-05-28"}).json()["total_minutes"] == 30
    body = client.get(f"{BASE}/", params={"start": "2025-05-28", "end": "2025-06-01"}).json()
    assert body["total_minutes"] == 180
    assert body["session_count"] == 3


def test_query_by_period_uses_local_today(client):
    body = client.get(f"{BASE}/", params={"period": "week"}).json()
    assert body["label"] == "2025-05-25 to 2025-06-01"
    assert body["total_minutes"] == 180


def test_range_endpoint(client):
    body = client.get(f"{BASE}/range", params={"start": "2025-06-01", "end": "2025-06-01"}).json()
    assert body["total_minutes"] == 150


@pytest.mark.parametrize("path", [
    f"{BASE}/day/06-01-2025",
    f"{BASE}/?date=garbage",
    f"{BASE}/range?start=2025-06-01",
    f"{BASE}/range?start=2025-06-05&end=2025-06-01",
])
def test_malformed_filters_return_empty_totals(client, path):
    response = client.get(path)
    assert response.status_code == 200
    body = response.json()
    assert body["total_minutes"] == 0
    assert body["sessions"] == []
