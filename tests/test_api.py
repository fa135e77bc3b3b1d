"""Tests for the FastAPI surface."""

from __future__ import annotations

from collections.abc import Generator

import pytest
import responses
from fastapi.testclient import TestClient

from seismic_monitor.api import create_app
from seismic_monitor.config import SeismicMonitorConfig

REPORT = {"mag": 5.0, "place": "Test", "depth": 10, "lat": 10, "lng": 20, "casualties": 2}


@pytest.fixture
def durable_client(durable_config: SeismicMonitorConfig) -> Generator[TestClient, None, None]:
    """TestClient with lifespan entered so services are wired."""
    with TestClient(create_app(durable_config)) as c:
        yield c


@pytest.fixture
def fallback_client(fallback_config: SeismicMonitorConfig) -> Generator[TestClient, None, None]:
    with TestClient(create_app(fallback_config)) as c:
        yield c


class TestHealthEndpoint:
    def test_durable_mode(self, durable_client: TestClient) -> None:
        resp = durable_client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["storage_mode"] == "durable"
        assert data["stored_events"] == 0
        assert "version" in data
        assert "uptime_seconds" in data

    def test_fallback_mode(self, fallback_client: TestClient) -> None:
        assert fallback_client.get("/health").json()["storage_mode"] == "fallback"


class TestSubmitEndpoint:
    def test_valid_report_created(self, durable_client: TestClient) -> None:
        resp = durable_client.post("/api/quakes", json=REPORT)
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["event"]["is_user_reported"] is True
        assert body["event"]["external_id"].startswith("user-")
        assert body["event"]["casualties"] == 2

    def test_unparsable_field_rejected(self, durable_client: TestClient) -> None:
        resp = durable_client.post("/api/quakes", json={**REPORT, "depth": "deep"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "depth" in body["error"]
        assert durable_client.get("/health").json()["stored_events"] == 0

    def test_negative_casualties_rejected(self, durable_client: TestClient) -> None:
        resp = durable_client.post("/api/quakes", json={**REPORT, "casualties": -4})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_non_object_body_rejected(self, durable_client: TestClient) -> None:
        resp = durable_client.post("/api/quakes", json=[1, 2, 3])
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "object" in body["error"]

    @pytest.mark.parametrize("payload", [b"{not json", b""])
    def test_malformed_json_rejected(self, durable_client: TestClient, payload: bytes) -> None:
        resp = durable_client.post(
            "/api/quakes", content=payload, headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "JSON" in body["error"]
        assert durable_client.get("/health").json()["stored_events"] == 0


class TestQueryEndpoint:
    def test_submit_then_query_with_observer(self, durable_client: TestClient) -> None:
        durable_client.post("/api/quakes", json=REPORT)
        resp = durable_client.get("/api/quakes", params={"minMagnitude": 4, "lat": 10.5, "lon": 20.5})
        assert resp.status_code == 200
        data = resp.json()
        user_rows = [row for row in data if row["is_user_reported"]]
        assert len(user_rows) == 1
        assert user_rows[0]["risk"]["level"] != "N/A"
        assert 0 <= user_rows[0]["risk"]["score"] <= 100

    def test_without_observer_is_not_applicable(self, durable_client: TestClient) -> None:
        durable_client.post("/api/quakes", json=REPORT)
        data = durable_client.get("/api/quakes").json()
        assert data[0]["risk"] == {"distance_km": 0.0, "score": 0, "level": "N/A"}

    def test_zero_observer_is_not_applicable(self, durable_client: TestClient) -> None:
        durable_client.post("/api/quakes", json=REPORT)
        data = durable_client.get("/api/quakes", params={"lat": 0, "lon": 0}).json()
        assert data[0]["risk"]["level"] == "N/A"

    def test_min_magnitude_filters(self, durable_client: TestClient) -> None:
        durable_client.post("/api/quakes", json=REPORT)
        assert durable_client.get("/api/quakes", params={"minMagnitude": 5.5}).json() == []

    def test_legacy_min_mag_alias(self, durable_client: TestClient) -> None:
        durable_client.post("/api/quakes", json=REPORT)
        assert durable_client.get("/api/quakes", params={"minMag": 5.5}).json() == []

    def test_negative_min_magnitude_includes_negative_reports(self, durable_client: TestClient) -> None:
        durable_client.post("/api/quakes", json={**REPORT, "mag": -0.5})
        assert durable_client.get("/api/quakes").json() == []
        resp = durable_client.get("/api/quakes", params={"minMagnitude": -1})
        assert resp.status_code == 200
        assert [row["magnitude"] for row in resp.json()] == [-0.5]

    @responses.activate
    def test_fallback_merges_live_feed(
        self, fallback_client: TestClient, fallback_config: SeismicMonitorConfig, sample_feed_response: dict
    ) -> None:
        responses.add(responses.GET, fallback_config.feed_url, json=sample_feed_response, status=200)
        fallback_client.post("/api/quakes", json=REPORT)

        data = fallback_client.get(
            "/api/quakes", params={"minMagnitude": 4, "lat": 10.5, "lon": 20.5}
        ).json()
        assert len([row for row in data if row["is_user_reported"]]) == 1
        assert {row["external_id"] for row in data if not row["is_user_reported"]} == {
            "us7000abcd",
            "us7000abce",
        }
        scores = [row["risk"]["score"] for row in data]
        assert scores == sorted(scores, reverse=True)

    @responses.activate
    def test_fallback_feed_down_still_serves_reports(
        self, fallback_client: TestClient, fallback_config: SeismicMonitorConfig
    ) -> None:
        responses.add(responses.GET, fallback_config.feed_url, status=503)
        fallback_client.post("/api/quakes", json=REPORT)
        data = fallback_client.get("/api/quakes").json()
        assert len(data) == 1


class TestDeleteEndpoint:
    def test_delete_existing(self, durable_client: TestClient) -> None:
        event_id = durable_client.post("/api/quakes", json=REPORT).json()["event"]["external_id"]
        resp = durable_client.delete(f"/api/quakes/{event_id}")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert durable_client.get("/api/quakes").json() == []

    def test_delete_unknown_id_succeeds(self, durable_client: TestClient) -> None:
        resp = durable_client.delete("/api/quakes/not-a-real-id")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    def test_delete_unknown_id_succeeds_in_fallback(self, fallback_client: TestClient) -> None:
        resp = fallback_client.delete("/api/quakes/not-a-real-id")
        assert resp.json() == {"success": True}
