"""Tests for the Web API (F4)."""

import pytest
from fastapi.testclient import TestClient

from trainer.db.catalog import load_catalog, seed_catalog
from trainer.db.storage import Storage, StorageError
from trainer.web.api import create_app
from trainer.web.service import get_trainer


@pytest.fixture
def client(project_dir):
    """Create test client over a seeded database."""
    with Storage(project_dir / "db" / "trainer.db") as store:
        seed_catalog(store, load_catalog(project_dir / "data" / "catalog" / "test.yaml"))

    app = create_app()
    return TestClient(app)


@pytest.fixture
def unseeded_client(project_dir):
    return TestClient(create_app())


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data


class TestNext:
    """Tests for GET /api/next."""

    def test_next_recommendation(self, client):
        response = client.get("/api/next")

        assert response.status_code == 200
        rec = response.json()["recommendation"]
        assert rec["id"] == 1
        assert rec["title"] == "Two Sum"
        assert rec["tier"] == "discovery"
        assert rec["label"] == "✨ New Discovery"
        assert rec["skills"] == ["Arrays"]

    def test_next_unseeded_database(self, unseeded_client):
        response = unseeded_client.get("/api/next")

        assert response.status_code == 503
        assert "Track not found" in response.json()["detail"]


class TestSubmitAttempt:
    """Tests for POST /api/attempts."""

    def test_submit_attempt(self, client):
        response = client.post(
            "/api/attempts",
            json={"problem_id": 1, "time_minutes": 5, "solved": True},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["problem_id"] == 1
        assert data["canonical_id"] == 1
        assert data["is_new"] is True
        assert data["branch"] == "new_clean"
        assert data["ease_factor"] == pytest.approx(2.65)
        assert data["interval_days"] == 4.0
        assert data["mastery"][0]["new_mastery"] == pytest.approx(0.12)

    def test_submit_alternative(self, client):
        response = client.post(
            "/api/attempts",
            json={"problem_id": 1001, "time_minutes": 5, "solved": True},
        )

        assert response.status_code == 201
        assert response.json()["canonical_id"] == 1

    def test_second_attempt_is_review(self, client):
        body = {"problem_id": 2, "time_minutes": 25, "solved": True}
        client.post("/api/attempts", json=body)

        data = client.post("/api/attempts", json=body).json()

        assert data["is_new"] is False
        assert data["branch"] == "review_normal"

    def test_unknown_problem(self, client):
        response = client.post(
            "/api/attempts",
            json={"problem_id": 999, "time_minutes": 5, "solved": True},
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Problem not found: 999"

    def test_negative_minutes_rejected(self, client):
        response = client.post(
            "/api/attempts",
            json={"problem_id": 1, "time_minutes": -1, "solved": True},
        )
        assert response.status_code == 422

    def test_storage_failure(self, client, monkeypatch):
        trainer = get_trainer()

        def fail(log, timestamp):
            raise StorageError("database is locked")

        monkeypatch.setattr(trainer.storage, "append_attempt", fail)

        response = client.post(
            "/api/attempts",
            json={"problem_id": 1, "time_minutes": 5, "solved": True},
        )

        assert response.status_code == 503
        assert response.json()["detail"] == "database is locked"


class TestProgress:
    """Tests for GET /api/skills and GET /api/schedule."""

    def test_list_skills(self, client):
        response = client.get("/api/skills")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 4
        skills = {s["name"]: s for s in data["skills"]}
        assert skills["Arrays"]["unlocked"] is True
        assert skills["Trees"]["locked_by"] == ["Two Pointers", "Stack"]

    def test_schedule(self, client):
        assert client.get("/api/schedule").json()["count"] == 0

        client.post("/api/attempts", json={"problem_id": 1, "time_minutes": 5, "solved": True})

        data = client.get("/api/schedule").json()
        assert data["count"] == 1
        assert data["reviews"][0]["title"] == "Two Sum"
        assert data["reviews"][0]["due"] is False
