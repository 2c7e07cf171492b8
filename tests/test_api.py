"""HTTP tests for the FastAPI application."""
from __future__ import annotations

import asyncio
import random

import pytest
from fastapi.testclient import TestClient

from parrot_progress.config import Settings
from parrot_progress.main import create_app
from parrot_progress.repositories import InMemoryProgressionStore
from parrot_progress.security import create_access_token
from parrot_progress.services.gacha import DrawEngine

from .conftest import FlakyStore


@pytest.fixture
def api_settings() -> Settings:
    return Settings(jwt_secret="test-secret")


@pytest.fixture
def memory_store() -> InMemoryProgressionStore:
    store = InMemoryProgressionStore()
    asyncio.run(store.seed_if_empty())
    return store


def _client(store, settings) -> TestClient:
    app = create_app(settings, store=store)
    app.state.draw_engine = DrawEngine(random.Random(5))
    return TestClient(app)


@pytest.fixture
def client(memory_store, api_settings):
    with _client(memory_store, api_settings) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(api_settings) -> dict:
    token = create_access_token({"sub": "user-1"}, api_settings)
    return {"Authorization": f"Bearer {token}"}


class TestHealthAndAuth:
    def test_healthcheck(self, client):
        assert client.get("/").json() == {"status": "ok"}

    def test_missing_token(self, client):
        response = client.get("/api/tickets")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_docs_advertise_plain_bearer_auth(self, client):
        schemes = client.get("/openapi.json").json()["components"]["securitySchemes"]
        assert schemes == {"HTTPBearer": {"type": "http", "scheme": "bearer"}}

    def test_token_signed_with_other_secret(self, client):
        token = create_access_token({"sub": "user-1"}, Settings(jwt_secret="someone-else"))
        response = client.get("/api/tickets", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestProgressionRoutes:
    def test_account_creation_is_idempotent(self, client, auth_headers):
        first = client.post("/api/accounts", headers=auth_headers)
        second = client.post("/api/accounts", headers=auth_headers)

        assert first.json() == {"user_id": "user-1", "created": True}
        assert second.json() == {"user_id": "user-1", "created": False}
        tickets = client.get("/api/tickets", headers=auth_headers).json()
        assert tickets == {"user_id": "user-1", "ticket_count": 5}

    def test_diary_reward_flow(self, client, auth_headers):
        client.post("/api/accounts", headers=auth_headers)

        response = client.post(
            "/api/diary-entries/rewards",
            json={"entry_id": "entry-1", "lines": ["a" * 100, "b" * 100, "c" * 100]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "xp": 600,
            "tickets": 3,
            "leveled_up": False,
            "new_level": None,
            "already_rewarded": False,
            "degraded": False,
        }
        tickets = client.get("/api/tickets", headers=auth_headers).json()
        assert tickets == {"user_id": "user-1", "ticket_count": 8}
        assert client.get("/api/progression", headers=auth_headers).json() == {
            "level": 1,
            "total_xp": 600,
            "current_level_xp": 600,
            "next_level_required_xp": 1000,
        }

    def test_lines_must_be_filled_in_order(self, client, auth_headers):
        response = client.post(
            "/api/diary-entries/rewards",
            json={"entry_id": "entry-1", "lines": ["", "late"]},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_more_than_three_lines_rejected(self, client, auth_headers):
        response = client.post(
            "/api/diary-entries/rewards",
            json={"entry_id": "entry-1", "lines": ["a", "b", "c", "d"]},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_entry_id_is_required(self, client, auth_headers):
        response = client.post(
            "/api/diary-entries/rewards", json={"lines": ["a" * 100]}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_reposting_an_entry_earns_nothing(self, client, auth_headers):
        client.post("/api/accounts", headers=auth_headers)
        payload = {"entry_id": "entry-1", "lines": ["a" * 100, "b" * 100, "c" * 100]}

        responses = [
            client.post("/api/diary-entries/rewards", json=payload, headers=auth_headers)
            for _ in range(10)
        ]

        assert all(response.status_code == 200 for response in responses)
        assert [r.json()["already_rewarded"] for r in responses] == [False] + [True] * 9
        assert client.get("/api/tickets", headers=auth_headers).json()["ticket_count"] == 8
        assert client.get("/api/progression", headers=auth_headers).json()["total_xp"] == 600


class TestStreakRoutes:
    def test_streak_starts_empty(self, client, auth_headers):
        assert client.get("/api/streak", headers=auth_headers).json() == {
            "streak_count": 0,
            "max_streak": 0,
            "rank": "bronze",
            "days_to_next_rank": 10,
        }

    def test_check_in_twice_on_one_day(self, client, auth_headers):
        first = client.post("/api/streak/check-in", headers=auth_headers)
        second = client.post("/api/streak/check-in", headers=auth_headers)

        assert first.status_code == 200
        assert first.json() == second.json()
        assert second.json()["streak_count"] == 0


class TestGachaRoutes:
    def test_catalog_listing(self, client):
        catalog = client.get("/api/collectibles").json()
        assert catalog
        assert {"id", "name", "rarity_tier", "display_weight"} <= set(catalog[0])

    def test_redeem_and_view_collection(self, client, auth_headers):
        client.post("/api/accounts", headers=auth_headers)

        response = client.post("/api/gacha/redeem", json={"count": 3}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert len(body["results"]) == 3
        assert body["remaining_tickets"] == 2
        for result in body["results"]:
            assert result["rarity_tier"] == result["collectible"]["rarity_tier"]

        collection = client.get("/api/collection", headers=auth_headers).json()
        assert sum(record["obtain_count"] for record in collection) == 3

    def test_insufficient_tickets(self, client, auth_headers):
        client.post("/api/accounts", headers=auth_headers)

        response = client.post("/api/gacha/redeem", json={"count": 6}, headers=auth_headers)

        assert response.status_code == 409
        assert "need 6, have 5" in response.json()["detail"]

    def test_count_above_hard_cap(self, client, auth_headers):
        response = client.post("/api/gacha/redeem", json={"count": 51}, headers=auth_headers)
        assert response.status_code == 422

    def test_empty_catalog(self, api_settings, auth_headers):
        store = InMemoryProgressionStore()
        asyncio.run(store.seed_if_empty(definitions=[]))
        with _client(store, api_settings) as test_client:
            test_client.post("/api/accounts", headers=auth_headers)
            response = test_client.post("/api/gacha/redeem", json={"count": 1}, headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["detail"] == "No collectibles are available to draw right now"

    def test_store_failure_is_a_generic_error(self, memory_store, api_settings, auth_headers):
        flaky = FlakyStore(memory_store, {"list_catalog": -1})
        with _client(flaky, api_settings) as test_client:
            response = test_client.post("/api/gacha/redeem", json={"count": 1}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"detail": "Something went wrong, please try again"}
