"""Tests for /api/backfill endpoints"""

import pytest

from tests.fixtures.ledger import entry, insert_entries, local


class TestBackfill:
    @pytest.mark.asyncio
    async def test_run_and_history(self, client, test_database):
        await insert_entries(
            test_database,
            [
                entry("p1", "purchase", quantity=50, total_value=100, when=local(2025, 1, 10)),
                entry("s1", "sale", quantity=20, total_value=80, when=local(2025, 1, 11)),
            ],
        )

        response = await client.post(
            "/api/backfill", json={"startDate": "2025-01-01", "endDate": "2025-01-31"}
        )

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is True
        assert data["days_created"] == 2
        assert data["transactions_processed"] == 2

        history = (await client.get("/api/backfill/history")).json()
        assert len(history) == 1
        assert history[0]["days_created"] == 2

        status = (await client.get("/api/backfill/status")).json()
        assert status["status"] == "success"
        assert status["is_running"] is False

    @pytest.mark.asyncio
    async def test_inverted_range(self, client):
        response = await client.post(
            "/api/backfill", json={"startDate": "2025-02-01", "endDate": "2025-01-01"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_conflict_while_running(self, client, api_app):
        api_app.state.reconciliation._running = True

        response = await client.post("/api/backfill", json={})

        assert response.status_code == 409
        assert response.json()["error_code"] == "conflict"

    @pytest.mark.asyncio
    async def test_rate_limited(self, client):
        body = {"startDate": "2025-01-01", "endDate": "2025-01-02"}
        for _ in range(2):
            assert (await client.post("/api/backfill", json=body)).status_code == 200

        response = await client.post("/api/backfill", json=body)

        assert response.status_code == 429
        assert response.json()["error_code"] == "rate_limited"


class TestMonthRollup:
    @pytest.mark.asyncio
    async def test_month(self, client, test_database):
        await insert_entries(test_database, [entry("s1", "sale", total_value=80, when=local(2025, 2, 14))])

        response = await client.post("/api/backfill/month", json={"year": 2025, "month": 2})

        data = response.json()
        assert response.status_code == 200
        assert data["period_start"] == "2025-02-01"
        assert data["period_end"] == "2025-02-28"
        assert data["days_created"] == 1

    @pytest.mark.asyncio
    async def test_month_out_of_range(self, client):
        response = await client.post("/api/backfill/month", json={"year": 2025, "month": 13})
        assert response.status_code == 422
