"""Tests for /api/jobs, /api/notifications and /api/cache"""

import pytest


class TestJobs:
    @pytest.mark.asyncio
    async def test_list(self, client):
        response = await client.get("/api/jobs")

        jobs = {job["name"]: job for job in response.json()}
        assert set(jobs) == {"rollup", "daily_reset", "monthly_reset", "low_stock"}
        assert jobs["low_stock"]["at"] == "08:00"
        assert jobs["rollup"]["active"] is False

    @pytest.mark.asyncio
    async def test_run_rollup(self, client):
        response = await client.post("/api/jobs/rollup/run")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "completed"
        assert data["result"]["created"] is True

    @pytest.mark.asyncio
    async def test_run_daily_reset(self, client):
        response = await client.post("/api/jobs/daily_reset/run")
        assert response.json()["result"] == 0

    @pytest.mark.asyncio
    async def test_unknown_job(self, client):
        response = await client.post("/api/jobs/vacuum/run")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_already_running(self, client, api_app):
        api_app.state.scheduler._active.add("low_stock")

        response = await client.post("/api/jobs/low_stock/run")

        assert response.status_code == 409


class TestNotifications:
    @pytest.mark.asyncio
    async def test_low_stock_flow(self, client, test_database):
        await test_database.execute_write(
            "INSERT INTO inventory (material, quantity, updated_at) VALUES ('ferro', 12, '2025-03-15T15:00:00+00:00')"
        )

        run = await client.post("/api/jobs/low_stock/run")
        notifications = (await client.get("/api/notifications", params={"unread_only": True})).json()

        assert run.json()["result"]["created"] is True
        assert len(notifications) == 1
        assert notifications[0]["items"][0] == {
            "material": "ferro",
            "quantity": 12,
            "min_level": 100,
            "level": "critical",
        }

        read = await client.post(f"/api/notifications/{notifications[0]['id']}/read")
        assert read.status_code == 200
        assert (await client.get("/api/notifications", params={"unread_only": True})).json() == []
        assert len((await client.get("/api/notifications")).json()) == 1

    @pytest.mark.asyncio
    async def test_mark_missing(self, client):
        response = await client.post("/api/notifications/42/read")

        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"


class TestCacheEndpoints:
    @pytest.mark.asyncio
    async def test_stats_and_clear(self, client):
        await client.get("/api/reports/live-summary")
        await client.get("/api/reports/live-summary")

        stats = (await client.get("/api/cache/stats")).json()
        assert stats["enabled"] is True
        assert stats["hits"] == 1
        assert stats["size"] == 1

        cleared = (await client.post("/api/cache/clear")).json()
        assert cleared == {"status": "cleared", "entries_cleared": 1}
