"""Router module exports."""
from ledgerpulse.api.routers import backfill, cache, events, jobs, notifications, reports

__all__ = ["backfill", "cache", "events", "jobs", "notifications", "reports"]
