"""Rendered report artifacts (document / spreadsheet).

Rendering and storage live outside this service: a `ReportRenderer` receives
the collected data and returns a download URL.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import pytz

from ledgerpulse.exceptions import NotFoundError, QueryValidationError, RendererNotConfiguredError
from ledgerpulse.ledger.reader import LedgerReader
from ledgerpulse.models.ledger import EntryKind, LedgerEntry
from ledgerpulse.models.reports import AggregatedSummary, ArtifactRequest, ArtifactResponse
from ledgerpulse.query.aggregate_reader import AggregateReader
from ledgerpulse.query.report_service import summarize
from ledgerpulse.timeutil import day_bounds, parse_date_key

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("pdf", "excel")
MAX_ENTRIES = 1000


class ReportRenderer(Protocol):
    async def render(
        self, format: str, summary: AggregatedSummary, entries: list[LedgerEntry]
    ) -> str:
        """Render and store the artifact, returning its download URL."""
        ...


class ArtifactService:
    def __init__(
        self,
        aggregates: AggregateReader,
        ledger: LedgerReader,
        renderer: Optional[ReportRenderer] = None,
        tz: pytz.BaseTzInfo = pytz.utc,
    ):
        self.aggregates = aggregates
        self.ledger = ledger
        self.renderer = renderer
        self.tz = tz

    async def generate(self, request: ArtifactRequest) -> ArtifactResponse:
        if request.format not in SUPPORTED_FORMATS:
            raise QueryValidationError("Invalid format. Use 'pdf' or 'excel'.")

        filters = request.filters
        try:
            start_day = parse_date_key(filters.start_date) if filters.start_date else None
            end_day = parse_date_key(filters.end_date) if filters.end_date else None
        except ValueError as exc:
            raise QueryValidationError(f"Invalid date (expected YYYY-MM-DD): {exc}") from exc

        kind = None
        if filters.kind:
            kind = EntryKind.parse(filters.kind)
            if kind is None:
                raise QueryValidationError(f"Unknown kind: {filters.kind}")

        start_key = start_day.isoformat() if start_day else "0000-01-01"
        end_key = end_day.isoformat() if end_day else "9999-12-31"
        records = await self.aggregates.get_daily_range(start_key, end_key)
        summary = summarize(records, start_key, end_key)

        entries = await self.ledger.recent_entries(
            start=day_bounds(start_day, self.tz)[0] if start_day else None,
            end=day_bounds(end_day, self.tz)[1] if end_day else None,
            material=filters.material,
            kind=kind,
            limit=MAX_ENTRIES,
        )
        if not entries:
            raise NotFoundError("No transactions match the report filters")

        if self.renderer is None:
            raise RendererNotConfiguredError("No report renderer is configured")

        logger.info("Rendering %s report with %d transactions", request.format, len(entries))
        url = await self.renderer.render(request.format, summary, entries)
        return ArtifactResponse(success=True, download_url=url)
