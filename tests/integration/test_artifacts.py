"""Integration tests for ledgerpulse/reports/artifacts.py"""

import pytest

from ledgerpulse.exceptions import NotFoundError, QueryValidationError, RendererNotConfiguredError
from ledgerpulse.ledger import LedgerReader
from ledgerpulse.models.reports import ArtifactRequest
from ledgerpulse.query.aggregate_reader import AggregateReader
from ledgerpulse.reports.artifacts import ArtifactService
from tests.fixtures.ledger import entry, insert_entries, local


class RecordingRenderer:
    def __init__(self):
        self.calls = []

    async def render(self, format, summary, entries):
        self.calls.append((format, summary, entries))
        return f"https://files.example/report.{format}"


def make_service(db, tz, renderer=None):
    return ArtifactService(AggregateReader(db), LedgerReader(db), renderer, tz=tz)


def request(fmt="pdf", **filters):
    return ArtifactRequest.model_validate({"format": fmt, "filters": filters})


class TestArtifactService:
    @pytest.mark.asyncio
    async def test_renders_filtered_entries(self, test_database, tz):
        await insert_entries(
            test_database,
            [
                entry("a", "sale", material="ferro", when=local(2025, 3, 1)),
                entry("b", "venda", material="ferro", when=local(2025, 3, 5)),
                entry("c", "purchase", material="ferro", when=local(2025, 3, 6)),
                entry("d", "sale", material="ferro", when=local(2025, 4, 1)),
            ],
        )
        renderer = RecordingRenderer()

        response = await make_service(test_database, tz, renderer).generate(
            request("excel", startDate="2025-03-01", endDate="2025-03-31", material="ferro", tipo="venda")
        )

        assert response.success is True
        assert response.download_url == "https://files.example/report.excel"
        fmt, summary, entries = renderer.calls[0]
        assert fmt == "excel"
        assert summary.start_date == "2025-03-01"
        assert [item.id for item in entries] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_unsupported_format(self, test_database, tz):
        with pytest.raises(QueryValidationError):
            await make_service(test_database, tz, RecordingRenderer()).generate(request("docx"))

    @pytest.mark.asyncio
    async def test_bad_date(self, test_database, tz):
        with pytest.raises(QueryValidationError):
            await make_service(test_database, tz, RecordingRenderer()).generate(request(start_date="01/03/2025"))

    @pytest.mark.asyncio
    async def test_no_matching_entries(self, test_database, tz):
        with pytest.raises(NotFoundError):
            await make_service(test_database, tz, RecordingRenderer()).generate(request(material="ouro"))

    @pytest.mark.asyncio
    async def test_without_renderer(self, test_database, tz):
        await insert_entries(test_database, [entry("a", "sale")])

        with pytest.raises(RendererNotConfiguredError):
            await make_service(test_database, tz).generate(request())
