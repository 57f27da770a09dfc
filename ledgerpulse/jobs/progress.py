"""Backfill progress tracking persisted as JSON for the status endpoint."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class BackfillProgressData(BaseModel):
    status: str = "idle"
    phase: str = ""
    message: str = ""
    run_type: str = ""
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    progress: dict = Field(default_factory=dict)
    error: Optional[str] = None


class BackfillProgress:
    """Persist reconciliation progress to disk."""

    def __init__(self, status_file: Path):
        self.status_file = status_file
        self._data = BackfillProgressData()

    @property
    def data(self) -> BackfillProgressData:
        return self._data

    def start(self, run_type: str, period_start: str, period_end: str) -> None:
        self._data = BackfillProgressData(
            status="running",
            phase="scan",
            message=f"Scanning ledger {period_start} to {period_end}",
            run_type=run_type,
            started_at=datetime.now(timezone.utc),
            period_start=period_start,
            period_end=period_end,
        )
        self._save()

    def update(self, phase: str, message: str, **progress) -> None:
        self._data.phase = phase
        self._data.message = message
        self._data.progress.update(progress)
        self._save()

    def finish_success(self, message: str) -> None:
        self._data.status = "success"
        self._data.phase = "done"
        self._data.finished_at = datetime.now(timezone.utc)
        self._data.message = message
        self._save()

    def finish_error(self, error: str) -> None:
        self._data.status = "error"
        self._data.finished_at = datetime.now(timezone.utc)
        self._data.error = error
        self._save()

    def _save(self) -> None:
        self.status_file.parent.mkdir(parents=True, exist_ok=True)
        with self.status_file.open("w", encoding="utf-8") as handle:
            json.dump(self._data.model_dump(mode="json"), handle, indent=2, default=str)

    def load(self) -> BackfillProgressData:
        if self.status_file.exists():
            try:
                with self.status_file.open("r", encoding="utf-8") as handle:
                    return BackfillProgressData(**json.load(handle))
            except (OSError, ValueError) as exc:
                logger.warning("Unreadable backfill status file %s: %s", self.status_file, exc)
        return BackfillProgressData()
