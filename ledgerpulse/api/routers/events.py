"""Ledger change-event trigger."""

from fastapi import APIRouter, Request

from ledgerpulse.models.ledger import LedgerChangeEvent
from ledgerpulse.models.reports import ChangeEventAck

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


@router.post("/events", response_model=ChangeEventAck)
async def handle_change_event(event: LedgerChangeEvent, request: Request) -> ChangeEventAck:
    """Apply a create / update / delete of one ledger entry.

    Returns 503 when the inventory and live counters could not be committed;
    the sender is expected to redeliver. A daily-aggregate failure is reported
    as `daily_updated: false` but still acknowledged.
    """
    return await request.app.state.change_handler.handle(event)
