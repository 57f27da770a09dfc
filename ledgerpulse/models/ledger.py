"""Ledger entry snapshots and change events."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ledgerpulse.timeutil import parse_timestamp


class EntryKind(str, Enum):
    """Kind of ledger entry."""

    PURCHASE = "purchase"
    SALE = "sale"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, value: Any) -> Optional["EntryKind"]:
        """Map English or legacy Portuguese kind names; None when unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return _KIND_ALIASES.get(value.strip().lower())

    def stored_names(self) -> list[str]:
        """Every spelling of this kind that may appear in the ledger table."""
        return [name for name, kind in _KIND_ALIASES.items() if kind is self]


_KIND_ALIASES = {
    "purchase": EntryKind.PURCHASE,
    "compra": EntryKind.PURCHASE,
    "sale": EntryKind.SALE,
    "venda": EntryKind.SALE,
    "expense": EntryKind.EXPENSE,
    "despesa": EntryKind.EXPENSE,
}


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class LedgerEntry(BaseModel):
    """Snapshot of one purchase, sale or expense.

    Snapshots arrive already validated by the ledger writer; anything missing
    or malformed is normalized to None / 0 rather than rejected. Field names
    of the legacy document format (tipo, quantidade, valorTotal, ...) are
    accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    kind: Optional[EntryKind] = Field(None, validation_alias=AliasChoices("kind", "tipo"))
    material: Optional[str] = None
    quantity: float = Field(0.0, validation_alias=AliasChoices("quantity", "quantidade"))
    unit_price: float = Field(
        0.0, validation_alias=AliasChoices("unit_price", "unitPrice", "precoUnitario")
    )
    total_value: float = Field(
        0.0, validation_alias=AliasChoices("total_value", "totalValue", "valorTotal")
    )
    payment_method: Optional[str] = Field(
        None, validation_alias=AliasChoices("payment_method", "paymentMethod", "formaPagamento")
    )
    timestamp: Optional[datetime] = Field(None, validation_alias=AliasChoices("timestamp", "data"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> Optional[EntryKind]:
        return EntryKind.parse(value)

    @field_validator("material", "payment_method", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Optional[str]:
        return _optional_str(value)

    @field_validator("quantity", "unit_price", "total_value", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float:
        return _number(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @classmethod
    def from_row(cls, row) -> "LedgerEntry":
        """Build from a `transactions` table row."""
        return cls(
            id=row["id"],
            kind=row["kind"],
            material=row["material"],
            quantity=row["quantity"],
            unit_price=row["unit_price"],
            total_value=row["total_value"],
            payment_method=row["payment_method"],
            timestamp=row["timestamp"],
        )


class LedgerChangeEvent(BaseModel):
    """A create (before=None), update, or delete (after=None) of one entry."""

    event_id: Optional[str] = Field(None, validation_alias=AliasChoices("event_id", "eventId", "id"))
    before: Optional[LedgerEntry] = None
    after: Optional[LedgerEntry] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _require_snapshot(self) -> "LedgerChangeEvent":
        if self.before is None and self.after is None:
            raise ValueError("A change event needs a before or an after snapshot")
        return self
