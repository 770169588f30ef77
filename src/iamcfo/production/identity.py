"""Stable identity of production entries across the local and remote copies."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from iamcfo.production.models import ProductionEntry


@dataclass(frozen=True)
class EntryKey:
    """Identity of one logical production entry.

    ``kind`` is ``"id"`` when the entry carries an identifier, otherwise
    ``"composite"`` and ``value`` joins log date, client, total and photo hash.
    """

    kind: Literal["id", "composite"]
    value: str


def _amount(value: Decimal) -> str:
    # 1600, 1600.0 and 1600.00 are the same amount
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def composite_key(entry: ProductionEntry) -> EntryKey:
    """Field-derived identity, ignoring the identifier."""
    parts = (
        entry.log_date.isoformat(),
        entry.client_name,
        _amount(entry.total_amount),
        entry.photo_hash or "",
    )
    return EntryKey("composite", "|".join(parts))


def entry_key(entry: ProductionEntry) -> EntryKey:
    """Identifier when present and non-blank, otherwise the composite."""
    if entry.id and entry.id.strip():
        return EntryKey("id", entry.id.strip())
    return composite_key(entry)
