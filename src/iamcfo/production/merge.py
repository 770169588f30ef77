"""Merge confirmed and pending production entries into one display list."""

from collections.abc import Iterable

from iamcfo.production.identity import EntryKey, entry_key
from iamcfo.production.models import ProductionEntry


def merge_entries(
    confirmed: Iterable[ProductionEntry],
    pending: Iterable[ProductionEntry],
) -> list[ProductionEntry]:
    """One entry per logical identity, confirmed copies taking precedence.

    A pending entry is dropped only when its key already belongs to a
    confirmed entry. Two loads logged with the same date, client and total
    stay separate as long as each carries its own identifier.
    """
    merged: dict[EntryKey, ProductionEntry] = {}

    for entry in confirmed:
        merged[entry_key(entry)] = entry.as_confirmed()

    for entry in pending:
        merged.setdefault(entry_key(entry), entry)

    return list(merged.values())


def sort_newest_first(entries: Iterable[ProductionEntry]) -> list[ProductionEntry]:
    return sorted(entries, key=lambda e: e.sort_timestamp, reverse=True)
