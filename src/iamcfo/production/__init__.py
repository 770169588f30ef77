"""WasteX production log: entries, offline queue, merge and export."""

from iamcfo.production.identity import EntryKey, composite_key, entry_key
from iamcfo.production.merge import merge_entries, sort_newest_first
from iamcfo.production.models import (
    ProductionEntry,
    ProductionForm,
    ProductionPhoto,
    ValidationError,
    validate_production_form,
)
from iamcfo.production.queue import LocalQueue

# Sync and photo services are imported from their modules directly;
# iamcfo.state depends on this package.

__all__ = [
    "EntryKey",
    "composite_key",
    "entry_key",
    "merge_entries",
    "sort_newest_first",
    "ProductionEntry",
    "ProductionForm",
    "ProductionPhoto",
    "ValidationError",
    "validate_production_form",
    "LocalQueue",
]
