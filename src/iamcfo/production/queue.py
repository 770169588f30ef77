"""Local durable storage for confirmed and pending production entries."""

import json
from datetime import UTC, datetime
from pathlib import Path

import structlog

from iamcfo.config import get_settings
from iamcfo.production.models import ProductionEntry

logger = structlog.get_logger(__name__)

CONFIRMED_SLOT = "wastex-production-entries"
PENDING_SLOT = "wastex-production-offline"


class LocalQueue:
    """Two named JSON slots on disk: confirmed entries and the offline queue."""

    def __init__(self, directory: Path | str | None = None):
        self.directory = Path(directory) if directory else get_settings().data_dir

    def _slot_path(self, slot: str) -> Path:
        return self.directory / f"{slot}.json"

    def _set_aside(self, slot: str, text: str) -> Path | None:
        """Keep an unparseable slot's contents next to it before it is rewritten."""
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%f")
        path = self.directory / f"{slot}.{stamp}.corrupt"
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.error("slot_set_aside_failed", slot=slot, error=str(e))
            return None
        return path

    def _read_slot(self, slot: str) -> list[ProductionEntry]:
        path = self._slot_path(slot)
        if not path.exists():
            return []
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("slot_read_failed", slot=slot, error=str(e))
            return []

        try:
            raw = json.loads(text)
            if not isinstance(raw, list):
                raise ValueError("slot is not a JSON array")
        except ValueError as e:
            kept = self._set_aside(slot, text)
            logger.error("slot_corrupt", slot=slot, error=str(e), kept=str(kept))
            return []

        entries = []
        skipped = 0
        for index, item in enumerate(raw):
            try:
                entries.append(ProductionEntry.from_dict(item))
            except (ValueError, TypeError, AttributeError, KeyError, ArithmeticError) as e:
                skipped += 1
                logger.error("slot_item_skipped", slot=slot, index=index, error=str(e))
        if skipped:
            kept = self._set_aside(slot, text)
            logger.warning("slot_partially_read", slot=slot, skipped=skipped, kept=str(kept))
        return entries

    def _write_slot(self, slot: str, entries: list[ProductionEntry]) -> None:
        path = self._slot_path(slot)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(
            json.dumps([entry.to_dict() for entry in entries]),
            encoding="utf-8",
        )
        tmp.replace(path)

    def load(self) -> tuple[list[ProductionEntry], list[ProductionEntry]]:
        """Read ``(confirmed, pending)``.

        Entries that fail to parse are skipped and the original slot is copied
        to a ``.corrupt`` file, so the next save cannot lose them.
        """
        return self._read_slot(CONFIRMED_SLOT), self._read_slot(PENDING_SLOT)

    def save(
        self, confirmed: list[ProductionEntry], pending: list[ProductionEntry]
    ) -> None:
        """Write both slots. Failures are logged and not raised."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._write_slot(CONFIRMED_SLOT, confirmed)
            self._write_slot(PENDING_SLOT, pending)
            logger.debug(
                "production_state_persisted",
                confirmed=len(confirmed),
                pending=len(pending),
            )
        except OSError as e:
            logger.error("production_state_persist_failed", error=str(e))
