"""Tests for the local durable queue."""

import json
from unittest.mock import patch

import pytest

from iamcfo.production.queue import CONFIRMED_SLOT, PENDING_SLOT, LocalQueue


@pytest.fixture
def queue(tmp_path):
    return LocalQueue(tmp_path)


def test_empty_directory_loads_nothing(queue):
    assert queue.load() == ([], [])


def test_save_and_load_round_trip(queue, make_entry, photo):
    confirmed = [make_entry("A", synced=True)]
    pending = [make_entry("B", photo=photo)]

    queue.save(confirmed, pending)

    assert queue.load() == (confirmed, pending)


def test_slots_use_fixed_names(queue, tmp_path, make_entry):
    queue.save([make_entry("A", synced=True)], [])

    assert (tmp_path / f"{CONFIRMED_SLOT}.json").exists()
    assert (tmp_path / f"{PENDING_SLOT}.json").read_text() == "[]"


def test_corrupt_slot_reads_as_empty(queue, tmp_path, make_entry):
    queue.save([make_entry("A", synced=True)], [])
    (tmp_path / f"{PENDING_SLOT}.json").write_text("{not json")

    confirmed, pending = queue.load()

    assert [e.id for e in confirmed] == ["A"]
    assert pending == []
    kept = list(tmp_path.glob(f"{PENDING_SLOT}.*.corrupt"))
    assert [p.read_text() for p in kept] == ["{not json"]


def test_non_list_slot_reads_as_empty(queue, tmp_path):
    (tmp_path / f"{CONFIRMED_SLOT}.json").write_text('{"id": "A"}')

    assert queue.load() == ([], [])
    assert len(list(tmp_path.glob(f"{CONFIRMED_SLOT}.*.corrupt"))) == 1


def test_bad_item_skips_only_that_entry(queue, tmp_path, make_entry):
    good = make_entry("good").to_dict()
    bad = {**make_entry("bad").to_dict(), "photo": "not-a-dict"}
    slot = tmp_path / f"{PENDING_SLOT}.json"
    slot.write_text(json.dumps([good, bad, "not-an-object"]))

    confirmed, pending = queue.load()

    assert confirmed == []
    assert [e.id for e in pending] == ["good"]
    kept = list(tmp_path.glob(f"{PENDING_SLOT}.*.corrupt"))
    assert len(kept) == 1
    assert json.loads(kept[0].read_text())[1]["id"] == "bad"


def test_clean_slot_is_not_set_aside(queue, tmp_path, make_entry):
    queue.save([make_entry("A", synced=True)], [make_entry("B")])

    queue.load()

    assert list(tmp_path.glob("*.corrupt")) == []


def test_write_failure_is_not_raised(queue, make_entry):
    with patch.object(LocalQueue, "_write_slot", side_effect=OSError("disk full")):
        queue.save([make_entry("A")], [])
