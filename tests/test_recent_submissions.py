import pytest

from conftest import make_report
from issuerelay_client.recent import RecentSubmissions
from issuerelay_client.storage import RECENT_KEY, JsonFileStore, MemoryStore


def test_record_inserts_newest_first(recent):
  recent.record(make_report("older"), "id-1")
  recent.record(make_report("newer", report_type="slow"), "id-2")

  records = recent.list()

  assert [r.id for r in records] == ["id-2", "id-1"]
  assert records[0].type == "slow"
  assert records[0].message == "newer"


def test_overflow_evicts_oldest_by_insertion_order(store):
  recent = RecentSubmissions(store, capacity=5)
  for i in range(8):
    recent.record(make_report(f"m{i}"), f"id-{i}")

  assert [r.id for r in recent.list()] == ["id-7", "id-6", "id-5", "id-4", "id-3"]
  assert len(store.load(RECENT_KEY)) == 5


def test_history_survives_new_tracker_instance(tmp_path):
  RecentSubmissions(JsonFileStore(tmp_path)).record(make_report("persisted"), "id-9")

  records = RecentSubmissions(JsonFileStore(tmp_path)).list()

  assert [r.message for r in records] == ["persisted"]


def test_unreadable_records_are_skipped(caplog):
  store = MemoryStore()
  store.save(RECENT_KEY, [{"id": "ok", "type": "bug", "message": "fine", "timestamp": "2025-01-15T12:00:00+00:00"}, {"id": "broken"}])

  records = RecentSubmissions(store).list()

  assert [r.id for r in records] == ["ok"]
  assert "Skipping unreadable recent submission" in caplog.text


def test_capacity_must_be_positive(store):
  with pytest.raises(ValueError):
    RecentSubmissions(store, capacity=0)
