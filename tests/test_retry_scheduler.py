import logging
import time

import pytest

from conftest import FakeTransport, make_report
from issuerelay_client.errors import QueueError
from issuerelay_client.queue import DeliveryQueue
from issuerelay_client.scheduler import RetryScheduler
from issuerelay_client.storage import QUEUE_KEY, MemoryStore


class CountingQueue:
  def __init__(self, fail_first: int = 0) -> None:
    self.ticks = 0
    self.fail_first = fail_first

  def tick(self):
    self.ticks += 1
    if self.ticks <= self.fail_first:
      raise RuntimeError("storage hiccup")
    return None


class FlakyDiskStore(MemoryStore):
  def __init__(self) -> None:
    super().__init__()
    self.broken = False

  def save(self, key, records):
    if self.broken and key == QUEUE_KEY:
      raise OSError("read-only file system")
    super().save(key, records)


def _wait_for(predicate, timeout=2.0):
  deadline = time.monotonic() + timeout
  while time.monotonic() < deadline:
    if predicate():
      return True
    time.sleep(0.01)
  return False


def test_scheduler_ticks_periodically_until_stopped():
  queue = CountingQueue()
  scheduler = RetryScheduler(queue, interval_seconds=0.01)

  scheduler.start()
  assert scheduler.running
  assert _wait_for(lambda: queue.ticks >= 3)
  scheduler.stop()
  ticks_at_stop = queue.ticks
  time.sleep(0.05)

  assert not scheduler.running
  assert queue.ticks == ticks_at_stop


def test_failing_tick_does_not_stop_scheduler(caplog):
  queue = CountingQueue(fail_first=2)

  with caplog.at_level(logging.ERROR, logger="issuerelay_client.scheduler"):
    with RetryScheduler(queue, interval_seconds=0.01):
      assert _wait_for(lambda: queue.ticks >= 4)

  assert "Queue tick failed" in caplog.text


def test_start_is_idempotent():
  scheduler = RetryScheduler(CountingQueue(), interval_seconds=10)
  scheduler.start()
  first_thread = scheduler._thread

  scheduler.start()

  assert scheduler._thread is first_thread
  scheduler.stop()


def test_scheduler_can_restart_after_stop():
  queue = CountingQueue()
  scheduler = RetryScheduler(queue, interval_seconds=0.01)
  scheduler.start()
  scheduler.stop()

  scheduler.start()
  assert _wait_for(lambda: queue.ticks >= 1)
  scheduler.stop()


def test_first_tick_waits_one_interval():
  queue = CountingQueue()
  scheduler = RetryScheduler(queue, interval_seconds=10)

  scheduler.start()
  time.sleep(0.05)
  scheduler.stop()

  assert queue.ticks == 0


def test_interval_must_be_positive():
  with pytest.raises(ValueError):
    RetryScheduler(CountingQueue(), interval_seconds=0)


def test_tick_that_cannot_persist_leaves_head_for_next_tick(caplog):
  store = FlakyDiskStore()
  transport = FakeTransport(fail=True)
  queue = DeliveryQueue(transport=transport, store=store)
  queue.submit(make_report("stuck"))
  scheduler = RetryScheduler(queue, interval_seconds=10)

  store.broken = True
  with pytest.raises(QueueError):
    queue.tick()
  with caplog.at_level(logging.ERROR, logger="issuerelay_client.scheduler"):
    scheduler.run_once()

  assert "Queue tick failed" in caplog.text
  entries = queue.pending()
  assert [e.report.message for e in entries] == ["stuck"]
  assert entries[0].retry_count == 0

  store.broken = False
  transport.fail = False
  event = queue.tick()

  assert event.kind == "delivered"
  assert queue.size() == 0
