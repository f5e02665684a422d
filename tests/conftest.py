import itertools
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from issuerelay_client.errors import TransportError
from issuerelay_client.models import DeliveryReceipt, Report
from issuerelay_client.queue import DeliveryQueue
from issuerelay_client.recent import RecentSubmissions
from issuerelay_client.storage import MemoryStore
from issuerelay_client.transport import Transport

FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeTransport(Transport):
  """
  Scripted transport.

  ``outcomes`` is consumed one item per delivery: True succeeds, False
  raises TransportError, an exception instance is raised as-is. Once the
  script runs out, ``fail`` decides.
  """

  def __init__(self, outcomes: Optional[list] = None, fail: bool = False) -> None:
    self.calls: List[Report] = []
    self.fail = fail
    self.in_flight = 0
    self.max_in_flight = 0
    self._outcomes = list(outcomes or [])
    self._ids = itertools.count(1)

  def deliver(self, report: Report) -> DeliveryReceipt:
    self.calls.append(report)
    self.in_flight += 1
    self.max_in_flight = max(self.max_in_flight, self.in_flight)
    try:
      outcome = self._outcomes.pop(0) if self._outcomes else not self.fail
      if isinstance(outcome, Exception):
        raise outcome
      if not outcome:
        raise TransportError("collector unavailable")
      return DeliveryReceipt(report_id=f"rep-{next(self._ids)}")
    finally:
      self.in_flight -= 1


@pytest.fixture
def store() -> MemoryStore:
  return MemoryStore()


@pytest.fixture
def transport() -> FakeTransport:
  return FakeTransport()


@pytest.fixture
def recent(store) -> RecentSubmissions:
  return RecentSubmissions(store, capacity=5)


@pytest.fixture
def delivery_queue(transport, store, recent) -> DeliveryQueue:
  return DeliveryQueue(
    transport=transport,
    store=store,
    recent=recent,
    max_retries=10,
    clock=lambda: FIXED_NOW,
  )


@pytest.fixture
def events(delivery_queue):
  seen = []
  delivery_queue.add_listener(seen.append)
  return seen


def make_report(message: str = "x", report_type: str = "bug", **kwargs) -> Report:
  return Report(type=report_type, message=message, **kwargs)
