from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .config import ClientConfig
from .models import DeliveryOutcome, QueueEvent, RecentRecord, Report
from .queue import DeliveryQueue, QueueListener
from .recent import RecentSubmissions
from .report_builder import build_report
from .scheduler import RetryScheduler
from .storage import DurableStore, get_store
from .transport import ChaosTransport, HttpTransport, Transport

logger = logging.getLogger(__name__)


class IssueReporter:
  """
  Wires the store, transport, queue and retry scheduler together.

  The host application creates one reporter, calls ``start()`` to begin
  background retries and ``close()`` on shutdown.
  """

  def __init__(
    self,
    config: ClientConfig,
    transport: Optional[Transport] = None,
    store: Optional[DurableStore] = None,
  ) -> None:
    self.config = config
    if transport is None:
      transport = HttpTransport(
        collector_url=config.collector_url,
        timeout_seconds=config.request_timeout_seconds,
      )
    # Chaos only applies to the immediate attempt; retries use the plain transport.
    submit_transport = transport
    if isinstance(transport, ChaosTransport):
      transport = transport.inner
    elif config.chaos_mode:
      logger.warning("Chaos mode enabled: submissions will randomly fail or stall")
      submit_transport = ChaosTransport(transport)
    self.transport = transport
    self.submit_transport = submit_transport
    self.store = store if store is not None else get_store(config.storage_dir)
    self.recent = RecentSubmissions(self.store, capacity=config.recent_capacity)
    self.queue = DeliveryQueue(
      transport=self.transport,
      store=self.store,
      recent=self.recent,
      max_retries=config.max_retries,
      submit_transport=self.submit_transport,
    )
    self.scheduler = RetryScheduler(self.queue, interval_seconds=config.retry_interval_seconds)

  @classmethod
  def from_env(cls, **overrides) -> "IssueReporter":
    return cls(ClientConfig.from_params_or_env(**overrides))

  def submit(self, report: Report) -> DeliveryOutcome:
    return self.queue.submit(report)

  def report(
    self,
    report_type: str,
    message: str = "",
    *,
    note: Optional[str] = None,
    screenshot_path: Optional[Path] = None,
    user_agent: Optional[str] = None,
  ) -> DeliveryOutcome:
    """Build a report for this app version and submit it."""
    report = build_report(
      report_type,
      message,
      note=note,
      app_version=self.config.app_version,
      screenshot_path=screenshot_path,
      user_agent=user_agent,
    )
    return self.submit(report)

  def flush(self, max_ticks: Optional[int] = None) -> List[QueueEvent]:
    """
    Run ticks in the calling thread until the queue is empty.

    Stops early after ``max_ticks`` ticks. Without a limit, stops once every
    entry has had its full retry budget, since each tick either removes the
    head or moves it one step closer to being discarded.
    """
    limit = max_ticks
    if limit is None:
      limit = self.queue.size() * (self.config.max_retries + 1)

    events: List[QueueEvent] = []
    for _ in range(limit):
      event = self.queue.tick()
      if event is None:
        break
      events.append(event)
    return events

  def pending_count(self) -> int:
    return self.queue.size()

  def recent_submissions(self) -> List[RecentRecord]:
    return self.recent.list()

  def add_listener(self, listener: QueueListener) -> None:
    self.queue.add_listener(listener)

  def start(self) -> None:
    self.scheduler.start()

  def close(self) -> None:
    self.scheduler.stop()
    self.transport.close()

  def __enter__(self) -> "IssueReporter":
    return self

  def __exit__(self, *exc_info) -> None:
    self.close()
