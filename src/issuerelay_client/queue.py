from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .config import DEFAULT_MAX_RETRIES
from .errors import QueueError, RetryBudgetExceeded
from .models import DeliveryOutcome, QueueEntry, QueueEvent, Report, utcnow
from .recent import RecentSubmissions
from .storage import QUEUE_KEY, DurableStore
from .transport import Transport

QueueListener = Callable[[QueueEvent], None]

logger = logging.getLogger(__name__)


class DeliveryQueue:
  """
  Durable FIFO of reports that could not be delivered yet.

  ``submit`` tries the collector straight away and falls back to appending
  the report to the tail of the persisted queue. When ``submit_transport``
  is given, only ``submit`` uses it; ticks always go through ``transport``. ``tick`` is called
  periodically and makes at most one delivery attempt, always for the head
  entry. A head entry that keeps failing blocks the entries behind it until
  it is delivered or its retry budget runs out and it is discarded.

  Locking:
  - ``_store_lock`` guards every load/modify/save of the queue key. It is
    never held across a network call.
  - ``_tick_lock`` keeps ticks single-flight; a tick that finds another
    tick running returns immediately.
  Only ticks remove entries and only from the head, so the head read before
  a delivery attempt is still the head when the result is written back.
  """

  def __init__(
    self,
    transport: Transport,
    store: DurableStore,
    recent: Optional[RecentSubmissions] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    key: str = QUEUE_KEY,
    clock: Callable[[], Any] = utcnow,
    submit_transport: Optional[Transport] = None,
  ) -> None:
    self._transport = transport
    self._submit_transport = submit_transport or transport
    self._store = store
    self._recent = recent
    self._max_retries = max_retries
    self._key = key
    self._clock = clock
    self._store_lock = threading.Lock()
    self._tick_lock = threading.Lock()
    self._listeners: List[QueueListener] = []

  @property
  def max_retries(self) -> int:
    return self._max_retries

  def add_listener(self, listener: QueueListener) -> None:
    self._listeners.append(listener)

  def remove_listener(self, listener: QueueListener) -> None:
    if listener in self._listeners:
      self._listeners.remove(listener)

  def submit(self, report: Report) -> DeliveryOutcome:
    """
    Deliver a report now, or queue it for retry.

    Transport failures never escape this method; they turn into a "queued"
    outcome. QueueError is raised only if the queued entry cannot be
    persisted.
    """
    try:
      receipt = self._submit_transport.deliver(report)
    except Exception as exc:
      logger.warning("Submit failed, queuing report for retry: %s", exc)
      entry = QueueEntry(report=report.without_screenshot(), queued_at=self._clock())
      size = self._append(entry)
      self._emit(QueueEvent(kind="queued", entry=entry, error=exc))
      return DeliveryOutcome(status="queued", queue_size=size)

    logger.info("Report delivered with id %s", receipt.report_id)
    self._record_delivery(report, receipt.report_id)
    return DeliveryOutcome(
      status="delivered",
      report_id=receipt.report_id,
      ai_enriched=receipt.ai_enriched,
      category=receipt.category,
      queue_size=self.size(),
    )

  def tick(self) -> Optional[QueueEvent]:
    """
    Attempt delivery of the head entry.

    Returns the resulting event ("delivered", "retrying" or "discarded"),
    or None when there was nothing to do.
    """
    if not self._tick_lock.acquire(blocking=False):
      logger.debug("Queue tick already in flight; skipping")
      return None
    try:
      return self._process_head()
    finally:
      self._tick_lock.release()

  def size(self) -> int:
    with self._store_lock:
      return len(self._store.load(self._key))

  def pending(self) -> List[QueueEntry]:
    """Snapshot of the queued entries, head first."""
    with self._store_lock:
      records = self._store.load(self._key)

    entries: List[QueueEntry] = []
    for record in records:
      try:
        entries.append(QueueEntry.from_record(record))
      except (KeyError, ValidationError) as exc:
        logger.warning("Skipping unreadable queue entry: %s", exc)
    return entries

  def _process_head(self) -> Optional[QueueEvent]:
    with self._store_lock:
      records = self._store.load(self._key)
      if not records:
        return None
      head_record = records[0]
      try:
        head = QueueEntry.from_record(head_record)
      except (KeyError, ValidationError) as exc:
        # An unreadable head would block the queue forever.
        logger.warning("Dropping unreadable queue entry: %s", exc)
        records.pop(0)
        self._save(records)
        return None

    logger.debug(
      "Processing queue: %s item(s) waiting, head retry_count=%s",
      len(records),
      head.retry_count,
    )

    try:
      receipt = self._transport.deliver(head.report)
    except Exception as exc:
      return self._handle_failure(head, head_record, exc)

    with self._store_lock:
      records = self._store.load(self._key)
      if records and records[0] == head_record:
        records.pop(0)
        self._save(records)
      else:
        logger.warning("Queue head changed during delivery; leaving queue as stored")

    logger.info("Queued report delivered! ID: %s", receipt.report_id)
    self._record_delivery(head.report, receipt.report_id)
    event = QueueEvent(kind="delivered", entry=head, report_id=receipt.report_id)
    self._emit(event)
    return event

  def _handle_failure(
    self,
    head: QueueEntry,
    head_record: Dict[str, Any],
    exc: Exception,
  ) -> Optional[QueueEvent]:
    updated = head.after_failure()
    discarded = updated.retry_count > self._max_retries

    with self._store_lock:
      records = self._store.load(self._key)
      if not records or records[0] != head_record:
        logger.warning("Queue head changed during delivery; leaving queue as stored")
        return None
      if discarded:
        records.pop(0)
      else:
        records[0] = updated.to_record()
      self._save(records)

    if discarded:
      error = RetryBudgetExceeded(updated, self._max_retries)
      logger.error("%s (last error: %s)", error, exc)
      event = QueueEvent(kind="discarded", entry=updated, error=error)
    else:
      logger.info(
        "Retry attempt failed (%s/%s): %s",
        updated.retry_count,
        self._max_retries,
        exc,
      )
      event = QueueEvent(kind="retrying", entry=updated, error=exc)

    self._emit(event)
    return event

  def _append(self, entry: QueueEntry) -> int:
    with self._store_lock:
      records = self._store.load(self._key)
      records.append(entry.to_record())
      self._save(records)
      return len(records)

  def _save(self, records: List[Dict[str, Any]]) -> None:
    try:
      self._store.save(self._key, records)
    except OSError as exc:
      raise QueueError(f"Could not persist delivery queue: {exc}") from exc

  def _record_delivery(self, report: Report, report_id: str) -> None:
    if self._recent is None:
      return
    try:
      self._recent.record(report, report_id)
    except OSError:
      logger.exception("Could not record recent submission %s", report_id)

  def _emit(self, event: QueueEvent) -> None:
    for listener in list(self._listeners):
      try:
        listener(event)
      except Exception:
        logger.exception("Queue listener failed for %s event", event.kind)
