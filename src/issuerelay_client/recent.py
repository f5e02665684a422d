from __future__ import annotations

import logging
import threading
from typing import List

from pydantic import ValidationError

from .config import DEFAULT_RECENT_CAPACITY
from .models import RecentRecord, Report
from .storage import RECENT_KEY, DurableStore

logger = logging.getLogger(__name__)


class RecentSubmissions:
  """
  Bounded, newest-first history of delivered reports.

  New records go to the front; once the list is longer than ``capacity``
  the oldest inserted records fall off the end.
  """

  def __init__(
    self,
    store: DurableStore,
    capacity: int = DEFAULT_RECENT_CAPACITY,
    key: str = RECENT_KEY,
  ) -> None:
    if capacity < 1:
      raise ValueError("capacity must be at least 1")
    self._store = store
    self._capacity = capacity
    self._key = key
    self._lock = threading.Lock()

  @property
  def capacity(self) -> int:
    return self._capacity

  def record(self, report: Report, report_id: str) -> RecentRecord:
    entry = RecentRecord(id=report_id, type=report.type, message=report.message)
    with self._lock:
      records = self._store.load(self._key)
      records.insert(0, entry.model_dump(mode="json"))
      del records[self._capacity:]
      self._store.save(self._key, records)
    return entry

  def list(self) -> List[RecentRecord]:
    with self._lock:
      raw = self._store.load(self._key)

    records: List[RecentRecord] = []
    for item in raw[: self._capacity]:
      try:
        records.append(RecentRecord.model_validate(item))
      except ValidationError as exc:
        logger.warning("Skipping unreadable recent submission: %s", exc)
    return records
