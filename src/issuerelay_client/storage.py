from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import StorageCorruption

QUEUE_KEY = "issuerelay_reports_queue"
RECENT_KEY = "issuerelay_reports_recent"

Record = Dict[str, Any]

logger = logging.getLogger(__name__)


class DurableStore:
  """
  Key-value persistence for ordered lists of flat records.

  ``load`` returns an empty list for a missing key. Unreadable data is logged
  as StorageCorruption and also loads as an empty list so that a damaged
  file can never wedge the client. Callers are responsible for not
  interleaving read-modify-write cycles on the same key.
  """

  def load(self, key: str) -> List[Record]:
    try:
      return self._read(key)
    except StorageCorruption as exc:
      logger.warning("Discarding unreadable stored data: %s", exc)
      return []

  def save(self, key: str, records: List[Record]) -> None:
    raise NotImplementedError

  def _read(self, key: str) -> List[Record]:
    raise NotImplementedError


class MemoryStore(DurableStore):
  """In-process store, used by tests and when persistence is not wanted."""

  def __init__(self) -> None:
    self._data: Dict[str, str] = {}
    self._lock = threading.Lock()

  def save(self, key: str, records: List[Record]) -> None:
    encoded = json.dumps(records)
    with self._lock:
      self._data[key] = encoded

  def _read(self, key: str) -> List[Record]:
    with self._lock:
      raw = self._data.get(key)
    return _decode(key, raw)

  def put_raw(self, key: str, raw: str) -> None:
    """Store undecoded text under a key (lets tests simulate corruption)."""
    with self._lock:
      self._data[key] = raw


class JsonFileStore(DurableStore):
  """
  Stores each key as a JSON file inside a directory.

  Writes go to a temporary file in the same directory and are moved into
  place with os.replace, so a crash mid-write leaves the previous contents.
  """

  def __init__(self, directory: Path) -> None:
    self._directory = Path(directory)

  @property
  def directory(self) -> Path:
    return self._directory

  def path_for(self, key: str) -> Path:
    safe_key = "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in key)
    return self._directory / f"{safe_key}.json"

  def save(self, key: str, records: List[Record]) -> None:
    self._directory.mkdir(parents=True, exist_ok=True)
    target = self.path_for(key)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.stem}.", suffix=".tmp", dir=self._directory)
    try:
      with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(records, f)
        f.flush()
        os.fsync(f.fileno())
      os.replace(tmp_name, target)
    except BaseException:
      Path(tmp_name).unlink(missing_ok=True)
      raise

  def _read(self, key: str) -> List[Record]:
    path = self.path_for(key)
    try:
      raw: Optional[str] = path.read_text(encoding="utf-8")
    except FileNotFoundError:
      return []
    except (OSError, UnicodeDecodeError) as exc:
      raise StorageCorruption(key, exc) from exc
    return _decode(key, raw)


def _decode(key: str, raw: Optional[str]) -> List[Record]:
  if raw is None or not raw.strip():
    return []
  try:
    data = json.loads(raw)
  except ValueError as exc:
    raise StorageCorruption(key, exc) from exc
  if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
    raise StorageCorruption(key, TypeError("expected a list of objects"))
  return data


def get_store(directory: Optional[Path] = None) -> DurableStore:
  """
  Return the store used by the client.

  Tests are expected to pass a MemoryStore explicitly or monkeypatch this
  function.
  """
  if directory is None:
    return MemoryStore()
  return JsonFileStore(directory)
