from __future__ import annotations

from typing import Any, Optional


class IssueRelayError(Exception):
  """Base class for errors raised by the issuerelay client."""


class TransportError(IssueRelayError):
  """
  A delivery attempt did not complete.

  Covers connectivity faults, non-2xx responses and malformed response
  bodies alike. The queue retries every TransportError the same way.
  """

  def __init__(self, message: str, status_code: Optional[int] = None) -> None:
    super().__init__(message)
    self.status_code = status_code


class RetryBudgetExceeded(IssueRelayError):
  """Signals that a queued entry used up its retries and was discarded."""

  def __init__(self, entry: Any, max_retries: int) -> None:
    super().__init__(
      f"Report failed after {max_retries} retries. Discarded."
    )
    self.entry = entry
    self.max_retries = max_retries


class StorageCorruption(IssueRelayError):
  """Persisted data under a key could not be decoded."""

  def __init__(self, key: str, cause: Exception) -> None:
    super().__init__(f"Unreadable data stored under '{key}': {cause}")
    self.key = key
    self.cause = cause


class QueueError(IssueRelayError):
  """The delivery queue could not persist its state."""
