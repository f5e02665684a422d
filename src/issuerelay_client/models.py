from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReportType(str, Enum):
  CRASH = "crash"
  BUG = "bug"
  SLOW = "slow"
  SUGGESTION = "suggestion"


class Platform(str, Enum):
  IOS = "ios"
  ANDROID = "android"
  WEB = "web"


_TYPE_LABELS = {
  ReportType.CRASH.value: "App crashed",
  ReportType.BUG.value: "Bug report",
  ReportType.SLOW.value: "Slow performance",
  ReportType.SUGGESTION.value: "Suggestion",
}

_TYPE_MARKERS = {
  ReportType.CRASH.value: "🔴",
  ReportType.SLOW.value: "🟡",
  ReportType.BUG.value: "🐛",
  ReportType.SUGGESTION.value: "💡",
}

DEFAULT_MARKER = "📝"


def type_label(report_type: str) -> str:
  """Human-readable label used when a report is submitted without a message."""
  if report_type in _TYPE_LABELS:
    return _TYPE_LABELS[report_type]
  return report_type.replace("_", " ").strip().capitalize() or "Report"


def type_marker(report_type: str) -> str:
  return _TYPE_MARKERS.get(report_type, DEFAULT_MARKER)


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


class Report(BaseModel):
  """
  A single issue report as sent to the collector.

  ``type`` is kept as a plain string so that types the client does not know
  about still pass through unchanged. ``report_id`` is only known once the
  collector has accepted the report.
  """

  model_config = ConfigDict(frozen=True)

  type: str
  message: str = Field(default="", validate_default=True)
  platform: Platform = Platform.WEB
  app_version: str = "1.0.0"
  screenshot: Optional[str] = None

  @field_validator("type", mode="before")
  @classmethod
  def _coerce_type(cls, value: Any) -> Any:
    if isinstance(value, ReportType):
      return value.value
    return value

  @field_validator("message")
  @classmethod
  def _fallback_message(cls, value: str, info) -> str:
    if value and value.strip():
      return value
    return type_label(info.data.get("type", ""))

  def to_payload(self, include_screenshot: bool = True) -> Dict[str, Any]:
    """JSON body for ``POST /reports``."""
    payload: Dict[str, Any] = {
      "type": self.type,
      "message": self.message,
      "platform": self.platform.value,
      "app_version": self.app_version,
    }
    if include_screenshot and self.screenshot:
      payload["screenshot"] = self.screenshot
    return payload

  def without_screenshot(self) -> "Report":
    if self.screenshot is None:
      return self
    return self.model_copy(update={"screenshot": None})


class QueueEntry(BaseModel):
  """
  A report waiting in the durable queue.

  Entries are immutable: a failed attempt produces a new entry with a higher
  ``retry_count`` which replaces the old one at the head of the queue.
  """

  model_config = ConfigDict(frozen=True)

  report: Report
  queued_at: datetime = Field(default_factory=utcnow)
  retry_count: int = Field(default=0, ge=0)

  def after_failure(self) -> "QueueEntry":
    return self.model_copy(update={"retry_count": self.retry_count + 1})

  def to_record(self) -> Dict[str, Any]:
    """Flat dict persisted in the queue list."""
    record = self.report.model_dump(mode="json")
    record["queued_at"] = self.queued_at.isoformat()
    record["retry_count"] = self.retry_count
    return record

  @classmethod
  def from_record(cls, record: Dict[str, Any]) -> "QueueEntry":
    data = dict(record)
    queued_at = data.pop("queued_at")
    retry_count = data.pop("retry_count", 0) or 0
    return cls(
      report=Report.model_validate(data),
      queued_at=queued_at,
      retry_count=retry_count,
    )


class RecentRecord(BaseModel):
  """Snapshot of a delivered report kept in the recent-history list."""

  model_config = ConfigDict(frozen=True)

  id: str
  type: str
  message: str
  timestamp: datetime = Field(default_factory=utcnow)


class DeliveryReceipt(BaseModel):
  """Successful response from the collector."""

  report_id: str
  ai_enriched: bool = False
  category: Optional[str] = None


class DeliveryOutcome(BaseModel):
  """What ``DeliveryQueue.submit`` tells its caller."""

  model_config = ConfigDict(frozen=True)

  status: Literal["delivered", "queued"]
  report_id: Optional[str] = None
  ai_enriched: bool = False
  category: Optional[str] = None
  queue_size: int = 0

  @property
  def delivered(self) -> bool:
    return self.status == "delivered"

  @property
  def queued(self) -> bool:
    return self.status == "queued"


@dataclass(frozen=True)
class QueueEvent:
  """
  Notification emitted by the queue for UI collaborators.

  kind is one of "queued", "retrying", "delivered" or "discarded".
  Discards carry the RetryBudgetExceeded error describing the dropped entry;
  queued and retrying events carry the delivery error.
  """

  kind: str
  entry: QueueEntry
  report_id: Optional[str] = None
  error: Optional[Exception] = None
