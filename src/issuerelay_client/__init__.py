"""
issuerelay_client

Issue report client that delivers crash, bug, slow and suggestion reports
to a collector, queuing them durably and retrying while it is unreachable.
"""

from .config import ClientConfig
from .errors import IssueRelayError, QueueError, RetryBudgetExceeded, StorageCorruption, TransportError
from .logging_setup import setup_crash_reporting
from .models import DeliveryOutcome, Platform, QueueEntry, QueueEvent, RecentRecord, Report, ReportType
from .queue import DeliveryQueue
from .recent import RecentSubmissions
from .reporter import IssueReporter
from .scheduler import RetryScheduler
from .storage import DurableStore, JsonFileStore, MemoryStore

__all__ = [
  "ClientConfig",
  "DeliveryOutcome",
  "DeliveryQueue",
  "DurableStore",
  "IssueRelayError",
  "IssueReporter",
  "JsonFileStore",
  "MemoryStore",
  "Platform",
  "QueueEntry",
  "QueueError",
  "QueueEvent",
  "RecentRecord",
  "RecentSubmissions",
  "Report",
  "ReportType",
  "RetryBudgetExceeded",
  "RetryScheduler",
  "StorageCorruption",
  "TransportError",
  "setup_crash_reporting",
]
