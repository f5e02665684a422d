from __future__ import annotations

import logging
import os
import queue
import threading
import traceback
from logging import Handler, LogRecord
from typing import Optional

from .config import ClientConfig
from .models import Report, ReportType
from .report_builder import detect_platform
from .reporter import IssueReporter

logger = logging.getLogger(__name__)

# Records from the client's own loggers are never reported as crashes.
_CLIENT_LOGGER = __name__.split(".")[0]

_submitting = threading.local()


class _CrashReportHandler(Handler):
  """
  Logging handler that turns logged exceptions into crash reports.

  Only records carrying exception info are reported; plain error messages
  are left to the application's other handlers. ``emit`` only enqueues the
  report. A background worker submits it, so the logging thread never
  waits on the collector.

  The worker is fork aware in the same way as the retry scheduler: the
  first crash logged in a forked child starts a fresh worker there.
  """

  def __init__(
    self,
    reporter: IssueReporter,
    level: int = logging.ERROR,
    maxsize: int = 100,
  ) -> None:
    super().__init__(level=level)
    self._reporter = reporter
    self._pending: "queue.Queue[Report]" = queue.Queue(maxsize=maxsize)
    self._thread: Optional[threading.Thread] = None
    self._stopped = threading.Event()
    self._pid = os.getpid()
    self._start_lock = threading.Lock()

  def filter(self, record: LogRecord) -> bool:
    # Runs before the handler lock is taken, so the worker never waits on it.
    if getattr(_submitting, "active", False):
      return False
    if record.name == _CLIENT_LOGGER or record.name.startswith(_CLIENT_LOGGER + "."):
      return False
    return bool(super().filter(record))

  def emit(self, record: LogRecord) -> None:
    _submitting.active = True
    try:
      if not record.exc_info or record.exc_info[0] is None:
        return

      _type, _value, _tb = record.exc_info
      summary = "".join(traceback.format_exception_only(_type, _value)).strip()
      message = f"{record.getMessage()}: {summary}" if record.getMessage() else summary

      report = Report(
        type=ReportType.CRASH,
        message=message,
        platform=detect_platform(),
        app_version=self._reporter.config.app_version,
      )
      self._start()
      try:
        self._pending.put_nowait(report)
      except queue.Full:
        logger.warning("Crash report backlog is full; dropping report")
    except Exception:
      # Never break application logging.
      self.handleError(record)
    finally:
      _submitting.active = False

  def flush(self) -> None:
    """Wait until every enqueued crash report has been submitted."""
    thread = self._thread
    if thread is not None and thread.is_alive() and thread is not threading.current_thread():
      self._pending.join()

  def close(self) -> None:
    self.flush()
    self._stopped.set()
    thread = self._thread
    if thread is not None and thread.is_alive() and thread is not threading.current_thread():
      thread.join(timeout=1.0)
    super().close()

  def _start(self) -> None:
    current_pid = os.getpid()
    with self._start_lock:
      if self._pid != current_pid:
        self._pid = current_pid
        self._stopped = threading.Event()
        self._pending = queue.Queue(maxsize=self._pending.maxsize)
        self._thread = None

      if self._thread is not None and self._thread.is_alive():
        return

      self._thread = threading.Thread(
        target=self._run,
        args=(self._stopped,),
        name="issuerelay-crash-reports",
        daemon=True,
      )
      self._thread.start()

  def _run(self, stopped: threading.Event) -> None:
    # Anything logged while submitting must not come back as another crash.
    _submitting.active = True
    while not stopped.is_set():
      try:
        report = self._pending.get(timeout=0.5)
      except queue.Empty:
        continue

      try:
        self._reporter.submit(report)
      except Exception:
        logger.exception("Could not submit crash report")
      finally:
        self._pending.task_done()


def setup_crash_reporting(
  logger: Optional[logging.Logger] = None,
  *,
  reporter: Optional[IssueReporter] = None,
  collector_url: Optional[str] = None,
  app_version: Optional[str] = None,
) -> Optional[IssueReporter]:
  """
  Attach a crash-reporting handler to the standard logging module.

  This does not replace existing handlers. Reports go through the delivery
  queue, so crashes logged while the collector is down are retried later.
  Returns the reporter in use, or None when reporting is disabled.
  """
  target_logger = logger or logging.getLogger()

  # Avoid attaching duplicate handlers to the same logger.
  for existing in target_logger.handlers:
    if isinstance(existing, _CrashReportHandler):
      return existing._reporter

  if reporter is None:
    config = ClientConfig.from_params_or_env(
      collector_url=collector_url,
      app_version=app_version,
    )
    if not config.enabled:
      return None
    reporter = IssueReporter(config)
    reporter.start()
  elif not reporter.config.enabled:
    return None

  target_logger.addHandler(_CrashReportHandler(reporter))
  return reporter
