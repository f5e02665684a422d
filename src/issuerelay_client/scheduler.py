from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from .config import DEFAULT_RETRY_INTERVAL_SECONDS
from .queue import DeliveryQueue

logger = logging.getLogger(__name__)


class RetryScheduler:
  """
  Background timer that drives ``DeliveryQueue.tick``.

  The host application owns the lifecycle: call ``start()`` once the queue
  is built and ``stop()`` on shutdown. A tick that raises is logged and the
  next tick runs on schedule.

  Like the queue it serves, the scheduler is fork aware: calling
  ``start()`` in a forked child starts a fresh timer thread there.
  """

  def __init__(
    self,
    queue: DeliveryQueue,
    interval_seconds: float = DEFAULT_RETRY_INTERVAL_SECONDS,
  ) -> None:
    if interval_seconds <= 0:
      raise ValueError("interval_seconds must be positive")
    self._queue = queue
    self._interval = interval_seconds
    self._thread: Optional[threading.Thread] = None
    self._stopped = threading.Event()
    self._pid = os.getpid()
    self._lock = threading.Lock()

  @property
  def interval_seconds(self) -> float:
    return self._interval

  @property
  def running(self) -> bool:
    return (
      self._pid == os.getpid()
      and self._thread is not None
      and self._thread.is_alive()
    )

  def start(self) -> None:
    """Start the timer thread. Safe to call more than once."""
    current_pid = os.getpid()
    with self._lock:
      if self._pid != current_pid:
        self._pid = current_pid
        self._thread = None

      if self._thread is not None and self._thread.is_alive():
        return

      self._stopped = threading.Event()
      self._thread = threading.Thread(
        target=self._run,
        args=(self._stopped,),
        name="issuerelay-retry-scheduler",
        daemon=True,
      )
      self._thread.start()
      logger.debug("Retry scheduler started (every %ss)", self._interval)

  def stop(self, timeout: Optional[float] = 5.0) -> None:
    """
    Stop the timer and wait for the current tick to finish.

    An in-flight delivery is not cancelled; ``timeout`` bounds how long we
    wait for it.
    """
    with self._lock:
      self._stopped.set()
      thread = self._thread
      self._thread = None

    if thread is not None and thread.is_alive() and thread is not threading.current_thread():
      thread.join(timeout=timeout)
    logger.debug("Retry scheduler stopped")

  def run_once(self) -> None:
    """Run a single tick in the calling thread, logging any failure."""
    try:
      self._queue.tick()
    except Exception:
      logger.exception("Queue tick failed; will retry on the next tick")

  def _run(self, stopped: threading.Event) -> None:
    while not stopped.wait(self._interval):
      self.run_once()

  def __enter__(self) -> "RetryScheduler":
    self.start()
    return self

  def __exit__(self, *exc_info) -> None:
    self.stop()
