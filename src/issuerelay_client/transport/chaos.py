from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

from ..errors import TransportError
from ..models import DeliveryReceipt, Report
from .base import Transport

logger = logging.getLogger(__name__)

FAILURE_RATE = 0.3
DELAY_RATE = 0.3
DELAY_SECONDS = 0.8


class ChaosTransport(Transport):
  """
  Wraps another transport and injects failures and latency.

  Used to exercise the queue's retry path against a healthy collector.
  """

  def __init__(
    self,
    inner: Transport,
    failure_rate: float = FAILURE_RATE,
    delay_rate: float = DELAY_RATE,
    delay_seconds: float = DELAY_SECONDS,
    rng: Optional[random.Random] = None,
    sleep: Callable[[float], None] = time.sleep,
  ) -> None:
    self._inner = inner
    self._failure_rate = failure_rate
    self._delay_rate = delay_rate
    self._delay_seconds = delay_seconds
    self._rng = rng or random.Random()
    self._sleep = sleep

  @property
  def inner(self) -> Transport:
    return self._inner

  def deliver(self, report: Report) -> DeliveryReceipt:
    if self._rng.random() < self._failure_rate:
      logger.info("Chaos mode: simulating a network failure")
      raise TransportError("Simulated network failure (Chaos Mode)")

    if self._rng.random() < self._delay_rate:
      self._sleep(self._delay_seconds)

    return self._inner.deliver(report)

  def close(self) -> None:
    self._inner.close()
