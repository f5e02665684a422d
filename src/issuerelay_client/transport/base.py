from __future__ import annotations

from ..models import DeliveryReceipt, Report


class Transport:
  """
  One delivery attempt of one report to the collector.

  Implementations return a DeliveryReceipt on success and raise
  TransportError for anything else. The queue also treats any other
  exception escaping ``deliver`` as a failed attempt.
  """

  def deliver(self, report: Report) -> DeliveryReceipt:  # pragma: no cover - interface
    raise NotImplementedError

  def close(self) -> None:
    pass
