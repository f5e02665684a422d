from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..errors import TransportError
from ..models import DeliveryReceipt, Report
from .base import Transport

_logger = logging.getLogger("issuerelay_client.transport")


@dataclass
class HttpTransport(Transport):
  """
  HTTP transport that posts reports to the collector.

  Exactly one request is made per ``deliver`` call; retrying is the queue's
  job. Every failure is logged at WARNING level and raised as
  TransportError.
  """

  collector_url: str
  timeout_seconds: float = 10.0
  client: Optional[httpx.Client] = None
  _owns_client: bool = field(default=False, init=False, repr=False)

  def __post_init__(self) -> None:
    self.collector_url = self.collector_url.rstrip("/")
    if self.client is None:
      self.client = httpx.Client(timeout=self.timeout_seconds)
      self._owns_client = True

  @property
  def reports_url(self) -> str:
    return f"{self.collector_url}/reports"

  def deliver(self, report: Report) -> DeliveryReceipt:
    try:
      response = self.client.post(
        self.reports_url,
        json=report.to_payload(),
        headers={"Content-Type": "application/json"},
      )
    except httpx.HTTPError as exc:
      _logger.warning(
        "issuerelay HTTP transport failed to reach collector at %s: %s",
        self.reports_url,
        exc,
      )
      raise TransportError(f"Collector unreachable: {exc}") from exc

    if not response.is_success:
      _logger.warning(
        "issuerelay HTTP transport got HTTP %s from collector",
        response.status_code,
      )
      raise TransportError(
        f"Server error: HTTP {response.status_code}",
        status_code=response.status_code,
      )

    try:
      receipt = DeliveryReceipt.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
      _logger.warning("issuerelay HTTP transport got a malformed collector response: %s", exc)
      raise TransportError(
        "Malformed collector response",
        status_code=response.status_code,
      ) from exc

    _logger.debug("Collector accepted report %s", receipt.report_id)
    return receipt

  def list_reports(self) -> List[Dict[str, Any]]:
    """Fetch ``GET /reports`` for dashboard-style consumers."""
    try:
      response = self.client.get(self.reports_url)
    except httpx.HTTPError as exc:
      raise TransportError(f"Collector unreachable: {exc}") from exc

    if not response.is_success:
      raise TransportError(
        f"Server error: HTTP {response.status_code}. Is the collector running?",
        status_code=response.status_code,
      )

    try:
      body = response.json()
    except ValueError as exc:
      raise TransportError("Malformed collector response") from exc

    reports = body.get("reports") if isinstance(body, dict) else None
    if not isinstance(reports, list):
      raise TransportError("Malformed collector response: missing 'reports'")
    return reports

  def close(self) -> None:
    if self._owns_client and self.client is not None:
      self.client.close()
