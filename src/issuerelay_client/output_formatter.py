"""Shared output formatting for CLI commands.

Provides plain-text and JSON formatters for delivery outcomes, queue events
and recent submissions. Handles color output based on terminal detection.
"""

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from issuerelay_client.models import (
    DeliveryOutcome,
    QueueEntry,
    QueueEvent,
    RecentRecord,
    ReportType,
    type_marker,
)


class OutputFormat(Enum):
    """Output format options."""
    PLAIN = "plain"
    JSON = "json"


class ColorMode(Enum):
    """Color output mode options."""
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


def truncate(text: str, length: int = 50) -> str:
    return text[:length] + "..." if len(text) > length else text


def format_age(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Relative age like "5m ago"; older than a day shows the date."""
    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    diff = int((now - timestamp).total_seconds())

    if diff < 60:
        return "just now"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"
    return timestamp.date().isoformat()


def summarize_reports(reports: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Count collector reports by known type. Unknown types are ignored.

    Args:
        reports: Report dicts as returned by ``GET /reports``

    Returns:
        Mapping with a ``total`` count plus one count per known report type
    """
    counts: Dict[str, int] = {t.value: 0 for t in ReportType}
    total = 0
    for report in reports:
        total += 1
        report_type = report.get("type")
        if report_type in counts:
            counts[report_type] += 1
    counts["total"] = total
    return counts


class ReportFormatter:
    """Formatter for client-side report data supporting multiple output formats."""

    # ANSI color codes
    COLOR_RED = "\033[91m"
    COLOR_YELLOW = "\033[93m"
    COLOR_GREEN = "\033[92m"
    COLOR_RESET = "\033[0m"

    def __init__(
        self,
        output_format: Union[OutputFormat, str] = OutputFormat.PLAIN,
        color_mode: Union[ColorMode, str] = ColorMode.AUTO,
    ):
        if isinstance(output_format, str):
            self.output_format = OutputFormat(output_format.lower())
        else:
            self.output_format = output_format

        if isinstance(color_mode, str):
            self.color_mode = ColorMode(color_mode.lower())
        else:
            self.color_mode = color_mode

        self._use_colors = self._should_use_colors()

    def _should_use_colors(self) -> bool:
        if self.color_mode == ColorMode.ALWAYS:
            return True
        elif self.color_mode == ColorMode.NEVER:
            return False
        else:  # AUTO
            return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()

    def _paint(self, text: str, color: str) -> str:
        if not self._use_colors:
            return text
        return f"{color}{text}{self.COLOR_RESET}"

    def format_outcome(self, outcome: DeliveryOutcome) -> str:
        """Format the result of a submit call.

        Args:
            outcome: DeliveryOutcome returned by DeliveryQueue.submit

        Returns:
            Formatted string
        """
        if self.output_format == OutputFormat.JSON:
            return json.dumps(outcome.model_dump(mode="json"))

        if outcome.delivered:
            if outcome.ai_enriched:
                text = f"Sent! AI detected: {outcome.category or 'analyzing'} (id {outcome.report_id})"
            else:
                text = f"Report sent! (id {outcome.report_id})"
            return self._paint(text, self.COLOR_GREEN)

        return self._paint(
            f"Queued - will retry automatically ({outcome.queue_size} waiting)",
            self.COLOR_YELLOW,
        )

    def format_event(self, event: QueueEvent) -> str:
        if self.output_format == OutputFormat.JSON:
            return json.dumps({
                "kind": event.kind,
                "report_id": event.report_id,
                "retry_count": event.entry.retry_count,
                "error": str(event.error) if event.error else None,
                "entry": event.entry.to_record(),
            })

        if event.kind == "delivered":
            return self._paint(
                f"Queued report delivered! ID: {(event.report_id or '')[:8]}...",
                self.COLOR_GREEN,
            )
        if event.kind == "discarded":
            return self._paint(str(event.error), self.COLOR_RED)
        if event.kind == "retrying":
            return self._paint(
                f"Retry {event.entry.retry_count} failed: {event.error}",
                self.COLOR_YELLOW,
            )
        return f"{event.kind}: {truncate(event.entry.report.message)}"

    def format_recent(self, records: List[RecentRecord], now: Optional[datetime] = None) -> str:
        """Format recent submissions, newest first.

        Format: MARKER TYPE  MESSAGE  AGE
        """
        if self.output_format == OutputFormat.JSON:
            return json.dumps([r.model_dump(mode="json") for r in records])

        if not records:
            return "No recent submissions yet"

        return "\n".join(
            f"{type_marker(r.type)} {r.type:<10} {truncate(r.message):<53} {format_age(r.timestamp, now)}"
            for r in records
        )

    def format_pending(self, entries: List[QueueEntry]) -> str:
        if self.output_format == OutputFormat.JSON:
            return json.dumps([e.to_record() for e in entries])

        return "\n".join(
            f"{i}. {type_marker(e.report.type)} {truncate(e.report.message)} "
            f"(retries: {e.retry_count}, queued {format_age(e.queued_at)})"
            for i, e in enumerate(entries, start=1)
        )

    def format_summary(self, counts: Dict[str, int]) -> str:
        if self.output_format == OutputFormat.JSON:
            return json.dumps(counts)

        lines = [f"Total reports: {counts.get('total', 0)}"]
        for report_type in ReportType:
            lines.append(
                f"  {type_marker(report_type.value)} {report_type.value:<10} "
                f"{counts.get(report_type.value, 0)}"
            )
        return "\n".join(lines)
