from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import NoReturn

from .config import ClientConfig
from .errors import QueueError, TransportError
from .output_formatter import ReportFormatter, summarize_reports
from .reporter import IssueReporter
from .transport import HttpTransport

COMMANDS = {"submit", "flush", "run", "status", "recent", "reports"}


def main(argv: list[str] | None = None) -> NoReturn:
  argv = list(sys.argv[1:] if argv is None else argv)

  if not argv or argv[0] not in COMMANDS:
    print("Usage: python -m issuerelay {submit|flush|run|status|recent|reports}", file=sys.stderr)
    print("  submit   - Submit one report (queued if the collector is unreachable)", file=sys.stderr)
    print("  flush    - Retry queued reports now, in the foreground", file=sys.stderr)
    print("  run      - Retry queued reports on a timer until interrupted", file=sys.stderr)
    print("  status   - Show queue size and collector reachability", file=sys.stderr)
    print("  recent   - Show recently delivered reports", file=sys.stderr)
    print("  reports  - Fetch reports from the collector and count them by type", file=sys.stderr)
    sys.exit(1)

  command, args = argv[0], argv[1:]
  if command == "submit":
    _run_submit(args)
  elif command == "flush":
    _run_flush(args)
  elif command == "run":
    _run_scheduler(args)
  elif command == "status":
    _run_status(args)
  elif command == "recent":
    _run_recent(args)
  elif command == "reports":
    _run_reports(args)


def _parser(command: str, description: str) -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(prog=f"issuerelay {command}", description=description)
  parser.add_argument("--collector-url", default=None, help="Collector base URL (default: ISSUERELAY_COLLECTOR_URL or http://localhost:8000)")
  parser.add_argument("--storage-dir", default=None, help="Directory for the durable queue (default: ~/.issuerelay)")
  parser.add_argument("--format", choices=["plain", "json"], default="plain", help="Output format")
  parser.add_argument("--color", choices=["auto", "always", "never"], default="auto", help="Color output")
  parser.add_argument("--log-level", default="WARNING", help="Logging level for client diagnostics")
  return parser


def _setup(args: argparse.Namespace) -> tuple[IssueReporter, ReportFormatter]:
  logging.basicConfig(
    level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )
  try:
    config = ClientConfig.from_params_or_env(
      collector_url=args.collector_url,
      storage_dir=args.storage_dir,
      retry_interval_seconds=getattr(args, "interval", None),
    )
  except ValueError as exc:
    print(f"Error: {exc}", file=sys.stderr)
    sys.exit(2)
  formatter = ReportFormatter(output_format=args.format, color_mode=args.color)
  return IssueReporter(config), formatter


def _run_submit(argv: list[str]) -> None:
  parser = _parser("submit", "Submit one issue report")
  parser.add_argument("--type", dest="report_type", required=True, help="crash, bug, slow or suggestion")
  parser.add_argument("--message", default="", help="Report text (defaults to a label for the type)")
  parser.add_argument("--note", default=None, help="Extra context appended to the message")
  parser.add_argument("--screenshot", type=Path, default=None, help="Image file to attach")
  parser.add_argument("--user-agent", default=None, help="User agent used to detect the platform")
  args = parser.parse_args(argv)

  reporter, formatter = _setup(args)
  with reporter:
    try:
      outcome = reporter.report(
        args.report_type,
        args.message,
        note=args.note,
        screenshot_path=args.screenshot,
        user_agent=args.user_agent,
      )
    except (OSError, ValueError) as exc:
      print(f"Error: {exc}", file=sys.stderr)
      sys.exit(2)
    except QueueError as exc:
      print(f"Error: {exc}", file=sys.stderr)
      sys.exit(3)
    print(formatter.format_outcome(outcome))
  sys.exit(0)


def _run_flush(argv: list[str]) -> None:
  parser = _parser("flush", "Retry queued reports now")
  parser.add_argument("--ticks", type=int, default=None, help="Maximum number of delivery attempts")
  args = parser.parse_args(argv)

  reporter, formatter = _setup(args)
  with reporter:
    try:
      events = reporter.flush(max_ticks=args.ticks)
    except QueueError as exc:
      print(f"Error: {exc}", file=sys.stderr)
      sys.exit(3)
    for event in events:
      print(formatter.format_event(event))
    remaining = reporter.pending_count()
  print(f"{remaining} report(s) still queued", file=sys.stderr)
  sys.exit(0 if remaining == 0 else 1)


def _run_scheduler(argv: list[str]) -> None:
  parser = _parser("run", "Retry queued reports on a timer")
  parser.add_argument("--interval", type=float, default=None, help="Seconds between retries (default: 5)")
  args = parser.parse_args(argv)

  reporter, formatter = _setup(args)
  reporter.add_listener(lambda event: print(formatter.format_event(event), flush=True))

  print(
    f"Retrying queued reports every {reporter.scheduler.interval_seconds}s "
    f"({reporter.pending_count()} waiting). Press Ctrl+C to stop.",
    file=sys.stderr,
  )
  reporter.start()
  try:
    while reporter.scheduler.running:
      time.sleep(1.0)
  except KeyboardInterrupt:
    pass
  finally:
    reporter.close()
  sys.exit(0)


def _run_status(argv: list[str]) -> None:
  args = _parser("status", "Show queue and collector status").parse_args(argv)
  reporter, formatter = _setup(args)

  with reporter:
    pending = reporter.queue.pending()
    reachable = _collector_reachable(reporter)

  print(f"Collector: {reporter.config.collector_url} ({'REACHABLE' if reachable else 'UNREACHABLE'})")
  print(f"Queued reports: {len(pending)}")
  if pending:
    print(formatter.format_pending(pending))
  sys.exit(0 if reachable else 2)


def _run_recent(argv: list[str]) -> None:
  args = _parser("recent", "Show recently delivered reports").parse_args(argv)
  reporter, formatter = _setup(args)
  with reporter:
    print(formatter.format_recent(reporter.recent_submissions()))
  sys.exit(0)


def _run_reports(argv: list[str]) -> None:
  args = _parser("reports", "Count collector reports by type").parse_args(argv)
  reporter, formatter = _setup(args)
  with reporter:
    transport = _http_transport(reporter)
    try:
      reports = transport.list_reports()
    except TransportError as exc:
      print(f"Couldn't load the reports: {exc}", file=sys.stderr)
      print(f"Hint: check that the collector is running on {reporter.config.collector_url}", file=sys.stderr)
      sys.exit(2)
    print(formatter.format_summary(summarize_reports(reports)))
  sys.exit(0)


def _http_transport(reporter: IssueReporter) -> HttpTransport:
  transport = reporter.transport
  if isinstance(transport, HttpTransport):
    return transport
  return HttpTransport(
    collector_url=reporter.config.collector_url,
    timeout_seconds=reporter.config.request_timeout_seconds,
  )


def _collector_reachable(reporter: IssueReporter) -> bool:
  try:
    _http_transport(reporter).list_reports()
  except TransportError:
    return False
  return True


if __name__ == "__main__":
  main()
