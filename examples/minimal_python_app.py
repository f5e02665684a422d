import logging
import os

from issuerelay_client import IssueReporter, setup_crash_reporting  # type: ignore[import]


def main() -> None:
  # Minimal configuration via environment variables
  os.environ.setdefault("ISSUERELAY_COLLECTOR_URL", "http://localhost:8000")
  os.environ.setdefault("ISSUERELAY_RETRY_INTERVAL", "1")

  logger = logging.getLogger("example_app")
  logging.basicConfig(level=logging.INFO)

  reporter = IssueReporter.from_env()
  reporter.add_listener(lambda event: logger.info("queue event: %s", event.kind))
  reporter.start()
  setup_crash_reporting(logger, reporter=reporter)

  outcome = reporter.report("suggestion", "Add a dark mode", note="from the example app")
  logger.info("Suggestion %s", "delivered" if outcome.delivered else "queued for retry")

  try:
    1 / 0
  except ZeroDivisionError:
    logger.exception("Example crash")

  # Wait for the crash report handler, then give queued reports one chance to go out
  for handler in logger.handlers:
    handler.flush()
  reporter.flush(max_ticks=reporter.pending_count())
  logger.info("%s report(s) still queued", reporter.pending_count())
  reporter.close()


if __name__ == "__main__":
  main()
