"""Main orchestrator: scrape shifts, reconcile, sync to Google Calendar."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

from shiftsync.calendar_sync import apply_plan, get_calendar_service, list_upcoming_events, target_calendar_id
from shiftsync.config import Settings, load_settings
from shiftsync.errors import ShiftSyncError
from shiftsync.extractor import normalize_shifts
from shiftsync.models import RunSummary
from shiftsync.notifier import WarningCollector, notify_run
from shiftsync.reconcile import reconcile
from shiftsync.scraper import scrape_schedule

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def run_sync(settings: Settings, service, summary: RunSummary) -> RunSummary:
    """One full pass: scrape, reconcile, apply. Fills ``summary`` as it goes."""
    tz = settings.tz

    # Step 1: Resolve the dedicated calendar before touching the site
    calendar_id = target_calendar_id(service, settings)

    # Step 2: Log in and scrape the schedule
    logger.info("=" * 50)
    logger.info("Scraping schedule...")
    scraped = scrape_schedule(settings)
    summary.screens = scraped.screens
    summary.dropped_shifts.extend(scraped.dropped)

    # Step 3: Normalize into dated intervals
    now = datetime.now(tz)
    shifts, dropped = normalize_shifts(scraped.raw_shifts, now.date(), tz)
    summary.shifts_found = len(scraped.raw_shifts) + len(scraped.dropped)
    summary.dropped_shifts.extend(dropped)

    # Step 4: Fetch upcoming events
    logger.info("=" * 50)
    logger.info("Fetching upcoming calendar events...")
    events = list_upcoming_events(service, calendar_id, now, tz)
    summary.events_found = len(events)

    # Step 5: Reconcile and apply
    plan = reconcile(shifts, events, now)
    summary.matched = plan.matched
    if plan.is_empty:
        logger.info("No changes needed, calendar is up to date")
    else:
        logger.info("=" * 50)
        logger.info("Syncing to Google Calendar...")
        summary.report = apply_plan(service, calendar_id, plan, settings)
    return summary


def _log_summary(summary: RunSummary) -> None:
    logger.info("=" * 50)
    logger.info("SYNC COMPLETE")
    for line in summary.lines():
        logger.info(f"  {line}")
    logger.info("=" * 50)


def main() -> int:
    collector = WarningCollector()
    logging.getLogger().addHandler(collector)
    summary = RunSummary()

    try:
        settings = load_settings()
        service = get_calendar_service(settings.service_account_info)
        run_sync(settings, service, summary)
    except ShiftSyncError as e:
        logger.error(f"Sync aborted: {e}")
        _log_summary(summary)
        notify_run(summary, collector.messages, error=e)
        return EXIT_FATAL
    except Exception as e:
        logger.exception(f"Unexpected error during sync: {e}")
        _log_summary(summary)
        notify_run(summary, collector.messages, error=e)
        return EXIT_FATAL
    finally:
        logging.getLogger().removeHandler(collector)

    _log_summary(summary)
    if summary.has_problems:
        notify_run(summary, collector.messages)
        return EXIT_PARTIAL
    return EXIT_OK


def cli() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    sys.exit(main())


if __name__ == "__main__":
    cli()
