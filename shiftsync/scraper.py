"""Log into the partner site with Playwright and scrape the posted schedule."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from playwright.sync_api import sync_playwright, Page, Browser, Error as PwError, TimeoutError as PwTimeout

from shiftsync.classifier import SELECTORS
from shiftsync.config import Settings
from shiftsync.extractor import extract_raw_shifts
from shiftsync.models import RawShift
from shiftsync.navigator import SessionNavigator

logger = logging.getLogger(__name__)

SCREENSHOTS_DIR = Path(__file__).parent.parent / "screenshots"


@dataclass
class ScrapeResult:
    raw_shifts: list[RawShift] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    screens: list[str] = field(default_factory=list)


def _take_screenshot(page: Page, name: str) -> Path | None:
    """Save a screenshot for debugging."""
    SCREENSHOTS_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = SCREENSHOTS_DIR / f"{timestamp}_{name}.png"
    try:
        page.screenshot(path=str(path), full_page=True)
    except PwError as e:
        logger.warning(f"Could not save screenshot {name}: {e}")
        return None
    logger.info(f"Screenshot saved: {path}")
    return path


def _dump_html(page: Page, name: str) -> Path | None:
    """Dump HTML content to a file for inspection."""
    SCREENSHOTS_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = SCREENSHOTS_DIR / f"{timestamp}_{name}.html"
    try:
        html = page.content()
    except PwError as e:
        logger.warning(f"Could not dump HTML {name}: {e}")
        return None
    path.write_text(html, encoding="utf-8")
    logger.info(f"HTML dump saved: {path}")
    return path


def _open_schedule(page: Page, settings: Settings) -> None:
    logger.info(f"Navigating to {settings.schedule_url}...")
    page.goto(settings.schedule_url, wait_until="domcontentloaded", timeout=settings.nav_timeout_ms)
    try:
        page.wait_for_selector(SELECTORS["settled"], timeout=settings.nav_timeout_ms, state="attached")
    except PwTimeout:
        # The navigator re-polls an unsettled page on its own
        logger.warning("First screen did not show a known marker in time")


def scrape_page(page: Page, settings: Settings) -> ScrapeResult:
    """Navigate an open page through login and extract the shifts."""
    _open_schedule(page, settings)

    navigator = SessionNavigator(
        page,
        settings.credentials,
        timeout_ms=settings.nav_timeout_ms,
        poll_interval_ms=settings.nav_poll_interval_ms,
        max_stalls=settings.nav_max_stalls,
        max_steps=settings.nav_max_steps,
    )
    trail = navigator.run()
    screens = [state.value for state in trail]
    logger.info(f"Screens traversed: {' -> '.join(screens)}")

    raw_shifts, dropped = extract_raw_shifts(page)
    return ScrapeResult(raw_shifts=raw_shifts, dropped=dropped, screens=screens)


def scrape_schedule(settings: Settings) -> ScrapeResult:
    """Main entry point: launch a browser, scrape the schedule, close the browser.

    On any failure a screenshot and HTML dump are written to ``screenshots/``
    before the error is re-raised.
    """
    with sync_playwright() as p:
        browser: Browser = p.chromium.launch(headless=settings.headless)
        page: Page = browser.new_page()

        try:
            return scrape_page(page, settings)
        except PwTimeout as e:
            logger.error(f"Timeout during scraping: {e}")
            _take_screenshot(page, "error_timeout")
            _dump_html(page, "error_timeout")
            raise
        except Exception as e:
            logger.error(f"Error during scraping: {e}")
            _take_screenshot(page, "error_general")
            _dump_html(page, "error_general")
            raise
        finally:
            browser.close()


if __name__ == "__main__":
    from shiftsync.config import load_settings

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    result = scrape_schedule(load_settings())
    print(f"Shifts ({len(result.raw_shifts)}):")
    for s in result.raw_shifts:
        print(f"  {s.day_label}: {s.start_text} - {s.end_text} ({s.store_name or 'unknown store'})")
    if result.dropped:
        print(f"\nDropped ({len(result.dropped)}):")
        for message in result.dropped:
            print(f"  {message}")
