"""CLI job that walks every RVIS result page and writes the locations to CSV."""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from rvis_crawler.core.config import ConfigError, get_settings
from rvis_crawler.core.sink import append_records, init_output
from rvis_crawler.etl.extract import TokenMissing, extract_table_rows, extract_token
from rvis_crawler.etl.reconcile import merge
from rvis_crawler.etl.script_data import extract_script_locations
from rvis_crawler.models import LocationRecord
from rvis_crawler.vendors.rvis_portal import RvisPortalError, RvisSession

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    FETCHING_TOKEN = "fetching_token"
    SUBMITTING_PAGE = "submitting_page"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    DONE = "done"


@dataclass
class CrawlSummary:
    pages_processed: int = 0
    total_records: int = 0
    output_path: str = ""
    aborted: bool = False
    reason: Optional[str] = None


@dataclass
class SearchFilters:
    county: str = ""
    town: str = ""
    village: str = ""

    def as_kwargs(self) -> Dict[str, str]:
        return {"county": self.county, "town": self.town, "village": self.village}


class CrawlJob:
    """Token fetch, then submit, extract and persist for each page until one comes back empty.

    ``step()`` performs one transition and returns the new state; ``run()``
    steps until ``DONE`` and returns the summary.
    """

    def __init__(
        self,
        session: RvisSession,
        output_path: str,
        *,
        page_delay: float = 1.0,
        max_pages: int = 0,
        filters: Optional[SearchFilters] = None,
    ) -> None:
        self.session = session
        self.output_path = output_path
        self.page_delay = page_delay
        self.max_pages = max_pages
        self.filters = filters or SearchFilters()

        self.state = CrawlState.FETCHING_TOKEN
        self.page = 1
        self.summary = CrawlSummary(output_path=str(output_path))
        self._page_html: Optional[str] = None
        self._page_records: List[LocationRecord] = []

        self._handlers: Dict[CrawlState, Callable[[], CrawlState]] = {
            CrawlState.FETCHING_TOKEN: self._fetch_token,
            CrawlState.SUBMITTING_PAGE: self._submit_page,
            CrawlState.EXTRACTING: self._extract,
            CrawlState.PERSISTING: self._persist,
        }

    def step(self) -> CrawlState:
        if self.state is CrawlState.DONE:
            return self.state
        self.state = self._handlers[self.state]()
        return self.state

    def run(self) -> CrawlSummary:
        logger.info("Starting RVIS crawl against %s", self.session.base_url)
        while self.state is not CrawlState.DONE:
            self.step()

        logger.info(
            "Crawl %s: pages_processed=%d total_records=%d output=%s",
            "aborted" if self.summary.aborted else "completed",
            self.summary.pages_processed,
            self.summary.total_records,
            self.summary.output_path,
        )
        return self.summary

    def _abort(self, reason: str) -> CrawlState:
        self.summary.aborted = True
        self.summary.reason = reason
        return CrawlState.DONE

    def _fetch_token(self) -> CrawlState:
        try:
            body, _ = self.session.request(self.session.base_url)
            self.session.token = extract_token(body)
        except (RvisPortalError, TokenMissing) as exc:
            logger.error("Could not obtain CSRF token: %s", exc)
            return self._abort(str(exc))

        logger.info("Found CSRF token: %s...", self.session.token[:10])
        return CrawlState.SUBMITTING_PAGE

    def _submit_page(self) -> CrawlState:
        if self.max_pages and self.page > self.max_pages:
            logger.info("Reached max_pages=%d, stopping", self.max_pages)
            return CrawlState.DONE

        logger.info("Processing page %d...", self.page)
        try:
            self._page_html = self.session.submit_search(self.page, **self.filters.as_kwargs())
        except (RvisPortalError, TokenMissing) as exc:
            logger.error("Failed to fetch page %d: %s", self.page, exc)
            return self._abort(f"page {self.page}: {exc}")
        return CrawlState.EXTRACTING

    def _extract(self) -> CrawlState:
        html = self._page_html or ""
        self._page_html = None
        table_rows = extract_table_rows(html)
        script_locations = extract_script_locations(html)
        self._page_records = merge(table_rows, script_locations)
        logger.debug(
            "Page %d: %d table rows, %d script locations",
            self.page,
            len(table_rows),
            len(script_locations),
        )

        if not self._page_records:
            logger.info("No locations found on page %d, stopping", self.page)
            return CrawlState.DONE

        logger.info("Found %d locations on page %d", len(self._page_records), self.page)
        return CrawlState.PERSISTING

    def _persist(self) -> CrawlState:
        written = append_records(self.output_path, self._page_records)
        self._page_records = []
        self.summary.pages_processed += 1
        self.summary.total_records += written
        self.page += 1
        time.sleep(self.page_delay)
        return CrawlState.SUBMITTING_PAGE


def run_crawl(
    *,
    base_url: str,
    output_path: str,
    request_timeout: float,
    page_delay: float,
    max_pages: int = 0,
    filters: Optional[SearchFilters] = None,
) -> CrawlSummary:
    """Initialise the output file and crawl every page into it."""
    init_output(output_path)
    session = RvisSession(base_url, timeout=request_timeout)
    job = CrawlJob(
        session,
        output_path,
        page_delay=page_delay,
        max_pages=max_pages,
        filters=filters,
    )
    return job.run()


def _non_negative(cast):
    def parse(raw: str):
        try:
            value = cast(raw)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"{raw!r} is not a number") from exc
        if value < 0:
            raise argparse.ArgumentTypeError(f"must not be negative, got {raw!r}")
        return value

    return parse


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Crawl the RVIS location registry into a CSV file")
    parser.add_argument("--base-url", dest="base_url", default=settings.base_url, help="Search page URL")
    parser.add_argument("--output", dest="output_path", default=settings.output_path, help="CSV file to write")
    parser.add_argument(
        "--max-pages",
        dest="max_pages",
        type=_non_negative(int),
        default=settings.max_pages,
        help="Stop after this many pages (0 means until an empty page)",
    )
    parser.add_argument(
        "--delay",
        dest="page_delay",
        type=_non_negative(float),
        default=settings.page_delay,
        help="Seconds to wait between pages",
    )
    parser.add_argument("--county", dest="county", default="", help="countySel filter value")
    parser.add_argument("--town", dest="town", default="", help="townSel filter value")
    parser.add_argument("--village", dest="village", default="", help="villageSel filter value")
    return parser


def main() -> None:
    try:
        settings = get_settings()
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    parser = build_parser()
    args = parser.parse_args()

    summary = run_crawl(
        base_url=args.base_url,
        output_path=args.output_path,
        request_timeout=settings.request_timeout,
        page_delay=args.page_delay,
        max_pages=args.max_pages,
        filters=SearchFilters(county=args.county, town=args.town, village=args.village),
    )
    if summary.aborted:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
