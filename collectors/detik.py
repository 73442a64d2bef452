"""
Detik collector. Polls the Detik contributions web service and stores new,
geolocated reports.

Strategy:
- Walk the feed page by page, newest first
- Stop at the first result already processed or older than the cutoff
- Advance the cursor once per cycle, whatever ended it
- No retries: a failed page is picked up again on the next cycle

The feed is assumed to list results in descending contribution id order.
If it ever doesn't, newer results after an old one on the same page are
skipped.
"""

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import requests

from collectors.cache import CacheBuffer, Mode
from collectors.cursor import Cycle, CursorStore
from collectors.poller import Poller
from config.settings import Config
from models import Record
from storage.db import Storage

# Every Detik report is Indonesian
REPORT_LANG = "id"


@dataclass
class Reports:
    """What the host application hands to a data source."""
    storage: Storage
    config: Config
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("reports"))


class DetikCollector:
    def __init__(
        self,
        reports: Reports,
        config: Config,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = reports.storage
        self.log = reports.log
        self._config = config
        self._clock = clock
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = config.user_agent
        self.cursor = CursorStore()
        self._cache = CacheBuffer()
        self._poller: Poller | None = None

    @property
    def cache_mode(self) -> bool:
        return self._cache.mode is Mode.BUFFERING

    def initialize(self) -> int:
        """Load the cursor from storage. Call once before start()."""
        return self.cursor.initialize(self.storage)

    # ── Scheduling ──

    def start(self):
        """Poll now, then every poll_interval milliseconds until stop()."""
        self.log.info(
            f"Polling {self._config.service_url} every "
            f"{self._config.poll_interval / 1000:g} seconds"
        )
        self._poller = Poller(self.run_cycle, self._config.poll_interval / 1000, name="detik")
        self._poller.start()

    def stop(self, wait: bool = True):
        """Stop polling. With wait, block until in-flight cycles finish."""
        if self._poller is not None:
            self._poller.stop(wait=wait)
            self._poller = None

    # ── Cycle ──

    def run_cycle(self) -> list[Record]:
        """
        Run one full polling cycle from page 1.
        Returns the records accepted by the filter (persisted or buffered).
        Never raises for upstream or storage problems; those end the cycle.
        """
        cycle = self.cursor.begin_cycle()
        try:
            page = 1
            while True:
                results = self.fetch_page(page)
                cycle.pages = page
                if not results:
                    break
                if not self.filter_results(results, cycle):
                    break
                page += 1
        finally:
            cursor = self.cursor.commit_cycle(cycle)
            self.log.info(
                f"Cycle done: {len(cycle.accepted)} new results over "
                f"{cycle.pages} page(s), cursor at {cursor}"
            )
        return cycle.accepted

    def fetch_page(self, page: int) -> list[dict] | None:
        """
        Fetch and decode one page into its raw `result` list. None means the
        cycle should end here: network error, bad status, bad JSON, or no results.
        """
        url = self._config.service_url + "&page=" + str(page)
        self.log.debug(f"Loading page {page}")

        try:
            resp = self._session.get(url, timeout=self._config.request_timeout)
        except requests.RequestException as e:
            self.log.error(f"Error fetching page {page}: {e}")
            return None

        if resp.status_code != 200:
            self.log.warning(f"Detik API page {page}: HTTP {resp.status_code}")
            return None

        try:
            payload = resp.json()
        except ValueError:
            self.log.error(f"Error parsing JSON on page {page}: {resp.text[:500]}")
            return None

        self.log.debug(f"Page {page} fetched, {len(resp.content)} bytes")

        results = payload.get("result") if isinstance(payload, dict) else None
        if not results or not isinstance(results, list):
            self.log.info(f"No results found on page {page}")
            return None

        return results

    def filter_results(self, results: list[dict], cycle: Cycle) -> bool:
        """
        Consume raw results from the front of the list until one is already
        processed, too old, or malformed. Results before that one are
        processed. Returns True if the next page should be fetched.
        """
        consumed = 0
        try:
            for raw in results:
                consumed += 1
                try:
                    record = Record.from_json(raw)
                except ValueError as e:
                    self.log.error(f"Unexpected result shape, stopping batch: {e}")
                    return False

                if record.contribution_id <= self.cursor.value:
                    self.log.debug(
                        f"Found already processed result with contribution ID {record.contribution_id}"
                    )
                    return False

                cutoff = self._clock() * 1000 - self._config.historical_load_period
                if record.update_ts * 1000 < cutoff:
                    self.log.debug(
                        f"Result {record.contribution_id} older than maximum configured age of "
                        f"{self._config.historical_load_period / 1000:g} seconds"
                    )
                    return False

                self.log.debug(f"Processing result {record.contribution_id}")
                cycle.observe(record)
                self._cache.submit(record, self.persist)

            return True
        finally:
            del results[:consumed]

    # ── Persistence ──

    def persist(self, record: Record) -> bool:
        """
        Store one report and count it against its author.
        Returns True if the report row was written.
        """
        if not record.has_location:
            self.log.debug(f"Result {record.contribution_id} has no location, skipping")
            return False

        url = record.url.replace("\\", "")
        image_url = record.photo_url.replace("\\", "") if record.photo_url else None

        try:
            self.storage.insert_report(record, url=url, image_url=image_url, lang=REPORT_LANG)
        except sqlite3.IntegrityError as e:
            self.log.info(f"Result {record.contribution_id} not inserted, already stored: {e}")
            return False
        except sqlite3.Error as e:
            self.log.error(f"Database error inserting result {record.contribution_id}: {e}")
            return False

        try:
            self.storage.upsert_author(record)
        except sqlite3.Error as e:
            self.log.error(f"Database error updating author of result {record.contribution_id}: {e}")

        self.log.debug(f"Stored result {record.contribution_id}")
        return True

    # ── Cache mode ──

    def enable_cache_mode(self):
        """Stop writing to storage; hold accepted results until disable_cache_mode()."""
        self.log.info("Enabling caching mode")
        self._cache.enable()

    def disable_cache_mode(self) -> int:
        """Resume writing and replay every held result in arrival order."""
        self.log.info("Disabling caching mode")
        pending = self._cache.disable()
        self.log.info(f"Processing {len(pending)} cached results")
        for record in pending:
            self.persist(record)
        self.log.info("Cached results processed")
        return len(pending)


def create_source(reports: Reports, config: Config | None = None, **overrides) -> DetikCollector:
    """
    Build the Detik data source for a host application.
    Config defaults to the host's; keyword overrides are laid on top.
    """
    config = config or reports.config
    if overrides:
        config = config.merged(**overrides)
    return DetikCollector(reports, config)
