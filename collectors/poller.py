"""
Interval poller on APScheduler. Runs a job now, then every `interval` seconds
until stopped.

Runs execute on the scheduler's thread pool, so a slow run never pushes back
the schedule. Up to `max_instances` runs may overlap if one takes longer than
the interval; the job is responsible for tolerating that.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler

log = logging.getLogger(__name__)


class Poller:
    def __init__(
        self,
        job: Callable[[], object],
        interval: float,
        name: str = "poller",
        max_instances: int = 3,
    ):
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self._job = job
        self._interval = interval
        self._name = name
        self._max_instances = max_instances
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        if self.running:
            log.warning(f"{self._name} already running")
            return

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._run_job,
            trigger="interval",
            seconds=self._interval,
            next_run_time=datetime.now(),
            max_instances=self._max_instances,
            coalesce=False,
            id=f"{self._name}_job",
            name=f"{self._name} poll",
            replace_existing=True,
        )
        self._scheduler.start()
        log.info(f"{self._name} scheduled every {self._interval:g} seconds")

    def stop(self, wait: bool = True):
        """Stop scheduling new runs. With wait, block until in-flight runs finish."""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        log.info(f"{self._name} stopped")

    def _run_job(self):
        try:
            self._job()
        except Exception:
            log.exception(f"{self._name} run failed")
