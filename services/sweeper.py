"""
Background Task: Expired Refresh Token Sweep

Periodically deletes refresh_tokens rows whose expires_at has passed.
Runs as a background job using APScheduler, independent of request traffic.

Usage:
    sweeper = ExpirySweeper(token_store, interval=timedelta(hours=1))
    sweeper.start()
    # ... app runs ...
    sweeper.stop()

Tests call run_once() directly instead of starting the scheduler.
"""
from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from models.token_store import TokenStore
from utils.exceptions import StoreUnavailable
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)

JOB_ID = "refresh_token_sweep"


class ExpirySweeper:
    def __init__(
        self,
        tokens: TokenStore,
        interval: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.tokens = tokens
        self.interval = interval
        self.clock = clock
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> Optional[int]:
        """
        One sweep tick. Returns the number of rows deleted, or None if the
        store failed; failures are logged and left for the next tick.
        """
        try:
            deleted = self.tokens.delete_expired_before(self.clock())
        except StoreUnavailable:
            logger.warning("Token sweep skipped: store unavailable, retrying next tick")
            return None
        except Exception as e:
            logger.error("Error during token sweep: %s", e, exc_info=True)
            return None

        if deleted > 0:
            logger.info("Token sweep completed: %d expired refresh tokens deleted", deleted)
        else:
            logger.debug("Token sweep completed: no expired refresh tokens")
        return deleted

    def start(self) -> "ExpirySweeper":
        if self.running:
            return self
        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            func=self.run_once,
            trigger=IntervalTrigger(seconds=self.interval.total_seconds()),
            id=JOB_ID,
            name="Delete expired refresh tokens",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Token sweeper started (interval: %s)", self.interval)
        return self

    def stop(self) -> None:
        if self._scheduler is None:
            return
        try:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            logger.info("Token sweeper stopped")
        finally:
            self._scheduler = None
