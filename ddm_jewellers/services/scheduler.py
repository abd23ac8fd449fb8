"""Periodic background jobs - market rate refresh and Gullak autopay sweep"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from ddm_jewellers.config import settings
from ddm_jewellers.services.autopay import process_autopayments
from ddm_jewellers.services.market_rates import MarketRateService

logger = logging.getLogger(__name__)


class BackgroundScheduler:
    """
    Runs each job immediately and then once per interval.

    The two jobs run as separate tasks with no coordination between them.
    A failed tick is logged and the job waits for its next interval.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        rate_interval: Optional[float] = None,
        autopay_interval: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.rate_interval = rate_interval or settings.rate_update_interval_seconds
        self.autopay_interval = autopay_interval or settings.autopay_interval_seconds
        self._tasks: List[asyncio.Task] = []

    async def refresh_rates(self) -> None:
        db: Session = self.session_factory()
        try:
            await MarketRateService(db).update_rates()
        finally:
            db.close()

    def _sweep_autopay(self) -> None:
        db: Session = self.session_factory()
        try:
            summary = process_autopayments(db)
            logger.info("Autopay sweep finished", extra=summary)
        finally:
            db.close()

    async def run_autopay(self) -> None:
        """Sweep in a worker thread; the session never crosses threads"""
        await asyncio.to_thread(self._sweep_autopay)

    async def _every(self, name: str, interval: float, job: Callable[[], Awaitable[None]]) -> None:
        while True:
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Scheduled job {name} failed")
            await asyncio.sleep(interval)

    def start(self) -> None:
        logger.info("Starting market rate updates and Gullak autopay scheduler")
        self._tasks = [
            asyncio.create_task(self._every("market_rates", self.rate_interval, self.refresh_rates)),
            asyncio.create_task(self._every("gullak_autopay", self.autopay_interval, self.run_autopay)),
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Background scheduler stopped")
