"""Scheduled token registry refresh and limiter housekeeping."""

from __future__ import annotations

from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from solplan.token_registry import TokenRegistry
from solplan.utils.logging import get_logger
from solplan.utils.rate_limit import RateLimiter

logger = get_logger(__name__)


class RegistryRefreshService:
    """Periodic refresh of the shared token registry."""

    def __init__(
        self,
        registry: TokenRegistry,
        scheduler: AsyncIOScheduler,
        interval_minutes: int = 60,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.interval_minutes = interval_minutes
        self.rate_limiter = rate_limiter

    def start(self) -> None:
        """Register recurring jobs with the scheduler."""
        jobs: List[str] = ["refresh_token_registry"]
        self.scheduler.add_job(
            self._refresh_registry,
            trigger="interval",
            minutes=self.interval_minutes,
            id="refresh_token_registry",
            max_instances=1,
            coalesce=True,
        )

        if self.rate_limiter is not None:
            self.scheduler.add_job(
                self._purge_rate_limits,
                trigger="interval",
                minutes=1,
                id="purge_rate_limits",
            )
            jobs.append("purge_rate_limits")

        logger.info("maintenance_jobs_started", jobs=jobs)

    async def _refresh_registry(self) -> None:
        try:
            refreshed = await self.registry.refresh()
        except Exception as exc:
            logger.error("token_registry_refresh_job_failed", error=str(exc))
            return
        if refreshed:
            logger.info("token_registry_refresh_job_success", size=len(self.registry))

    async def _purge_rate_limits(self) -> None:
        if self.rate_limiter is None:
            return
        removed = self.rate_limiter.purge_idle()
        if removed:
            logger.debug("rate_limit_purged", clients=removed)
