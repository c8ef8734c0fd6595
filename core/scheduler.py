import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime

from features.stations.services.station_service import StationDirectoryService
from features.tides.services.tide_service import TideService
from features.common.exceptions.tide_exceptions import InvalidSelection, TideServiceError
from core.config import settings

logger = logging.getLogger(__name__)

class Scheduler:
    def __init__(self, directory: StationDirectoryService, tide_service: TideService):
        self.scheduler = AsyncIOScheduler()
        self.directory = directory
        self.tide_service = tide_service

    async def check_catalog(self) -> None:
        """Refresh the station catalog once it passes its TTL."""
        refreshed = await self.directory.refresh_if_stale()
        if refreshed:
            logger.info("Station catalog refreshed by scheduler")

    async def refresh_tides(self) -> None:
        """Refresh the active selection's tide state and alert schedule."""
        try:
            await self.tide_service.refresh_active_selection()
        except InvalidSelection as e:
            logger.info(f"Skipping tide refresh: {str(e)}")
        except TideServiceError as e:
            logger.error(f"❌ Scheduled tide refresh failed: {str(e)}")

    def start(self):
        """Start the scheduler with configured jobs."""
        logger.info("Starting scheduler")

        self.scheduler.add_job(
            self.check_catalog,
            IntervalTrigger(hours=settings.catalog_check_hours),
            id='catalog_freshness',
            name='catalog_freshness'
        )

        self.scheduler.add_job(
            self.refresh_tides,
            IntervalTrigger(hours=settings.tide_refresh_hours),
            id='tide_refresh',
            name='tide_refresh',
            next_run_time=datetime.now()
        )

        self.scheduler.start()
        logger.info("Scheduler started successfully")

    def shutdown(self):
        """Shutdown the scheduler."""
        if self.scheduler.running:
            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown complete")
