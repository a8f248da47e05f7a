"""Wires configuration, data sources, notifier and monitors together."""

import asyncio
from typing import Optional

import httpx
import structlog

from ..checks.balance import BalanceMonitor
from ..checks.base import DataSourceProvider
from ..checks.delinquency import DelinquencyMonitor
from ..checks.node_stats import StatsReporter
from ..config import MonitoringConfig
from ..notifications.telegram_bot import Notifier, TelegramNotifier
from ..rpc.client import DataSourceFactory
from .job_scheduler import JobScheduler, next_hour_boundary

logger = structlog.get_logger(__name__)


class MonitorCoordinator:
    """Owns the three monitors and schedules each on its own period."""

    def __init__(
        self,
        config: MonitoringConfig,
        *,
        notifier: Optional[Notifier] = None,
        data_sources: Optional[DataSourceProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        scheduler: Optional[JobScheduler] = None,
    ):
        self.config = config
        self.roster = config.roster
        self._owns_http_client = http_client is None and data_sources is None
        self.http_client = http_client
        if data_sources is None:
            if self.http_client is None:
                self.http_client = httpx.AsyncClient()
            data_sources = DataSourceFactory(self.http_client, timeout=config.rpc_timeout_seconds).for_validator
        self.notifier = notifier or TelegramNotifier(config.telegram, retries=config.notification_retries)
        self.scheduler = scheduler or JobScheduler()

        self.delinquency = DelinquencyMonitor(self.roster, data_sources, self.notifier)
        self.balance = BalanceMonitor(
            self.roster, data_sources, self.notifier, tolerance=config.balance_drift_tolerance
        )
        self.stats = StatsReporter(self.roster, data_sources, self.notifier)

    def start(self):
        """Start the scheduler and register the monitor jobs."""
        timeouts = self.config.timeouts
        self.scheduler.add_interval_job(
            job_id="delinquency_check",
            func=self.delinquency.run_cycle,
            seconds=timeouts.delinquency_check_period,
            description="Validator delinquency check",
        )
        self.scheduler.add_interval_job(
            job_id="balance_check",
            func=self.balance.run_cycle,
            seconds=timeouts.balance_check_period,
            description="Identity and vote balance drift check",
        )
        self.scheduler.add_interval_job(
            job_id="node_stats_report",
            func=self.stats.run_cycle,
            seconds=timeouts.stats_report_period,
            first_run=next_hour_boundary(),
            description="Node statistics report",
        )
        self.scheduler.start()
        logger.info("Monitor coordinator started", validators=len(self.roster))

    async def stop(self):
        self.scheduler.stop()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            await close()
        if self._owns_http_client and self.http_client is not None:
            await self.http_client.aclose()
        logger.info("Monitor coordinator stopped")

    async def run_once(self):
        """Run one cycle of every monitor, without hour alignment."""
        await self.delinquency.run_cycle()
        await self.balance.run_cycle()
        await self.stats.run_cycle()

    async def run_forever(self):
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
