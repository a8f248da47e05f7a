"""Shared cycle driver for the monitor loops."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

import structlog

from validator_monitoring.config import ValidatorConfig
from validator_monitoring.errors import DeliveryError
from validator_monitoring.models import Alert
from validator_monitoring.notifications.telegram_bot import Notifier
from validator_monitoring.rpc.data_source import DataSource

DataSourceProvider = Callable[[ValidatorConfig], DataSource]


class Monitor(ABC):
    """Iterates the roster once per cycle, one validator at a time.

    Subclasses implement ``check_validator``. A failure while checking one
    validator is logged and the cycle moves on to the next one; a failed
    delivery is logged and does not stop the cycle either.
    """

    name = "monitor"

    def __init__(self, roster: Sequence[ValidatorConfig], data_sources: DataSourceProvider, notifier: Notifier):
        self.roster = tuple(roster)
        self.data_sources = data_sources
        self.notifier = notifier
        self.log = structlog.get_logger(__name__).bind(monitor=self.name)

    async def run_cycle(self) -> None:
        self.log.debug("Cycle started", validators=len(self.roster))
        for validator in self.roster:
            try:
                await self.check_validator(validator, self.data_sources(validator))
            except Exception as e:
                self.log.error(
                    "Validator check failed",
                    validator=validator.name,
                    error=f"{type(e).__name__}: {e}",
                )
        self.log.debug("Cycle finished")

    @abstractmethod
    async def check_validator(self, validator: ValidatorConfig, source: DataSource) -> None:
        ...

    async def notify(self, alert: Alert, validator: ValidatorConfig) -> bool:
        """Send an alert; returns False when delivery failed."""
        try:
            await self.notifier.send(alert.text, alert.channel)
            return True
        except DeliveryError as e:
            self.log.error(
                "Notification delivery failed",
                validator=validator.name,
                channel=e.channel,
                attempts=e.attempts,
                error=str(e),
            )
            return False
