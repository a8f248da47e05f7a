"""Liveness check: alerts every cycle a validator is reported delinquent."""

from __future__ import annotations

from validator_monitoring.checks.alerts import delinquent_alert
from validator_monitoring.checks.base import Monitor
from validator_monitoring.config import ValidatorConfig
from validator_monitoring.rpc.data_source import DataSource


class DelinquencyMonitor(Monitor):
    name = "delinquency"

    async def check_validator(self, validator: ValidatorConfig, source: DataSource) -> None:
        delinquent = await source.is_delinquent()
        if delinquent is None:
            self.log.debug("Delinquency unknown", validator=validator.name)
            return
        if not delinquent:
            self.log.debug("Validator is healthy", validator=validator.name)
            return

        self.log.error("Validator is delinquent", validator=validator.name)
        await self.notify(delinquent_alert(validator), validator)
