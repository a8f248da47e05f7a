"""Balance drift check."""

from __future__ import annotations

from typing import Sequence

from validator_monitoring.checks.alerts import balance_change_alert
from validator_monitoring.checks.base import DataSourceProvider, Monitor
from validator_monitoring.config import ValidatorConfig
from validator_monitoring.models import BalanceSnapshot
from validator_monitoring.notifications.telegram_bot import Notifier
from validator_monitoring.rpc.data_source import DataSource

DEFAULT_DRIFT_TOLERANCE = 0.05


class BalanceMonitor(Monitor):
    """Alerts when identity or vote balance moves by more than the tolerance.

    The last complete pair of balances is kept per validator name. A cycle
    where either balance is unavailable leaves the stored pair untouched.
    """

    name = "balance"

    def __init__(
        self,
        roster: Sequence[ValidatorConfig],
        data_sources: DataSourceProvider,
        notifier: Notifier,
        *,
        tolerance: float = DEFAULT_DRIFT_TOLERANCE,
    ):
        super().__init__(roster, data_sources, notifier)
        self.tolerance = tolerance
        self.snapshots: dict[str, BalanceSnapshot] = {}

    async def check_validator(self, validator: ValidatorConfig, source: DataSource) -> None:
        identity_balance = await source.get_identity_balance()
        vote_balance = await source.get_vote_balance()

        previous = self.snapshots.get(validator.name)
        if previous is not None:
            await self._compare(validator, "Identity", previous.identity_balance, identity_balance)
            await self._compare(validator, "Vote", previous.vote_balance, vote_balance)

        if identity_balance is not None and vote_balance is not None:
            self.snapshots[validator.name] = BalanceSnapshot(identity_balance, vote_balance)
        else:
            self.log.debug(
                "Incomplete balance sample, keeping previous snapshot",
                validator=validator.name,
                identity=identity_balance,
                vote=vote_balance,
            )

    async def _compare(self, validator: ValidatorConfig, kind: str, previous: float, current: float | None) -> None:
        # Balances are lamport-exact; drop float noise below 1e-9 SOL.
        if current is None or round(abs(current - previous), 9) <= self.tolerance:
            return
        self.log.info(
            "Balance changed",
            validator=validator.name,
            kind=kind.lower(),
            previous=round(previous, 3),
            current=round(current, 3),
            delta=round(current - previous, 3),
        )
        await self.notify(balance_change_alert(validator, kind=kind, previous=previous, current=current), validator)
