"""Periodic node statistics report with skip-rate and low-balance alerts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from html import escape

from validator_monitoring.checks.alerts import critical_skip_rate_alert, short_key, small_amount_alert
from validator_monitoring.checks.base import Monitor
from validator_monitoring.checks.metrics import compute_skip_rate
from validator_monitoring.config import ValidatorConfig
from validator_monitoring.models import Alert, Channel, HealthSample
from validator_monitoring.rpc.data_source import DataSource

# Both the remaining share of the epoch and the elapsed share of this
# validator's leader slots must exceed this before a skip rate counts.
MIN_PROGRESS_FOR_SKIP_ALERT = 0.5

STATUS_OK = "🟢"
STATUS_BAD = "🔴"
RULE = "-" * 35


def leader_progress(sample: HealthSample) -> float:
    """Share of this epoch's leader slots that have already elapsed."""
    if sample.leader_slots <= 0:
        return 0.0
    return sample.blocks_expected / sample.leader_slots


def is_critical_skip_rate(sample: HealthSample, critical_excess: float) -> bool:
    """Skip rate well above the cluster's, late enough in the schedule to be meaningful.

    An unknown skip rate or an unknown cluster rate never qualifies.
    """
    if sample.skip_rate is None or not sample.cluster_skip_rate.known:
        return False
    return (
        sample.skip_rate >= sample.cluster_skip_rate.weighted + critical_excess
        and sample.epoch.remaining_fraction > MIN_PROGRESS_FOR_SKIP_ALERT
        and leader_progress(sample) > MIN_PROGRESS_FOR_SKIP_ALERT
    )


@dataclass(frozen=True)
class HealthVerdict:
    healthy: bool
    skip_rate_alert: Alert | None = None
    low_balance_alert: Alert | None = None


def evaluate_health(validator: ValidatorConfig, sample: HealthSample) -> HealthVerdict:
    skip_rate_alert = None
    if is_critical_skip_rate(sample, validator.critical_excess_of_skip_rate):
        healthy = False
        skip_rate_alert = critical_skip_rate_alert(validator, sample.skip_rate)
    elif sample.is_delinquent is True:
        healthy = False
    else:
        healthy = True

    low_balance_alert = None
    if sample.identity_balance is not None and sample.identity_balance < validator.min_balance_amount:
        low_balance_alert = small_amount_alert(validator, sample.identity_balance)
    return HealthVerdict(healthy, skip_rate_alert, low_balance_alert)


def _num(value: float | None, spec: str) -> str:
    return "n/a" if value is None else format(value, spec)


def render_report(validator: ValidatorConfig, sample: HealthSample, healthy: bool) -> str:
    status = STATUS_OK if healthy else STATUS_BAD
    cluster = sample.cluster_skip_rate.weighted if sample.cluster_skip_rate.known else None
    progress = f"{sample.blocks_expected}/{sample.leader_slots}"
    lines = [
        f"<b>{escape(validator.name)} [{escape(sample.version)}]</b> {status}",
        "",
        f"<code>{'identity':^16} | {'vote':^16}",
        RULE,
        f"{short_key(validator.identity):<16} | {short_key(validator.vote):<16}",
        f"{_num(sample.identity_balance, '.2f'):^16} | {_num(sample.vote_balance, '.2f'):^16}",
        RULE,
        f" place: {sample.credits_rank:^8} | credits: {sample.credits:^7}",
        RULE,
        " progress | skip | skip% | cluster%",
        RULE,
        f"{progress:^10}|{sample.blocks.skipped:^6}|{_num(sample.skip_rate, '.2f'):^7}|{_num(cluster, '.2f'):^9}",
        RULE,
        f"epoch:{sample.epoch.epoch:^4}|{sample.epoch.remaining_duration:^25}",
        RULE,
        f"Active stake |{_num(sample.activated_stake, '.2f'):^22}",
        RULE,
        "</code>",
    ]
    return "\n".join(lines)


class StatsReporter(Monitor):
    """Sends a status report per validator each cycle, plus critical alerts."""

    name = "node_stats"

    async def collect_sample(self, source: DataSource) -> HealthSample:
        results = await asyncio.gather(
            source.get_block_production(),
            source.get_slot_count(),
            source.get_stake_weighted_skip_rate(),
            source.get_epoch_info(),
            source.is_delinquent(),
            source.get_credits_and_place(),
            source.get_identity_balance(),
            source.get_vote_balance(),
            source.get_version(),
            source.get_activated_stake(),
            return_exceptions=True,
        )
        # Every query has finished by now; surface the first failure.
        for result in results:
            if isinstance(result, BaseException):
                raise result
        (
            blocks,
            leader_slots,
            cluster,
            epoch,
            delinquent,
            (rank, credits),
            identity_balance,
            vote_balance,
            version,
            stake,
        ) = results
        return HealthSample(
            is_delinquent=delinquent,
            skip_rate=compute_skip_rate(blocks.expected, blocks.produced),
            cluster_skip_rate=cluster,
            epoch=epoch,
            blocks=blocks,
            leader_slots=leader_slots,
            credits_rank=rank,
            credits=credits,
            identity_balance=identity_balance,
            vote_balance=vote_balance,
            version=version,
            activated_stake=stake,
        )

    async def check_validator(self, validator: ValidatorConfig, source: DataSource) -> None:
        sample = await self.collect_sample(source)
        verdict = evaluate_health(validator, sample)
        self.log.info(
            "Node stats collected",
            validator=validator.name,
            healthy=verdict.healthy,
            skip_rate=sample.skip_rate,
            cluster_skip_rate=sample.cluster_skip_rate.weighted if sample.cluster_skip_rate.known else None,
            rank=sample.credits_rank,
        )

        if verdict.skip_rate_alert is not None:
            await self.notify(verdict.skip_rate_alert, validator)
        await self.notify(Alert(render_report(validator, sample, verdict.healthy), Channel.NORMAL), validator)
        if verdict.low_balance_alert is not None:
            await self.notify(verdict.low_balance_alert, validator)
