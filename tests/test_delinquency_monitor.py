from __future__ import annotations

import pytest

from conftest import IDENTITY_A, FakeDataSource, RecordingNotifier
from validator_monitoring.checks.base import Monitor
from validator_monitoring.checks.delinquency import DelinquencyMonitor
from validator_monitoring.models import Channel


def _monitor(validators, sources, notifier) -> DelinquencyMonitor:
    return DelinquencyMonitor(validators, lambda v: sources[v.name], notifier)


@pytest.mark.asyncio
async def test_delinquent_validator_raises_critical_alert(validator_a, notifier) -> None:
    monitor = _monitor([validator_a], {"alpha": FakeDataSource(is_delinquent=True)}, notifier)
    await monitor.run_cycle()

    assert len(notifier.sent) == 1
    text, channel = notifier.sent[0]
    assert channel is Channel.CRITICAL
    assert "alpha" in text
    assert IDENTITY_A[:16] in text
    assert IDENTITY_A[:17] not in text
    assert "DELINQUENT" in text


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [False, None])
async def test_healthy_or_unknown_status_is_silent(validator_a, notifier, status) -> None:
    source = FakeDataSource(is_delinquent=status)
    monitor = _monitor([validator_a], {"alpha": source}, notifier)
    await monitor.run_cycle()

    assert notifier.sent == []
    assert source.calls == ["is_delinquent"]


@pytest.mark.asyncio
async def test_alerts_again_every_cycle_while_delinquent(validator_a, notifier) -> None:
    monitor = _monitor([validator_a], {"alpha": FakeDataSource(is_delinquent=True)}, notifier)
    for _ in range(3):
        await monitor.run_cycle()
    assert len(notifier.sent) == 3


@pytest.mark.asyncio
async def test_delivery_failure_does_not_stop_the_cycle(validator_a, validator_b) -> None:
    notifier = RecordingNotifier(fail_on="alpha")
    sources = {"alpha": FakeDataSource(is_delinquent=True), "beta": FakeDataSource(is_delinquent=True)}
    monitor = _monitor([validator_a, validator_b], sources, notifier)

    await monitor.run_cycle()
    await monitor.run_cycle()

    assert len(notifier.sent) == 2
    assert all("beta" in text for text in notifier.texts())


@pytest.mark.asyncio
async def test_unexpected_error_for_one_validator_skips_only_that_validator(validator_a, validator_b, notifier) -> None:
    class Broken(FakeDataSource):
        async def is_delinquent(self) -> bool | None:
            raise RuntimeError("socket closed")

    sources = {"alpha": Broken(), "beta": FakeDataSource(is_delinquent=True)}
    monitor = _monitor([validator_a, validator_b], sources, notifier)
    await monitor.run_cycle()

    assert len(notifier.sent) == 1
    assert "beta" in notifier.sent[0][0]


def test_monitor_base_requires_check_validator(validator_a, notifier) -> None:
    with pytest.raises(TypeError):
        Monitor([validator_a], lambda v: FakeDataSource(), notifier)
