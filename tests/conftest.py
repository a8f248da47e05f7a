from __future__ import annotations

from typing import Any

import pytest

from validator_monitoring.config import ValidatorConfig
from validator_monitoring.errors import DeliveryError
from validator_monitoring.models import BlockProduction, Channel, ClusterSkipRate, EpochProgress

IDENTITY_A = "DDnAqxJVFo2GVTujibHt5cjevHMSE9bo8HJaydHoshdp"
VOTE_A = "CertusDeBmqN8ZawdkxK5kFGMwBXdudvWHYwtNgNhvLu"
IDENTITY_B = "9QxCLckBiJc783jnMvXZubK4wH86Eqqvashtrwvcsgkv"
VOTE_B = "Vote111111111111111111111111111111111111111"


class FakeDataSource:
    """Returns canned facts. Balance facts may be lists, consumed one per call."""

    DEFAULTS: dict[str, Any] = {
        "identity_balance": 10.0,
        "vote_balance": 5.0,
        "is_delinquent": False,
        "block_production": BlockProduction(expected=100, produced=100),
        "slot_count": 160,
        "epoch_info": EpochProgress(epoch="600", remaining_duration="1d 2h", remaining_fraction=0.7),
        "cluster_skip_rate": ClusterSkipRate(simple=30.0, weighted=30.0, known=True),
        "credits_and_place": (1, 1000),
        "version": "1.18.22",
        "activated_stake": 50_000.0,
    }

    def __init__(self, **facts: Any):
        self.facts = dict(self.DEFAULTS)
        self.facts.update(facts)
        self.calls: list[str] = []

    def _get(self, key: str) -> Any:
        self.calls.append(key)
        value = self.facts[key]
        if isinstance(value, list):
            return value.pop(0) if len(value) > 1 else value[0]
        return value

    async def get_identity_balance(self) -> float | None:
        return self._get("identity_balance")

    async def get_vote_balance(self) -> float | None:
        return self._get("vote_balance")

    async def is_delinquent(self) -> bool | None:
        return self._get("is_delinquent")

    async def get_block_production(self) -> BlockProduction:
        return self._get("block_production")

    async def get_slot_count(self) -> int:
        return self._get("slot_count")

    async def get_epoch_info(self) -> EpochProgress:
        return self._get("epoch_info")

    async def get_stake_weighted_skip_rate(self) -> ClusterSkipRate:
        return self._get("cluster_skip_rate")

    async def get_credits_and_place(self) -> tuple[int, int]:
        return self._get("credits_and_place")

    async def get_version(self) -> str:
        return self._get("version")

    async def get_activated_stake(self) -> float | None:
        return self._get("activated_stake")


class RecordingNotifier:
    def __init__(self, fail_on: str | None = None):
        self.sent: list[tuple[str, Channel]] = []
        self.fail_on = fail_on

    async def send(self, text: str, channel: Channel) -> None:
        if self.fail_on is not None and self.fail_on in text:
            raise DeliveryError(channel.value, "chat not found", attempts=3)
        self.sent.append((text, channel))

    def texts(self, channel: Channel | None = None) -> list[str]:
        return [t for t, c in self.sent if channel is None or c is channel]


@pytest.fixture
def validator_a() -> ValidatorConfig:
    return ValidatorConfig(
        name="alpha",
        identity=IDENTITY_A,
        vote=VOTE_A,
        rpc="http://rpc-a.local:8899",
        min_balance_amount=1.0,
        critical_excess_of_skip_rate=20.0,
    )


@pytest.fixture
def validator_b() -> ValidatorConfig:
    return ValidatorConfig(
        name="beta",
        identity=IDENTITY_B,
        vote=VOTE_B,
        rpc="http://rpc-b.local:8899",
        min_balance_amount=1.0,
        critical_excess_of_skip_rate=20.0,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
