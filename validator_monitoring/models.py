"""Value types shared by the data source, the monitors and the notifier."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Returned by the cluster skip-rate computation when no validator qualifies.
UNKNOWN_SKIP_RATE = 100.0


class Channel(str, Enum):
    NORMAL = "normal"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Alert:
    text: str
    channel: Channel = Channel.CRITICAL


@dataclass(frozen=True)
class BalanceSnapshot:
    identity_balance: float
    vote_balance: float


@dataclass(frozen=True)
class BlockProduction:
    """Leader slots elapsed so far this epoch and blocks actually produced in them."""

    expected: int = 0
    produced: int = 0

    @property
    def skipped(self) -> int:
        return max(0, self.expected - self.produced)

    @property
    def produced_ratio(self) -> float:
        if self.expected <= 0:
            return 0.0
        return self.produced / self.expected


@dataclass(frozen=True)
class EpochProgress:
    epoch: str = ""
    remaining_duration: str = ""
    remaining_fraction: float = 0.0


@dataclass(frozen=True)
class ClusterSkipRate:
    simple: float = UNKNOWN_SKIP_RATE
    weighted: float = UNKNOWN_SKIP_RATE
    known: bool = False

    @classmethod
    def unknown(cls) -> ClusterSkipRate:
        return cls()


@dataclass(frozen=True)
class HealthSample:
    """Everything the stats reporter needs for one validator in one cycle. Never cached."""

    is_delinquent: bool | None
    skip_rate: float | None
    cluster_skip_rate: ClusterSkipRate
    epoch: EpochProgress
    blocks: BlockProduction
    leader_slots: int
    credits_rank: int
    credits: int
    identity_balance: float | None
    vote_balance: float | None
    version: str = "?"
    activated_stake: float | None = None

    @property
    def blocks_produced(self) -> int:
        return self.blocks.produced

    @property
    def blocks_expected(self) -> int:
        return self.blocks.expected
