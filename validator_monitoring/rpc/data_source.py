"""Query contract the monitors consume."""

from __future__ import annotations

from typing import Protocol

from validator_monitoring.models import BlockProduction, ClusterSkipRate, EpochProgress


class DataSource(Protocol):
    """Per-validator chain facts.

    Failures are absorbed per field: balances, delinquency and activated
    stake come back as ``None``, counters as zero and the cluster skip rate
    as ``ClusterSkipRate.unknown()``. Implementations must not raise for a
    failed query.
    """

    async def get_identity_balance(self) -> float | None: ...

    async def get_vote_balance(self) -> float | None: ...

    async def is_delinquent(self) -> bool | None: ...

    async def get_block_production(self) -> BlockProduction: ...

    async def get_slot_count(self) -> int: ...

    async def get_epoch_info(self) -> EpochProgress: ...

    async def get_stake_weighted_skip_rate(self) -> ClusterSkipRate: ...

    async def get_credits_and_place(self) -> tuple[int, int]: ...

    async def get_version(self) -> str: ...

    async def get_activated_stake(self) -> float | None: ...
