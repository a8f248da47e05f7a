from __future__ import annotations

import itertools
from typing import Any

import httpx
import structlog

from validator_monitoring.checks.metrics import (
    PERFORMANCE_SAMPLE_COUNT,
    compute_cluster_skip_rate,
    estimate_epoch_progress,
    lamports_to_sol,
    rank_by_credits,
    skip_rates_by_identity,
)
from validator_monitoring.config import ValidatorConfig
from validator_monitoring.errors import RpcError
from validator_monitoring.models import BlockProduction, ClusterSkipRate, EpochProgress

logger = structlog.get_logger(__name__)


class SolanaRpcClient:
    """Minimal JSON-RPC 2.0 client for one endpoint."""

    def __init__(self, client: httpx.AsyncClient, endpoint: str, *, timeout: float = 30.0):
        self.client = client
        self.endpoint = endpoint
        self.timeout = timeout
        self._ids = itertools.count(1)

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            payload["params"] = params
        try:
            resp = await self.client.post(self.endpoint, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise RpcError(method, f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise RpcError(method, f"invalid JSON response: {exc}") from exc

        if not isinstance(data, dict):
            raise RpcError(method, "response is not a JSON object")
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(method, str(error.get("message") or error), code=error.get("code"))
            raise RpcError(method, str(error))
        return data.get("result")


class SolanaRpcDataSource:
    """Answers the per-validator queries the monitors need from a Solana RPC node."""

    def __init__(self, rpc: SolanaRpcClient, validator: ValidatorConfig):
        self.rpc = rpc
        self.validator = validator
        self.log = logger.bind(validator=validator.name)

    async def _balance(self, key: str) -> float | None:
        try:
            result = await self.rpc.call("getBalance", [key])
        except RpcError as e:
            self.log.warning("Balance query failed", key=key[:16], error=str(e))
            return None
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        return lamports_to_sol(value)

    async def get_identity_balance(self) -> float | None:
        return await self._balance(self.validator.identity)

    async def get_vote_balance(self) -> float | None:
        return await self._balance(self.validator.vote)

    async def _own_vote_accounts(self) -> dict[str, Any]:
        result = await self.rpc.call("getVoteAccounts", [{"votePubkey": self.validator.vote}])
        if not isinstance(result, dict):
            raise RpcError("getVoteAccounts", "unexpected result shape")
        return result

    async def is_delinquent(self) -> bool | None:
        try:
            result = await self._own_vote_accounts()
        except RpcError as e:
            self.log.warning("Delinquency query failed", error=str(e))
            return None
        if self._lists_vote_account(result.get("delinquent")):
            return True
        if self._lists_vote_account(result.get("current")):
            return False
        self.log.warning("Vote account not found in cluster", vote=self.validator.vote[:16])
        return None

    def _lists_vote_account(self, accounts: Any) -> bool:
        return any(
            isinstance(account, dict) and account.get("votePubkey") == self.validator.vote
            for account in accounts or []
        )

    async def get_activated_stake(self) -> float | None:
        try:
            result = await self._own_vote_accounts()
        except RpcError as e:
            self.log.warning("Vote account query failed", error=str(e))
            return None
        for account in list(result.get("current") or []) + list(result.get("delinquent") or []):
            if isinstance(account, dict) and account.get("votePubkey") == self.validator.vote:
                return lamports_to_sol(account.get("activatedStake") or 0)
        return None

    async def get_block_production(self) -> BlockProduction:
        try:
            result = await self.rpc.call("getBlockProduction", [{"identity": self.validator.identity}])
        except RpcError as e:
            self.log.warning("Block production query failed", error=str(e))
            return BlockProduction()
        value = result.get("value") if isinstance(result, dict) else None
        by_identity = value.get("byIdentity") if isinstance(value, dict) else None
        pair = by_identity.get(self.validator.identity) if isinstance(by_identity, dict) else None
        if not isinstance(pair, list) or len(pair) < 2:
            return BlockProduction()
        return BlockProduction(expected=int(pair[0]), produced=int(pair[1]))

    async def get_slot_count(self) -> int:
        try:
            result = await self.rpc.call("getLeaderSchedule", [None, {"identity": self.validator.identity}])
        except RpcError as e:
            self.log.warning("Leader schedule query failed", error=str(e))
            return 0
        if not isinstance(result, dict):
            return 0
        return len(result.get(self.validator.identity) or [])

    async def get_epoch_info(self) -> EpochProgress:
        try:
            epoch_info = await self.rpc.call("getEpochInfo")
        except RpcError as e:
            self.log.warning("Epoch info query failed", error=str(e))
            return EpochProgress()
        try:
            samples = await self.rpc.call("getRecentPerformanceSamples", [PERFORMANCE_SAMPLE_COUNT])
        except RpcError as e:
            self.log.debug("Performance samples unavailable", error=str(e))
            samples = []
        return estimate_epoch_progress(epoch_info=epoch_info, performance_samples=samples)

    async def get_stake_weighted_skip_rate(self) -> ClusterSkipRate:
        try:
            vote_accounts = await self.rpc.call("getVoteAccounts")
        except RpcError as e:
            self.log.warning("Vote accounts query failed", error=str(e))
            return ClusterSkipRate.unknown()
        try:
            production = await self.rpc.call("getBlockProduction")
        except RpcError as e:
            self.log.warning("Cluster block production query failed", error=str(e))
            return ClusterSkipRate.unknown()
        value = production.get("value") if isinstance(production, dict) else None
        by_identity = value.get("byIdentity") if isinstance(value, dict) else None
        return compute_cluster_skip_rate(
            vote_accounts=vote_accounts,
            skip_rates=skip_rates_by_identity(by_identity),
        )

    async def get_credits_and_place(self) -> tuple[int, int]:
        try:
            vote_accounts = await self.rpc.call("getVoteAccounts")
        except RpcError as e:
            self.log.warning("Vote accounts query failed", error=str(e))
            return 0, 0
        return rank_by_credits(vote_accounts=vote_accounts, identity=self.validator.identity)

    async def get_version(self) -> str:
        try:
            nodes = await self.rpc.call("getClusterNodes")
        except RpcError as e:
            self.log.debug("Cluster nodes query failed", error=str(e))
            return "?"
        for node in nodes or []:
            if isinstance(node, dict) and node.get("pubkey") == self.validator.identity:
                return str(node.get("version") or "?")
        return "?"


class DataSourceFactory:
    """Shares one HTTP connection pool across validators, one JSON-RPC client per endpoint."""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 30.0):
        self.client = client
        self.timeout = timeout
        self._rpc_clients: dict[str, SolanaRpcClient] = {}

    def for_validator(self, validator: ValidatorConfig) -> SolanaRpcDataSource:
        rpc = self._rpc_clients.get(validator.rpc)
        if rpc is None:
            rpc = SolanaRpcClient(self.client, validator.rpc, timeout=self.timeout)
            self._rpc_clients[validator.rpc] = rpc
        return SolanaRpcDataSource(rpc, validator)
