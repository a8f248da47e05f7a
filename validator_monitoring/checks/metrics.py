from __future__ import annotations

from typing import Any, Iterable

from validator_monitoring.models import ClusterSkipRate, EpochProgress

LAMPORTS_PER_SOL = 1_000_000_000

# Number of recent performance samples used to estimate the slot duration.
PERFORMANCE_SAMPLE_COUNT = 60


def lamports_to_sol(lamports: Any) -> float:
    return int(lamports) / LAMPORTS_PER_SOL


def compute_skip_rate(expected: int, produced: int) -> float | None:
    """Percentage of elapsed leader slots without a block, or None when no slot has elapsed."""
    expected = int(expected)
    if expected <= 0:
        return None
    return 100.0 * max(0, expected - int(produced)) / expected


def skip_rates_by_identity(by_identity: Any) -> dict[str, float]:
    """Map node identity to skip rate from a getBlockProduction ``byIdentity`` payload."""
    if not isinstance(by_identity, dict):
        return {}
    out: dict[str, float] = {}
    for identity, pair in by_identity.items():
        if not isinstance(pair, (list, tuple)) or len(pair) < 2:
            continue
        try:
            rate = compute_skip_rate(int(pair[0]), int(pair[1]))
        except (TypeError, ValueError):
            continue
        if rate is not None:
            out[str(identity)] = rate
    return out


def _vote_accounts(raw: Any, key: str) -> list[dict[str, Any]]:
    if not isinstance(raw, dict):
        return []
    items = raw.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def compute_cluster_skip_rate(*, vote_accounts: Any, skip_rates: dict[str, float]) -> ClusterSkipRate:
    """Simple and stake-weighted skip rate over current and delinquent vote accounts.

    The simple average covers every account with a known skip rate. The
    weighted average covers accounts that also carry nonzero activated
    stake. When nothing qualifies the neutral value is returned with
    ``known=False``.
    """
    accounts = _vote_accounts(vote_accounts, "current") + _vote_accounts(vote_accounts, "delinquent")

    rates: list[float] = []
    weighted_sum = 0.0
    total_stake = 0
    for account in accounts:
        rate = skip_rates.get(str(account.get("nodePubkey") or ""))
        if rate is None:
            continue
        rates.append(rate)
        try:
            stake = int(account.get("activatedStake") or 0)
        except (TypeError, ValueError):
            stake = 0
        if stake > 0:
            weighted_sum += rate * stake
            total_stake += stake

    if not rates or total_stake <= 0:
        return ClusterSkipRate.unknown()
    return ClusterSkipRate(
        simple=sum(rates) / len(rates),
        weighted=weighted_sum / total_stake,
        known=True,
    )


def epoch_credit_delta(account: dict[str, Any]) -> int:
    """Credits earned in the latest epoch listed in ``epochCredits``."""
    history = account.get("epochCredits")
    if not isinstance(history, list) or not history:
        return 0
    last = history[-1]
    if not isinstance(last, (list, tuple)) or len(last) < 3:
        return 0
    return max(0, int(last[1]) - int(last[2]))


def rank_by_credits(*, vote_accounts: Any, identity: str) -> tuple[int, int]:
    """1-based place of ``identity`` among current vote accounts, with its credits.

    Accounts are ordered by this-epoch credits, highest first; ties keep
    the order returned by the node. ``(0, 0)`` when the identity is absent.
    """
    ranked = sorted(
        ((str(a.get("nodePubkey") or ""), epoch_credit_delta(a)) for a in _vote_accounts(vote_accounts, "current")),
        key=lambda item: item[1],
        reverse=True,
    )
    for idx, (node, credits) in enumerate(ranked):
        if node == identity:
            return idx + 1, credits
    return 0, 0


def average_slot_time_ms(samples: Iterable[Any]) -> int | None:
    slots = 0
    secs = 0
    for sample in samples or []:
        if not isinstance(sample, dict):
            continue
        slots += int(sample.get("numSlots") or 0)
        secs += int(sample.get("samplePeriodSecs") or 0)
    if slots <= 0:
        return None
    return secs * 1000 // slots


def format_duration(seconds: float) -> str:
    total = int(max(0, seconds))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def estimate_epoch_progress(*, epoch_info: Any, performance_samples: Any) -> EpochProgress:
    if not isinstance(epoch_info, dict):
        return EpochProgress()
    try:
        slots_in_epoch = int(epoch_info["slotsInEpoch"])
        slot_index = int(epoch_info["slotIndex"])
        epoch = str(epoch_info["epoch"])
    except (KeyError, TypeError, ValueError):
        return EpochProgress()
    if slots_in_epoch <= 0:
        return EpochProgress(epoch=epoch)

    remaining_slots = max(0, slots_in_epoch - slot_index)
    avg_ms = average_slot_time_ms(performance_samples)
    remaining = format_duration(remaining_slots * avg_ms / 1000) if avg_ms is not None else ""
    return EpochProgress(
        epoch=epoch,
        remaining_duration=remaining,
        remaining_fraction=remaining_slots / slots_in_epoch,
    )
