"""Alert texts. HTML subset understood by Telegram (``<b>``, ``<code>``)."""

from __future__ import annotations

from html import escape

from validator_monitoring.config import ValidatorConfig
from validator_monitoring.models import Alert, Channel

KEY_PREFIX_LEN = 16


def short_key(key: str) -> str:
    return key[:KEY_PREFIX_LEN]


def _alert(validator: ValidatorConfig, headline: str) -> Alert:
    text = (
        f"<b>{escape(validator.name)}</b>\n"
        f"pubkey -> {short_key(validator.identity)}\n"
        f"<b>{headline}</b>"
    )
    return Alert(text=text, channel=Channel.CRITICAL)


def delinquent_alert(validator: ValidatorConfig) -> Alert:
    return _alert(validator, "DELINQUENT!!!")


def balance_change_alert(validator: ValidatorConfig, *, kind: str, previous: float, current: float) -> Alert:
    return _alert(
        validator,
        f"{kind} balance changed!!! {previous:.3f};{current:.3f};{current - previous:.3f}",
    )


def critical_skip_rate_alert(validator: ValidatorConfig, skip_rate: float) -> Alert:
    return _alert(validator, f"CRITICAL_SKIP_RATE => {skip_rate:.2f}!!!")


def small_amount_alert(validator: ValidatorConfig, balance: float) -> Alert:
    return _alert(validator, f"SMALL AMOUNT => {balance:.3f}!!!")
