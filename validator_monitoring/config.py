"""Configuration management for the validator monitor."""

import os
import re
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config/validators.yaml"

_BASE58_KEY = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|secs|sec|s|mins|min|m|hrs|hr|h|days|day|d)\b")
_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1, "sec": 1, "secs": 1,
    "m": 60, "min": 60, "mins": 60,
    "h": 3600, "hr": 3600, "hrs": 3600,
    "d": 86400, "day": 86400, "days": 86400,
}


def parse_duration(value: Any) -> float:
    """Parse seconds from a number or a string like ``"10s"``, ``"5m"`` or ``"1h 30m"``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = str(value or "").strip().lower()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if text[pos:match.start()].strip():
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or text[pos:].strip():
        raise ValueError(f"invalid duration: {value!r}")
    return total


class TelegramConfig(BaseModel):
    """Telegram delivery settings."""
    token: str = Field(default="", description="Bot token")
    chat_id: Union[int, str] = Field(description="Chat for routine status reports")
    alert_chat_id: Union[int, str] = Field(description="Chat for critical alerts")


class TimeoutsConfig(BaseModel):
    """Loop periods, in seconds."""
    delinquency_check_period: float = Field(default=10.0, gt=0, description="Delinquency check period")
    balance_check_period: float = Field(default=5.0, gt=0, description="Balance check period")
    stats_report_period: float = Field(default=3600.0, gt=0, description="Node stats report period")

    @field_validator("delinquency_check_period", "balance_check_period", "stats_report_period", mode="before")
    @classmethod
    def _parse_period(cls, value: Any) -> float:
        return parse_duration(value)


class ValidatorConfig(BaseModel):
    """One monitored validator. Immutable for the process lifetime."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Display name")
    identity: str = Field(description="Identity public key")
    vote: str = Field(description="Vote account public key")
    rpc: str = Field(description="RPC endpoint used for this validator")
    min_balance_amount: float = Field(default=0.0, description="Low identity balance alert threshold")
    critical_excess_of_skip_rate: float = Field(
        default=10.0, description="Skip rate points above the cluster rate that raise a critical alert"
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_validator_block(cls, data: Any) -> Any:
        # Accept the nested `validator: {name, identity, vote, rpc}` layout.
        if isinstance(data, dict) and isinstance(data.get("validator"), dict):
            merged = dict(data["validator"])
            merged.update({k: v for k, v in data.items() if k != "validator"})
            return merged
        return data

    @field_validator("identity", "vote")
    @classmethod
    def _check_key(cls, value: str) -> str:
        value = value.strip()
        if not _BASE58_KEY.match(value):
            raise ValueError(f"not a base58 public key: {value!r}")
        return value

    @field_validator("rpc")
    @classmethod
    def _check_rpc(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"rpc endpoint must be an http(s) URL: {value!r}")
        return value


class MonitoringConfig(BaseModel):
    """Main configuration for the validator monitor."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="console or json")

    telegram: TelegramConfig
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)

    balance_drift_tolerance: float = Field(default=0.05, ge=0, description="Balance change that raises an alert")
    notification_retries: int = Field(default=3, ge=1, description="Delivery attempts per message")
    rpc_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for a single RPC call")

    nodes: list[ValidatorConfig] = Field(min_length=1, description="Monitored validators")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return value

    @model_validator(mode="after")
    def _check_unique_names(self) -> "MonitoringConfig":
        names = [node.name for node in self.nodes]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate validator names: {', '.join(duplicates)}")
        if not self.telegram.token:
            raise ValueError("telegram.token is required (or TELEGRAM_BOT_TOKEN)")
        return self

    @property
    def roster(self) -> Tuple[ValidatorConfig, ...]:
        return tuple(self.nodes)


def load_config(config_path: Optional[str] = None) -> MonitoringConfig:
    """Load configuration from a YAML file, then apply environment overrides."""
    if config_path is None:
        config_path = os.getenv("VALIDATOR_MONITORING_CONFIG", DEFAULT_CONFIG_PATH)

    if not os.path.exists(config_path):
        raise ConfigError(f"config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data: Dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigError("config YAML must be a mapping")

    telegram = dict(config_data.get("telegram") or {})
    telegram_overrides = {
        "token": os.getenv("TELEGRAM_BOT_TOKEN"),
        "chat_id": os.getenv("TELEGRAM_CHAT_ID"),
        "alert_chat_id": os.getenv("TELEGRAM_ALERT_CHAT_ID"),
    }
    for key, value in telegram_overrides.items():
        if value is not None:
            telegram[key] = value
    config_data["telegram"] = telegram

    log_level = os.getenv("LOG_LEVEL")
    if log_level is not None:
        config_data["log_level"] = log_level

    try:
        return MonitoringConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration in {config_path}: {e}") from e
