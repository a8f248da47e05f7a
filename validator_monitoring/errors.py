"""Exception types raised across the monitoring system."""


class MonitoringError(Exception):
    """Base class for all monitoring errors."""


class ConfigError(MonitoringError):
    """Settings are missing or malformed. Fatal at startup."""


class RpcError(MonitoringError):
    """A JSON-RPC call failed at the transport or protocol level."""

    def __init__(self, method: str, message: str, code: int | None = None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


class DeliveryError(MonitoringError):
    """A notification could not be delivered to its channel."""

    def __init__(self, channel: str, message: str, attempts: int = 1):
        super().__init__(f"delivery to {channel} failed after {attempts} attempt(s): {message}")
        self.channel = channel
        self.attempts = attempts
