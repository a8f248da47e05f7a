"""Telegram delivery of status reports and alerts."""

import asyncio
from datetime import timedelta
from typing import Any, Awaitable, Callable, Protocol

import structlog
from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import RetryAfter, TelegramError

from ..config import TelegramConfig
from ..errors import DeliveryError
from ..models import Channel

logger = structlog.get_logger(__name__)

TELEGRAM_MAX_MESSAGE_LEN = 3900
MAX_RETRY_DELAY_SECONDS = 30.0


class Notifier(Protocol):
    async def send(self, text: str, channel: Channel) -> None: ...


def split_telegram_message(text: str, *, max_len: int = TELEGRAM_MAX_MESSAGE_LEN) -> list[str]:
    s = (text or "").strip()
    if not s:
        return [""]

    max_len = max(1, int(max_len))
    parts: list[str] = []
    while s:
        if len(s) <= max_len:
            parts.append(s)
            break
        cut = s.rfind("\n", 0, max_len + 1)
        if cut < max_len * 0.6:
            cut = max_len
        parts.append(s[:cut].rstrip())
        s = s[cut:].lstrip()
    return parts


class TelegramNotifier:
    """Sends HTML messages to the normal or the critical chat."""

    def __init__(
        self,
        config: TelegramConfig,
        *,
        retries: int = 3,
        base_delay: float = 1.0,
        bot: Any = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize Telegram notifier.

        Args:
            config: Bot token and the two chat ids
            retries: Delivery attempts per message part
            base_delay: First backoff delay in seconds, doubled after each failure
            bot: Pre-built bot object (tests inject a fake)
            sleep: Coroutine used between attempts
        """
        self.config = config
        self.retries = max(1, int(retries))
        self.base_delay = base_delay
        self.bot = bot if bot is not None else Bot(token=config.token)
        self._sleep = sleep
        logger.info("Telegram notifier initialized", retries=self.retries)

    def chat_for(self, channel: Channel) -> Any:
        if channel is Channel.CRITICAL:
            return self.config.alert_chat_id
        return self.config.chat_id

    def _redact(self, message: str) -> str:
        if self.config.token:
            return message.replace(self.config.token, "<redacted>")
        return message

    async def send(self, text: str, channel: Channel) -> None:
        """Deliver ``text`` to ``channel``.

        Raises:
            DeliveryError: when a part could not be sent after all retries
        """
        for part in split_telegram_message(text):
            await self._send_part(part, channel)

    async def _send_part(self, text: str, channel: Channel) -> None:
        chat_id = self.chat_for(channel)
        last_error = ""
        for attempt in range(1, self.retries + 1):
            try:
                await self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode=ParseMode.HTML,
                )
                logger.debug("Telegram notification sent", channel=channel.value, attempt=attempt)
                return
            except RetryAfter as e:
                last_error = self._redact(str(e))
                delay = e.retry_after
                if isinstance(delay, timedelta):
                    delay = delay.total_seconds()
                delay = min(float(delay), MAX_RETRY_DELAY_SECONDS)
            except TelegramError as e:
                last_error = self._redact(str(e))
                delay = min(self.base_delay * (2 ** (attempt - 1)), MAX_RETRY_DELAY_SECONDS)

            if attempt < self.retries:
                logger.warning(
                    "Telegram delivery failed, retrying",
                    channel=channel.value,
                    attempt=attempt,
                    retry_in=delay,
                    error=last_error,
                )
                await self._sleep(delay)

        raise DeliveryError(channel.value, last_error, attempts=self.retries)

    async def close(self) -> None:
        shutdown = getattr(self.bot, "shutdown", None)
        if shutdown is not None:
            await shutdown()
