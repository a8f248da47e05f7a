from __future__ import annotations

import pytest
from telegram.constants import ParseMode
from telegram.error import NetworkError, RetryAfter

from validator_monitoring.config import TelegramConfig
from validator_monitoring.errors import DeliveryError
from validator_monitoring.models import Channel
from validator_monitoring.notifications.telegram_bot import (
    TELEGRAM_MAX_MESSAGE_LEN,
    TelegramNotifier,
    split_telegram_message,
)

TOKEN = "123456:secret-token"


class FakeBot:
    def __init__(self, failures: list[Exception] | None = None):
        self.failures = list(failures or [])
        self.messages: list[dict] = []

    async def send_message(self, **kwargs) -> None:
        if self.failures:
            raise self.failures.pop(0)
        self.messages.append(kwargs)


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _notifier(bot: FakeBot, sleep: SleepRecorder, retries: int = 3) -> TelegramNotifier:
    config = TelegramConfig(token=TOKEN, chat_id=-100, alert_chat_id=-200)
    return TelegramNotifier(config, retries=retries, bot=bot, sleep=sleep)


def test_split_telegram_message_respects_max_len() -> None:
    text = ("line\n" * 2000).strip()
    parts = split_telegram_message(text, max_len=500)
    assert len(parts) > 1
    assert all(0 < len(p) <= 500 for p in parts)


def test_split_telegram_message_default_limit() -> None:
    text = "a" * (TELEGRAM_MAX_MESSAGE_LEN + 10)
    parts = split_telegram_message(text)
    assert len(parts) == 2
    assert len(parts[0]) <= TELEGRAM_MAX_MESSAGE_LEN
    assert len(parts[1]) <= TELEGRAM_MAX_MESSAGE_LEN


@pytest.mark.asyncio
async def test_channels_map_to_chats() -> None:
    bot = FakeBot()
    notifier = _notifier(bot, SleepRecorder())
    await notifier.send("<b>report</b>", Channel.NORMAL)
    await notifier.send("<b>alert</b>", Channel.CRITICAL)

    assert [m["chat_id"] for m in bot.messages] == [-100, -200]
    assert all(m["parse_mode"] == ParseMode.HTML for m in bot.messages)
    assert bot.messages[0]["text"] == "<b>report</b>"


@pytest.mark.asyncio
async def test_retries_with_backoff_then_succeeds() -> None:
    bot = FakeBot(failures=[NetworkError("timed out"), NetworkError("timed out")])
    sleep = SleepRecorder()
    await _notifier(bot, sleep).send("hello", Channel.CRITICAL)

    assert len(bot.messages) == 1
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_after_uses_server_delay() -> None:
    bot = FakeBot(failures=[RetryAfter(5)])
    sleep = SleepRecorder()
    await _notifier(bot, sleep).send("hello", Channel.NORMAL)

    assert sleep.delays == [5.0]
    assert len(bot.messages) == 1


@pytest.mark.asyncio
async def test_exhausted_retries_raise_delivery_error_without_token() -> None:
    bot = FakeBot(failures=[NetworkError(f"bad url bot{TOKEN}")] * 3)
    sleep = SleepRecorder()
    with pytest.raises(DeliveryError) as exc:
        await _notifier(bot, sleep).send("hello", Channel.CRITICAL)

    assert exc.value.channel == "critical"
    assert exc.value.attempts == 3
    assert TOKEN not in str(exc.value)
    assert len(sleep.delays) == 2
