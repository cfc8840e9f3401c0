from __future__ import annotations

import logging
from html import escape

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Send booking progress to a Telegram chat so a human can step in."""

    def __init__(self, token: str, chat_id: str | int) -> None:
        self._token = token
        self._chat_id = chat_id

    async def __call__(self, text: str) -> None:
        await self.send(text)

    async def send(self, text: str) -> None:
        bot = Bot(token=self._token, default=DefaultBotProperties(parse_mode="HTML"))
        try:
            await bot.send_message(chat_id=self._chat_id, text=escape(text))
        finally:
            await bot.session.close()
        logger.debug("Notification sent to chat %s", self._chat_id)
