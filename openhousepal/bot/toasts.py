import asyncio
import logging
from typing import Dict

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from openhousepal.core.notifications import Notification

logger = logging.getLogger(__name__)

ICONS = {"success": "✅", "error": "❌", "info": "ℹ️"}


class ToastRenderer:
    """Shows notifications as chat messages and deletes them when they expire"""

    def __init__(self, bot: Bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id
        self._sending: Dict[int, asyncio.Task] = {}

    def show(self, notification: Notification):
        self._sending[notification.id] = asyncio.create_task(self._send(notification))

    def dismiss(self, notification: Notification):
        task = self._sending.pop(notification.id, None)
        if task:
            asyncio.create_task(self._delete(task))

    async def _send(self, notification: Notification):
        icon = ICONS.get(notification.type, "")
        try:
            message = await self.bot.send_message(self.chat_id, f"{icon} {notification.message}", parse_mode=None)
            return message.message_id
        except TelegramAPIError as e:
            logger.error(f"Toast send error to {self.chat_id}: {e}")
            return None

    async def _delete(self, send_task: asyncio.Task):
        message_id = await send_task
        if message_id is None:
            return
        try:
            await self.bot.delete_message(self.chat_id, message_id)
        except TelegramAPIError as e:
            # Already deleted by the user, too old...
            logger.warning(f"Toast delete error in {self.chat_id}: {e}")
