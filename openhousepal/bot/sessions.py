import logging
from typing import Dict, Optional

from aiogram import Bot

from openhousepal.core.api import ApiClient
from openhousepal.core.database import SessionLocal
from openhousepal.core.notifications import NotificationQueue
from openhousepal.core.service import ShowcaseService
from openhousepal.core.token_store import clear_token, get_token
from openhousepal.core.validators import ShowcaseForm
from openhousepal.bot.toasts import ToastRenderer

logger = logging.getLogger(__name__)


class ChatSession:
    """Per-user state of the bot (the equivalent of one open browser tab)"""

    def __init__(self, user_id: int, bot: Bot):
        self.user_id = user_id
        self.bot = bot

        # Public showcase opened via share link (no login)
        self.public = False
        # Where to go back after /login
        self.redirect: Optional[str] = None

        # Create / edit form in progress
        self.form: Optional[ShowcaseForm] = None
        self.form_collection_id: Optional[str] = None
        # Showcase to reopen after the next /login
        self.resume_collection_id: Optional[str] = None

        self.notifications = NotificationQueue()
        self.notifications.subscribe(*self._toast_listeners(bot))
        self.api = ApiClient(token_provider=self.token, on_auth_error=self._on_auth_error)
        self.service = ShowcaseService(self.api, notifications=self.notifications)

    def _toast_listeners(self, bot: Bot):
        toasts = ToastRenderer(bot, self.user_id)
        return toasts.show, toasts.dismiss

    @property
    def state(self):
        return self.service.state

    def token(self) -> Optional[str]:
        db = SessionLocal()
        try:
            return get_token(db, self.user_id)
        finally:
            db.close()

    def is_logged_in(self) -> bool:
        return self.token() is not None

    def _on_auth_error(self, redirect: str):
        # 401: drop the token and everything loaded with it
        db = SessionLocal()
        try:
            clear_token(db, self.user_id)
        finally:
            db.close()

        self.redirect = redirect
        if self.state.selected and not self.public:
            self.resume_collection_id = self.state.selected.id
        self.service.back_to_list()
        self.state.collections = []
        self.service.open_houses = []
        logger.info(f"🔒 User {self.user_id} logged out by 401, redirect={redirect}")
        self.notifications.error("Your session has expired. Please /login again.")

    def close(self):
        self.notifications.close()


class ChatSessions:
    def __init__(self):
        self._sessions: Dict[int, ChatSession] = {}

    def get(self, user_id: int, bot: Bot) -> ChatSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = ChatSession(user_id, bot)
            self._sessions[user_id] = session
        return session

    def reset(self, user_id: int):
        session = self._sessions.pop(user_id, None)
        if session:
            session.close()

    def close_all(self):
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()


chat_sessions = ChatSessions()
