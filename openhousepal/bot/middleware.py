from typing import Any, Awaitable, Callable, Dict
from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery
from aiogram.dispatcher.flags import get_flag

from openhousepal.bot.sessions import chat_sessions

LOGIN_TEXT = (
    "🔒 <b>Login required</b>\n\n"
    "Please log in with your OpenHousePal account:\n"
    "<code>/login email password</code>"
)


class SessionMiddleware(BaseMiddleware):
    """Puts the user's ChatSession into the handler data as `session`"""

    async def __call__(
            self,
            handler: Callable[[Message, Dict[str, Any]], Awaitable[Any]],
            event: Message | CallbackQuery,
            data: Dict[str, Any]
    ) -> Any:
        data["session"] = chat_sessions.get(event.from_user.id, data["bot"])
        return await handler(event, data)


class AuthMiddleware(BaseMiddleware):
    """
    Handlers flagged auth="required" need a stored token.
    auth="view" is also allowed on a public (shared link) showcase.
    """

    async def __call__(
            self,
            handler: Callable[[Message, Dict[str, Any]], Awaitable[Any]],
            event: Message | CallbackQuery,
            data: Dict[str, Any]
    ) -> Any:
        mode = get_flag(data, "auth")
        if not mode:
            return await handler(event, data)

        session = data.get("session") or chat_sessions.get(event.from_user.id, data["bot"])
        if mode == "view" and session.public:
            return await handler(event, data)

        if session.is_logged_in():
            return await handler(event, data)

        # === NOT LOGGED IN ===
        if isinstance(event, Message):
            await event.answer(LOGIN_TEXT, parse_mode="HTML")
        elif isinstance(event, CallbackQuery):
            await event.message.answer(LOGIN_TEXT, parse_mode="HTML")
            await event.answer()

        # Stop here, handler is not called
        return
