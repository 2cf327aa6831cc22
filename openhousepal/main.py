import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties

from openhousepal.core.config import API_BASE_URL, BOT_TOKEN
from openhousepal.core.database import Base, engine
from openhousepal.models import auth_session  # noqa: F401  registers the table
from openhousepal.bot import callbacks, forms, handlers
from openhousepal.bot.middleware import AuthMiddleware, SessionMiddleware
from openhousepal.bot.sessions import chat_sessions

# Logging setup
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

bot = Bot(token=BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
dp = Dispatcher()

# Every handler gets the user's ChatSession
dp.message.outer_middleware(SessionMiddleware())
dp.callback_query.outer_middleware(SessionMiddleware())

# Commands first so /cancel works inside any input state
for module in (handlers, forms, callbacks):
    module.router.message.middleware(AuthMiddleware())
    module.router.callback_query.middleware(AuthMiddleware())
    dp.include_router(module.router)

dp.errors.register(handlers.on_error)


async def on_startup():
    # Only the token store lives locally
    Base.metadata.create_all(bind=engine)
    logger.info(f"🤖 Bot started, backend: {API_BASE_URL}")


async def on_shutdown():
    logger.info("🛑 Stopping... closing chat sessions.")
    chat_sessions.close_all()


async def main():
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)
    await dp.start_polling(bot)


def run():
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Bot stopped.")


if __name__ == "__main__":
    run()
