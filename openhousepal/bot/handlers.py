import logging

from aiogram import Router, F, types
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext

from openhousepal.bot.keyboards import get_main_keyboard
from openhousepal.bot.sessions import ChatSession, chat_sessions
from openhousepal.bot.views import esc, render_collections, render_open_houses, show_property_list
from openhousepal.core.database import SessionLocal
from openhousepal.core.errors import InteractionError
from openhousepal.core.token_store import clear_token, save_token

router = Router()
logger = logging.getLogger(__name__)

HELP_TEXT = (
    "ℹ️ <b>Help</b>\n\n"
    "1. Log in: <code>/login email password</code>\n"
    "2. <b>📋 Showcases</b> lists your showcases, tap one to see its properties.\n"
    "3. <b>➕ New Showcase</b> creates a showcase for a client.\n"
    "4. Open a property to 👍 like, 👎 dislike, ⭐ save or 💬 comment.\n"
    "5. Share a showcase with 🔗 Share. Clients open it with <code>/shared TOKEN</code>\n"
    "   and can ask for a visit with 📅 Schedule a tour.\n"
    "6. <b>🏡 Open Houses</b> lists your open house sign-in forms.\n\n"
    "<i>/cancel stops any input in progress.</i>"
)


# === /START ===
@router.message(Command("start"))
async def cmd_start(message: types.Message, command: CommandObject, session: ChatSession):
    # t.me/<bot>?start=<share token> opens a shared showcase
    if command.args:
        await open_shared(message, session, command.args.strip())
        return

    await message.answer(
        "👋 Hi! I'm the OpenHousePal assistant.\n"
        "Use the menu below, or /login to connect your account.",
        reply_markup=get_main_keyboard()
    )


# === AUTH ===
@router.message(Command("login"))
async def cmd_login(message: types.Message, command: CommandObject, session: ChatSession):
    args = (command.args or "").split()
    if len(args) != 2:
        await message.answer("ℹ️ Usage: <code>/login email password</code>", parse_mode="HTML")
        return

    email, password = args
    # Do not leave the password in the chat
    try:
        await message.delete()
    except TelegramBadRequest as e:
        logger.warning(f"Could not delete login message of {message.from_user.id}: {e}")

    response = await session.api.login(email, password)
    token = response.data.get("access_token") if isinstance(response.data, dict) else None
    if response.status != 200 or not token:
        error = "Invalid email or password." if response.status == 401 else (response.error or "Login failed.")
        await message.answer(f"❌ {esc(error)}", parse_mode="HTML")
        return

    db = SessionLocal()
    try:
        save_token(db, message.from_user.id, token, email)
    finally:
        db.close()

    logger.info(f"🔑 User {message.from_user.id} logged in (redirect={session.redirect})")
    session.public = False
    session.redirect = None

    await message.answer(f"✅ Logged in as <b>{esc(email)}</b>", parse_mode="HTML", reply_markup=get_main_keyboard())
    await session.service.load_collections()

    # Back to the showcase the expired session was looking at
    resume_id, session.resume_collection_id = session.resume_collection_id, None
    if resume_id and session.state.find_collection(resume_id):
        await session.service.select_collection(resume_id)
        await show_property_list(message, session, edit=False)
        return

    text, keyboard = render_collections(session.state.collections)
    await message.answer(text, parse_mode="HTML", reply_markup=keyboard)


@router.message(Command("logout"))
async def cmd_logout(message: types.Message, session: ChatSession, state: FSMContext):
    if session.is_logged_in():
        response = await session.api.logout()
        if not response.ok:
            logger.warning(f"⚠️ Logout request failed for {message.from_user.id}: {response.error}")

    db = SessionLocal()
    try:
        clear_token(db, message.from_user.id)
    finally:
        db.close()

    await state.clear()
    chat_sessions.reset(message.from_user.id)
    await message.answer("👋 Logged out.", reply_markup=get_main_keyboard())


@router.message(F.text == "👤 Account", flags={"auth": "required"})
@router.message(Command("account"), flags={"auth": "required"})
async def cmd_account(message: types.Message, session: ChatSession):
    response = await session.api.me()
    if response.status != 200 or not isinstance(response.data, dict):
        if response.status != 401:
            await message.answer("❌ Could not load your account.")
        return

    user = response.data
    name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip() or "-"
    info = (
        f"👤 <b>Your Account</b>\n\n"
        f"Name: <b>{esc(name)}</b>\n"
        f"Email: {esc(user.get('email') or '-')}\n"
        f"───────────────\n"
        f"Showcases: {len(session.state.collections)}\n\n"
        f"<i>Log out: /logout</i>"
    )
    await message.answer(info, parse_mode="HTML")


# === SHOWCASES ===
@router.message(F.text == "📋 Showcases", flags={"auth": "required"})
@router.message(Command("showcases"), flags={"auth": "required"})
async def cmd_showcases(message: types.Message, session: ChatSession):
    if session.public:
        # Leaving a shared showcase for the own account
        session.public = False
        session.service.back_to_list()

    collections = await session.service.load_collections()
    text, keyboard = render_collections(collections)
    await message.answer(text, parse_mode="HTML", reply_markup=keyboard)


# === OPEN HOUSES ===
@router.message(F.text == "🏡 Open Houses", flags={"auth": "required"})
@router.message(Command("openhouses"), flags={"auth": "required"})
async def cmd_open_houses(message: types.Message, session: ChatSession):
    open_houses = await session.service.load_open_houses()
    text, keyboard = render_open_houses(open_houses)
    await message.answer(text, parse_mode="HTML", reply_markup=keyboard, disable_web_page_preview=True)


# === SHARED SHOWCASE ===
@router.message(Command("shared"))
async def cmd_shared(message: types.Message, command: CommandObject, session: ChatSession):
    if not command.args:
        await message.answer("ℹ️ Usage: <code>/shared TOKEN</code>", parse_mode="HTML")
        return
    await open_shared(message, session, command.args.strip())


async def open_shared(message: types.Message, session: ChatSession, share_token: str):
    session.public = True
    result = await session.service.load_shared(share_token)
    if result is None:
        session.public = False
        return

    collection, properties = result
    logger.info(f"🔗 User {message.from_user.id} opened shared showcase {collection.id} ({len(properties)} properties)")
    await show_property_list(message, session, edit=False)


@router.message(F.text == "ℹ️ Help")
@router.message(Command("help"))
async def cmd_help(message: types.Message):
    await message.answer(HELP_TEXT, parse_mode="HTML")


@router.message(Command("cancel"))
async def cmd_cancel(message: types.Message, session: ChatSession, state: FSMContext):
    await state.clear()
    session.form = None
    session.form_collection_id = None
    await message.answer("Cancelled.", reply_markup=get_main_keyboard())


async def on_error(event: types.ErrorEvent):
    # Precondition errors are user mistakes (stale buttons), not crashes
    if isinstance(event.exception, InteractionError):
        logger.info(f"💤 {event.exception}")
        callback = event.update.callback_query
        if callback and callback.message:
            await callback.message.answer(f"⚠️ {esc(str(event.exception))}", parse_mode="HTML")
        return True

    logger.exception(f"Handler error: {event.exception}", exc_info=event.exception)
    return True
