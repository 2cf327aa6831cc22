import asyncio
import logging

from aiogram import Router, F, types
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup

from openhousepal.bot.keyboards import get_delete_keyboard, get_open_house_delete_keyboard
from openhousepal.bot.sessions import ChatSession
from openhousepal.bot.views import (
    esc, refresh_view, render_collections, render_open_houses, render_share, show_property, show_property_list,
)
from openhousepal.core.errors import ValidationError
from openhousepal.core.validators import parse_tour_request

router = Router()
logger = logging.getLogger(__name__)

ACTIONS = {"like": "liked", "dislike": "disliked", "fav": "favorited"}


class CommentForm(StatesGroup):
    text = State()


class TourForm(StatesGroup):
    slots = State()


def _arg(callback: types.CallbackQuery) -> str:
    return callback.data.split("_", 1)[1]


async def _optimistic(message: types.Message, session: ChatSession, coro):
    """
    Runs an interaction and draws the view twice: once as soon as the local
    copy changed, once more with what the server said.
    """
    task = asyncio.create_task(coro)
    # Let the controller apply the change before its request suspends
    await asyncio.sleep(0)
    message = await refresh_view(message, session)
    result = await task
    await refresh_view(message, session)
    return result


# === SHOWCASE LIST ===
@router.callback_query(F.data.startswith("col_"), flags={"auth": "required"})
async def open_collection(callback: types.CallbackQuery, session: ChatSession):
    session.public = False
    await callback.answer()
    await session.service.select_collection(_arg(callback))
    await show_property_list(callback.message, session)


@router.callback_query(F.data == "back_showcases", flags={"auth": "required"})
async def back_to_showcases(callback: types.CallbackQuery, session: ChatSession):
    session.service.back_to_list()
    await callback.answer()
    text, keyboard = render_collections(session.state.collections)
    await callback.message.edit_text(text, parse_mode="HTML", reply_markup=keyboard)


# === FILTERS ===
@router.callback_query(F.data.startswith("tab_"), flags={"auth": "view"})
async def switch_tab(callback: types.CallbackQuery, session: ChatSession):
    session.state.set_tab(_arg(callback))
    await callback.answer()
    await show_property_list(callback.message, session)


@router.callback_query(F.data.startswith("sort_"), flags={"auth": "view"})
async def switch_sort(callback: types.CallbackQuery, session: ChatSession):
    session.state.set_sort(_arg(callback))
    await callback.answer()
    await show_property_list(callback.message, session)


@router.callback_query(F.data.startswith("page_"), flags={"auth": "view"})
async def switch_page(callback: types.CallbackQuery, session: ChatSession):
    await callback.answer()
    await show_property_list(callback.message, session, page=int(_arg(callback)))


# === PROPERTY DETAIL ===
@router.callback_query(F.data.startswith("prop_"), flags={"auth": "view"})
async def open_property(callback: types.CallbackQuery, session: ChatSession):
    await callback.answer()
    await session.service.open_property(_arg(callback))
    await show_property(callback.message, session)


@router.callback_query(F.data == "back_list", flags={"auth": "view"})
async def back_to_list(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    session.service.close_property()
    await state.clear()
    await callback.answer()
    await show_property_list(callback.message, session)


@router.callback_query(F.data.startswith(("like_", "dislike_", "fav_")), flags={"auth": "view"})
async def handle_interaction(callback: types.CallbackQuery, session: ChatSession):
    action, property_id = callback.data.split("_", 1)
    prop = session.state.find_property(property_id)
    if prop is None:
        await callback.answer("This property is no longer in the list.", show_alert=True)
        return

    controller = session.service.interactions
    # Buttons toggle the current flag
    value = not getattr(prop, ACTIONS[action])
    if action == "like":
        coro = controller.set_like(prop.id, value)
    elif action == "dislike":
        coro = controller.set_dislike(prop.id, value)
    else:
        coro = controller.set_favorite(prop.id, value)

    await callback.answer()
    await _optimistic(callback.message, session, coro)


@router.callback_query(F.data.startswith("comment_"), flags={"auth": "view"})
async def ask_comment(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    detail = session.state.detail
    if detail is None or detail.id != _arg(callback):
        await callback.answer("Open the property first.", show_alert=True)
        return

    await state.set_state(CommentForm.text)
    await state.update_data(property_id=detail.id)
    await callback.answer()
    await callback.message.answer(
        f"✍️ Send your comment on <b>{esc(detail.address)}</b>.\n<i>/cancel to stop.</i>",
        parse_mode="HTML"
    )


@router.message(CommentForm.text, F.text)
async def save_comment(message: types.Message, session: ChatSession, state: FSMContext):
    data = await state.get_data()
    await state.clear()

    property_id = data.get("property_id")
    detail = session.state.detail
    if detail is None or detail.id != property_id:
        await message.answer("⚠️ This property is no longer open.")
        return

    author = message.from_user.full_name if session.public else None
    # The detail message is redrawn below the comment
    view = await show_property(message, session, edit=False)
    await _optimistic(view, session, session.service.interactions.add_comment(property_id, message.text, author=author))


# === TOURS ===
@router.callback_query(F.data.startswith("tour_"), flags={"auth": "view"})
async def ask_tour(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    detail = session.state.detail
    if detail is None or detail.id != _arg(callback):
        await callback.answer("Open the property first.", show_alert=True)
        return

    await state.set_state(TourForm.slots)
    await state.update_data(property_id=detail.id)
    await callback.answer()
    await callback.message.answer(
        f"📅 <b>Schedule a tour of {esc(detail.address)}</b>\n\n"
        f"Send up to 3 preferred times, one per line, best first:\n"
        f"<code>2025-06-14 10:30</code>\n<code>2025-06-15 4pm</code>\n"
        f"Tours run from 6:00 AM to 8:00 PM. Any other line is passed on to the agent as a note.\n"
        f"<i>/cancel to stop.</i>",
        parse_mode="HTML"
    )


@router.message(TourForm.slots, F.text)
async def save_tour(message: types.Message, session: ChatSession, state: FSMContext):
    property_id = (await state.get_data()).get("property_id")
    detail = session.state.detail
    if detail is None or detail.id != property_id:
        await state.clear()
        await message.answer("⚠️ This property is no longer open.")
        return

    try:
        request = parse_tour_request(property_id, message.text)
    except ValidationError as e:
        # Stay in the step, the user corrects the times
        await message.answer(f"⚠️ {esc(e.message)}")
        return

    if session.state.is_busy(f"tour:{property_id}"):
        await message.answer("⏳ Sending your request...")
        return

    if await session.service.schedule_tour(request):
        await state.clear()


# === COLLECTION ACTIONS ===
@router.callback_query(F.data.startswith("status_"), flags={"auth": "required"})
async def toggle_status(callback: types.CallbackQuery, session: ChatSession):
    await callback.answer()
    await session.service.toggle_status(_arg(callback))
    await show_property_list(callback.message, session)


@router.callback_query(F.data.startswith("share_"), flags={"auth": "required"})
async def open_share(callback: types.CallbackQuery, session: ChatSession):
    collection = session.service.require_collection(_arg(callback))
    await callback.answer()
    text, keyboard = render_share(collection)
    await callback.message.answer(text, parse_mode="HTML", reply_markup=keyboard, disable_web_page_preview=True)


@router.callback_query(F.data.startswith(("shareon_", "shareoff_", "shareregen_")), flags={"auth": "required"})
async def change_share(callback: types.CallbackQuery, session: ChatSession):
    action, collection_id = callback.data.split("_", 1)
    if session.state.is_busy(f"share:{collection_id}"):
        await callback.answer("⏳ Please wait...")
        return

    await callback.answer()
    if action == "shareon":
        share = await session.service.generate_share_link(collection_id)
    elif action == "shareregen":
        share = await session.service.regenerate_share_link(collection_id)
    else:
        share = await session.service.update_share(collection_id, False)

    if share is None:
        return

    logger.info(f"🔗 Share of {collection_id}: public={share.is_public}")
    text, keyboard = render_share(session.service.require_collection(collection_id))
    await callback.message.edit_text(text, parse_mode="HTML", reply_markup=keyboard, disable_web_page_preview=True)


@router.callback_query(F.data.startswith("del_"), flags={"auth": "required"})
async def confirm_delete(callback: types.CallbackQuery, session: ChatSession):
    collection = session.service.require_collection(_arg(callback))
    await callback.answer()
    await callback.message.answer(
        f"🗑 Delete <b>{esc(collection.name)}</b>?\nThis cannot be undone.",
        parse_mode="HTML",
        reply_markup=get_delete_keyboard(collection)
    )


@router.callback_query(F.data.startswith("delyes_"), flags={"auth": "required"})
async def delete_collection(callback: types.CallbackQuery, session: ChatSession):
    if session.state.is_busy("deleting"):
        await callback.answer("⏳ Already deleting...")
        return

    await callback.answer()
    if not await session.service.delete_collection(_arg(callback)):
        return

    await callback.message.edit_text("🗑 Showcase deleted.")
    text, keyboard = render_collections(session.state.collections)
    await callback.message.answer(text, parse_mode="HTML", reply_markup=keyboard)


@router.callback_query(F.data == "close")
async def close_message(callback: types.CallbackQuery):
    await callback.message.delete()
    await callback.answer()


# === OPEN HOUSES ===
@router.callback_query(F.data.startswith("ohdel_"), flags={"auth": "required"})
async def confirm_open_house_delete(callback: types.CallbackQuery, session: ChatSession):
    open_house = session.service.find_open_house(_arg(callback))
    if open_house is None:
        await callback.answer("This open house is no longer listed.", show_alert=True)
        return

    await callback.answer()
    await callback.message.answer(
        f"🗑 Remove <b>{esc(open_house.address)}</b> from your open houses?\n"
        f"Visitor sign-ins are kept.",
        parse_mode="HTML",
        reply_markup=get_open_house_delete_keyboard(open_house)
    )


@router.callback_query(F.data.startswith("ohdelyes_"), flags={"auth": "required"})
async def delete_open_house(callback: types.CallbackQuery, session: ChatSession):
    open_house_id = _arg(callback)
    if session.state.is_busy(f"open_house:{open_house_id}"):
        await callback.answer("⏳ Already removing...")
        return

    await callback.answer()
    if not await session.service.delete_open_house(open_house_id):
        return

    logger.info(f"🗑 User {callback.from_user.id} removed open house {open_house_id}")
    text, keyboard = render_open_houses(session.service.open_houses)
    await callback.message.edit_text(text, parse_mode="HTML", reply_markup=keyboard, disable_web_page_preview=True)
