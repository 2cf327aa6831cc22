import logging

from aiogram import Router, F, types
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup

from openhousepal.bot.keyboards import (
    get_area_done_keyboard, get_form_confirm_keyboard, get_location_mode_keyboard, get_property_types_keyboard,
)
from openhousepal.bot.sessions import ChatSession
from openhousepal.bot.views import esc, render_collections, render_form, show_property_list
from openhousepal.core.errors import ValidationError
from openhousepal.core.validators import (
    PROPERTY_TYPE_REQUIRED, ShowcaseForm, parse_number, parse_range, validate_location, validate_property_types,
)

router = Router()
logger = logging.getLogger(__name__)

RANGE_HINT = "<i>Send a range like <code>2-4</code>, <code>3+</code>, <code>-5</code> or <code>-</code> for any.</i>"


class ShowcaseFormStates(StatesGroup):
    name = State()
    client_name = State()
    client_email = State()
    location = State()
    address = State()
    radius = State()
    area = State()
    beds = State()
    baths = State()
    price = State()
    property_types = State()
    confirm = State()


# === START ===
@router.message(F.text == "➕ New Showcase", flags={"auth": "required"})
@router.message(Command("new"), flags={"auth": "required"})
async def start_create(message: types.Message, session: ChatSession, state: FSMContext):
    session.form = ShowcaseForm()
    session.form_collection_id = None
    await state.set_state(ShowcaseFormStates.name)
    await message.answer("🏷 <b>New showcase</b>\n\nHow should the showcase be called?", parse_mode="HTML")


@router.callback_query(F.data.startswith("prefs_"), flags={"auth": "required"})
async def start_edit(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    collection = session.service.require_collection(callback.data.split("_", 1)[1])
    session.form = collection.preferences.to_form(collection.name)
    session.form_collection_id = collection.id

    await callback.answer()
    await state.set_state(ShowcaseFormStates.location)
    await callback.message.answer(
        f"⚙️ <b>Preferences of {esc(collection.name)}</b>\n\n{render_form(session.form)}\n\n"
        f"Where should we search?",
        parse_mode="HTML",
        reply_markup=get_location_mode_keyboard()
    )


# === CLIENT ===
@router.message(ShowcaseFormStates.name, F.text)
async def set_name(message: types.Message, session: ChatSession, state: FSMContext):
    session.form.showcase_name = message.text.strip()
    await state.set_state(ShowcaseFormStates.client_name)
    await message.answer("👤 Client's full name?")


@router.message(ShowcaseFormStates.client_name, F.text)
async def set_client_name(message: types.Message, session: ChatSession, state: FSMContext):
    session.form.full_name = message.text.strip()
    await state.set_state(ShowcaseFormStates.client_email)
    await message.answer("📧 Client's email? Send <code>-</code> to skip.", parse_mode="HTML")


@router.message(ShowcaseFormStates.client_email, F.text)
async def set_client_email(message: types.Message, session: ChatSession, state: FSMContext):
    email = message.text.strip()
    if email != "-" and "@" not in email:
        await message.answer("⚠️ That does not look like an email. Try again or send <code>-</code>.", parse_mode="HTML")
        return

    session.form.email = "" if email == "-" else email
    await state.set_state(ShowcaseFormStates.location)
    await message.answer("📍 Where should we search?", reply_markup=get_location_mode_keyboard())


# === LOCATION ===
@router.callback_query(ShowcaseFormStates.location, F.data == "loc_address")
async def choose_address(callback: types.CallbackQuery, state: FSMContext):
    await state.set_state(ShowcaseFormStates.address)
    await callback.answer()
    await callback.message.edit_text("📍 Send the address to search around.")


@router.message(ShowcaseFormStates.address, F.text)
async def set_address(message: types.Message, session: ChatSession, state: FSMContext):
    session.form.set_address(message.text)
    if not session.form.address:
        await message.answer("⚠️ Please send an address.")
        return

    await state.set_state(ShowcaseFormStates.radius)
    await message.answer(
        f"📏 Search radius in miles? Send <code>-</code> for {session.form.diameter or 2:g}.",
        parse_mode="HTML"
    )


@router.message(ShowcaseFormStates.radius, F.text)
async def set_radius(message: types.Message, session: ChatSession, state: FSMContext):
    form = session.form
    try:
        radius = parse_number(message.text)
        form.set_radius(radius if radius is not None else (form.diameter or 2.0))
    except ValidationError as e:
        await message.answer(f"⚠️ {esc(e.message)}")
        return

    result = validate_location(form)
    if not result.is_valid:
        await message.answer(f"⚠️ {esc(result.error)}")
        return

    await ask_beds(message, state)


@router.callback_query(ShowcaseFormStates.location, F.data.in_({"loc_cities", "loc_townships"}))
async def choose_area(callback: types.CallbackQuery, state: FSMContext):
    kind = "cities" if callback.data == "loc_cities" else "townships"
    await state.set_state(ShowcaseFormStates.area)
    await state.update_data(area_kind=kind)
    await callback.answer()
    await callback.message.edit_text(
        f"🏙 Send {kind}, one per line (e.g. <code>Philadelphia, PA</code>).\nSend <code>-Name</code> to remove one. Press <b>Done</b> when finished.",
        parse_mode="HTML",
        reply_markup=get_area_done_keyboard()
    )


@router.message(ShowcaseFormStates.area, F.text)
async def add_area(message: types.Message, session: ChatSession, state: FSMContext):
    form = session.form
    kind = (await state.get_data()).get("area_kind", "cities")
    add = form.add_city if kind == "cities" else form.add_township
    remove = form.remove_city if kind == "cities" else form.remove_township

    try:
        for name in message.text.splitlines():
            name = name.strip()
            # "-Name" takes an entry back out
            if name.startswith("-"):
                remove(name[1:])
            else:
                add(name)
    except ValidationError as e:
        await message.answer(f"⚠️ {esc(e.message)}")

    selected = form.cities if kind == "cities" else form.townships
    await message.answer(
        f"Selected {kind}: <b>{esc(', '.join(selected)) or '-'}</b>",
        parse_mode="HTML",
        reply_markup=get_area_done_keyboard()
    )


@router.callback_query(ShowcaseFormStates.area, F.data == "area_done")
async def finish_area(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    result = validate_location(session.form)
    if not result.is_valid:
        await callback.answer(result.error, show_alert=True)
        return

    await callback.answer()
    await callback.message.edit_reply_markup(reply_markup=None)
    await ask_beds(callback.message, state)


# === RANGES ===
async def ask_beds(message: types.Message, state: FSMContext):
    await state.set_state(ShowcaseFormStates.beds)
    await message.answer(f"🛏 Bedrooms?\n{RANGE_HINT}", parse_mode="HTML")


@router.message(ShowcaseFormStates.beds, F.text)
async def set_beds(message: types.Message, session: ChatSession, state: FSMContext):
    try:
        session.form.min_beds, session.form.max_beds = parse_range(message.text, int)
    except ValidationError as e:
        await message.answer(f"⚠️ {esc(e.message)}")
        return

    await state.set_state(ShowcaseFormStates.baths)
    await message.answer(f"🛁 Bathrooms?\n{RANGE_HINT}", parse_mode="HTML")


@router.message(ShowcaseFormStates.baths, F.text)
async def set_baths(message: types.Message, session: ChatSession, state: FSMContext):
    try:
        session.form.min_baths, session.form.max_baths = parse_range(message.text, float)
    except ValidationError as e:
        await message.answer(f"⚠️ {esc(e.message)}")
        return

    await state.set_state(ShowcaseFormStates.price)
    await message.answer(f"💵 Price range? (<code>300k-550k</code>)\n{RANGE_HINT}", parse_mode="HTML")


@router.message(ShowcaseFormStates.price, F.text)
async def set_price(message: types.Message, session: ChatSession, state: FSMContext):
    try:
        session.form.min_price, session.form.max_price = parse_range(message.text, int)
    except ValidationError as e:
        await message.answer(f"⚠️ {esc(e.message)}")
        return

    await state.set_state(ShowcaseFormStates.property_types)
    await message.answer("🏠 Which property types?", reply_markup=get_property_types_keyboard(session.form))


# === PROPERTY TYPES ===
@router.callback_query(ShowcaseFormStates.property_types, F.data.startswith("ptype_"))
async def toggle_type(callback: types.CallbackQuery, session: ChatSession):
    session.form.toggle_property_type(callback.data.split("_", 1)[1])
    await callback.answer()
    await callback.message.edit_reply_markup(reply_markup=get_property_types_keyboard(session.form))


@router.callback_query(ShowcaseFormStates.property_types, F.data == "types_done")
async def finish_types(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    if not validate_property_types(session.form):
        await callback.answer(PROPERTY_TYPE_REQUIRED, show_alert=True)
        return

    await callback.answer()
    await state.set_state(ShowcaseFormStates.confirm)
    await callback.message.edit_text(
        f"📝 <b>Check the showcase</b>\n\n{render_form(session.form)}",
        parse_mode="HTML",
        reply_markup=get_form_confirm_keyboard()
    )


# === SAVE / CANCEL ===
@router.callback_query(ShowcaseFormStates.confirm, F.data == "form_save")
async def save_form(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    service = session.service
    collection_id = session.form_collection_id
    busy = f"form:{collection_id or 'new'}"
    if service.state.is_busy(busy):
        await callback.answer("⏳ Saving...")
        return

    await callback.answer()
    service.state.start(busy)
    try:
        if collection_id is None:
            saved = await service.create_showcase(session.form)
        else:
            saved = await service.save_preferences(collection_id, session.form)
    except ValidationError as e:
        # Shown inline, the form stays open
        await callback.message.answer(f"⚠️ {esc(e.message)}")
        return
    finally:
        service.state.finish(busy)

    if not saved:
        return

    logger.info(f"💾 User {callback.from_user.id} saved showcase form ({collection_id or 'new'})")
    await state.clear()
    session.form = None
    session.form_collection_id = None
    await callback.message.edit_reply_markup(reply_markup=None)

    if collection_id is not None and service.state.selected and service.state.selected.id == collection_id:
        await show_property_list(callback.message, session, edit=False)
    else:
        text, keyboard = render_collections(service.state.collections)
        await callback.message.answer(text, parse_mode="HTML", reply_markup=keyboard)


@router.callback_query(F.data == "form_cancel")
async def cancel_form(callback: types.CallbackQuery, session: ChatSession, state: FSMContext):
    await state.clear()
    session.form = None
    session.form_collection_id = None
    await callback.answer()
    await callback.message.edit_text("Cancelled.")
