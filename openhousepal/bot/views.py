import html
import logging

from aiogram import types
from aiogram.exceptions import TelegramBadRequest

from openhousepal.bot.keyboards import (
    get_collections_keyboard, get_open_houses_keyboard, get_property_keyboard, get_property_list_keyboard,
    get_share_keyboard,
)
from openhousepal.bot.sessions import ChatSession
from openhousepal.core.errors import ValidationError
from openhousepal.core.schemas import Collection, Property, format_price
from openhousepal.core.service import ShowcaseService
from openhousepal.core.validators import PROPERTY_TYPES, AddressSearch, AreaSearch, ShowcaseForm

logger = logging.getLogger(__name__)

SEPARATOR = "───────────────"

TAB_TITLES = {
    "all": "All Properties",
    "liked": "Liked Properties",
    "disliked": "Disliked Properties",
    "favorited": "Favorite Properties",
}


def esc(value) -> str:
    return html.escape(str(value)) if value is not None else ""


def _num(value) -> str:
    if value is None:
        return "-"
    return f"{value:g}" if isinstance(value, float) else str(value)


def render_collections(collections) -> tuple:
    if not collections:
        return "📭 You have no showcases yet. Use <b>➕ New Showcase</b> to create one.", None

    lines = [f"📋 <b>Your Showcases ({len(collections)})</b>", ""]
    for collection in collections:
        prefs = collection.preferences
        lines.append(
            f"{'🟢' if collection.is_active else '⚪️'} <b>{esc(collection.name)}</b>\n"
            f"└ {esc(collection.customer.full_name)} | {esc(prefs.price_range)} | "
            f"{collection.property_count} properties"
        )
    return "\n".join(lines), get_collections_keyboard(collections)


def render_property_list(session: ChatSession, page: int = 0) -> tuple:
    state = session.state
    collection = state.selected
    if collection is None:
        return "Showcase is closed.", None

    if state.properties is None:
        return f"⏳ Loading <b>{esc(collection.name)}</b>...", None

    view = state.view()
    counts = state.counts()

    lines = [
        f"🏠 <b>{esc(collection.name)}</b>",
        f"For: {esc(collection.customer.full_name)} | {esc(collection.preferences.price_range)}",
        SEPARATOR,
        f"<b>{TAB_TITLES[state.tab]}</b> ({len(view)})",
    ]
    if not view:
        if state.tab == "all":
            lines.append("<i>No properties match this showcase yet.</i>")
        else:
            lines.append(f"<i>No {state.tab} properties yet.</i>")

    keyboard = get_property_list_keyboard(
        view, counts, state.tab, state.sort_by, state.sort_order,
        page=page, collection=collection, public=session.public,
    )
    return "\n".join(lines), keyboard


def render_property(prop: Property, public: bool = False) -> tuple:
    lines = [
        f"🏠 <b>{esc(prop.full_address)}</b>",
        SEPARATOR,
        f"Price: <b>${esc(format_price(prop.price))}</b>",
        f"Beds: <b>{_num(prop.beds)}</b> | Baths: <b>{_num(prop.baths)}</b> | Sq Ft: <b>{_num(prop.square_feet)}</b>",
    ]
    if prop.property_type:
        lines.append(f"Type: {esc(prop.property_type)}")
    if prop.description:
        lines.append("")
        lines.append(f"<i>{esc(prop.description[:500])}</i>")

    lines.append("")
    lines.append(f"💬 <b>Comments ({len(prop.comments)})</b>")
    if not prop.comments:
        lines.append("<i>No comments yet</i>")
    for comment in prop.comments[-10:]:
        pending = " ⏳" if comment.id.startswith("temp-") else ""
        lines.append(f"• <b>{esc(comment.author)}</b>: {esc(comment.content)}{pending}")

    return "\n".join(lines), get_property_keyboard(prop, public)


def render_share(collection: Collection) -> tuple:
    url = ShowcaseService.share_url(collection)
    if collection.is_public and url:
        text = (
            f"🔗 <b>Share '{esc(collection.name)}'</b>\n\n"
            f"Anyone with this link can view the showcase:\n{esc(url)}"
        )
    else:
        text = f"🔒 <b>'{esc(collection.name)}'</b> is private.\nCreate a link to share it with your client."
    return text, get_share_keyboard(collection)


def render_open_houses(open_houses) -> tuple:
    if not open_houses:
        return "🏡 No open houses yet. Create one in the OpenHousePal web app.", None

    lines = [f"🏡 <b>Your Open Houses ({len(open_houses)})</b>", ""]
    for open_house in open_houses:
        facts = " | ".join(p for p in [
            f"${esc(format_price(open_house.price))}" if open_house.price else "",
            f"{_num(open_house.bedrooms)} bd" if open_house.bedrooms else "",
            f"{_num(open_house.bathrooms)} ba" if open_house.bathrooms else "",
            esc((open_house.created_at or "")[:10]),
        ] if p)
        lines.append(f"• <b>{esc(open_house.address)}</b>\n└ {facts or '-'}")
        if open_house.form_url:
            lines.append(f"  Sign-in form: {esc(open_house.form_url)}")
    return "\n".join(lines), get_open_houses_keyboard(open_houses)


def render_form(form: ShowcaseForm) -> str:
    try:
        mode = form.location_mode()
    except ValidationError:
        mode = None

    if isinstance(mode, AddressSearch):
        location = f"{esc(mode.address)} (+{mode.radius:g} mi)"
    elif isinstance(mode, AreaSearch):
        location = esc("; ".join(list(mode.cities) + list(mode.townships)))
    else:
        location = "-"

    types_text = ", ".join(label for attr, label in PROPERTY_TYPES if getattr(form, attr)) or "-"

    lines = []
    if form.showcase_name:
        lines.append(f"Name: <b>{esc(form.showcase_name)}</b>")
    if form.full_name or form.email:
        lines.append(f"Client: {esc(form.full_name)} {esc(form.email)}")
    lines += [
        f"Location: {location}",
        f"Beds: {_num(form.min_beds)} - {_num(form.max_beds)} | Baths: {_num(form.min_baths)} - {_num(form.max_baths)}",
        f"Price: {_num(form.min_price)} - {_num(form.max_price)}",
        f"Types: {esc(types_text)}",
    ]
    return "\n".join(lines)


async def show_property_list(message: types.Message, session: ChatSession, edit: bool = True, page: int = 0):
    text, keyboard = render_property_list(session, page)
    return await _show(message, text, keyboard, edit)


async def show_property(message: types.Message, session: ChatSession, edit: bool = True):
    prop = session.state.detail
    if prop is None:
        return await show_property_list(message, session, edit)
    text, keyboard = render_property(prop, session.public)
    return await _show(message, text, keyboard, edit)


async def refresh_view(message: types.Message, session: ChatSession):
    """Redraws whatever the chat currently looks at (detail or list)"""
    if session.state.detail is not None:
        return await show_property(message, session)
    return await show_property_list(message, session)


async def _show(message: types.Message, text: str, keyboard, edit: bool):
    if edit:
        try:
            await message.edit_text(text, parse_mode="HTML", reply_markup=keyboard, disable_web_page_preview=True)
            return message
        except TelegramBadRequest as e:
            if "not modified" in str(e):
                return message
            # Too old or deleted: send a fresh one
            logger.debug(f"Edit failed, sending new message: {e}")

    return await message.answer(text, parse_mode="HTML", reply_markup=keyboard, disable_web_page_preview=True)
