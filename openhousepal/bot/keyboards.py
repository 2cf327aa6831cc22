from typing import List

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton, ReplyKeyboardMarkup, KeyboardButton

from openhousepal.core.schemas import Collection, OpenHouse, Property, format_price
from openhousepal.core.validators import PROPERTY_TYPES, ShowcaseForm
from openhousepal.core.view import TabCounts

PAGE_SIZE = 8

TAB_LABELS = {"all": "All", "liked": "👍 Liked", "disliked": "👎 Disliked", "favorited": "⭐ Favorites"}
SORT_LABELS = {"price": "Price", "beds": "Beds", "square_feet": "Sq Ft"}


def get_main_keyboard() -> ReplyKeyboardMarkup:
    """Main menu"""
    buttons = [
        [
            KeyboardButton(text="📋 Showcases"),
            KeyboardButton(text="➕ New Showcase")
        ],
        [
            KeyboardButton(text="🏡 Open Houses"),
            KeyboardButton(text="👤 Account"),
            KeyboardButton(text="ℹ️ Help")
        ]
    ]
    return ReplyKeyboardMarkup(keyboard=buttons, resize_keyboard=True)


def get_collections_keyboard(collections: List[Collection]) -> InlineKeyboardMarkup:
    buttons = []
    for collection in collections:
        state = "🟢" if collection.is_active else "⚪️"
        text = f"{state} {collection.name} · {collection.customer.full_name} ({collection.property_count})"
        buttons.append([InlineKeyboardButton(text=text[:60], callback_data=f"col_{collection.id}")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_property_list_keyboard(properties: List[Property], counts: TabCounts, active_tab: str,
                               sort_by: str, sort_order: str, page: int = 0,
                               collection: Collection = None, public: bool = False) -> InlineKeyboardMarkup:
    buttons = []

    # Tabs with counters
    tab_row = []
    for tab, label in TAB_LABELS.items():
        mark = "• " if tab == active_tab else ""
        tab_row.append(InlineKeyboardButton(text=f"{mark}{label} {getattr(counts, tab)}", callback_data=f"tab_{tab}"))
    buttons.append(tab_row[:2])
    buttons.append(tab_row[2:])

    # Sorting: pressing the active key again flips the order
    sort_row = []
    for key, label in SORT_LABELS.items():
        if key == sort_by:
            label = f"{label} {'↑' if sort_order == 'asc' else '↓'}"
        sort_row.append(InlineKeyboardButton(text=label, callback_data=f"sort_{key}"))
    buttons.append(sort_row)

    start = page * PAGE_SIZE
    for prop in properties[start:start + PAGE_SIZE]:
        flags = ("👍" if prop.liked else "") + ("👎" if prop.disliked else "") + ("⭐" if prop.favorited else "")
        text = f"{flags} ${format_price(prop.price)} · {prop.address}".strip()
        buttons.append([InlineKeyboardButton(text=text[:60], callback_data=f"prop_{prop.id}")])

    nav_row = []
    if page > 0:
        nav_row.append(InlineKeyboardButton(text="⬅️", callback_data=f"page_{page - 1}"))
    if start + PAGE_SIZE < len(properties):
        nav_row.append(InlineKeyboardButton(text="➡️", callback_data=f"page_{page + 1}"))
    if nav_row:
        buttons.append(nav_row)

    if collection is not None and not public:
        buttons.append([
            InlineKeyboardButton(text="⚙️ Preferences", callback_data=f"prefs_{collection.id}"),
            InlineKeyboardButton(text="🔗 Share", callback_data=f"share_{collection.id}"),
        ])
        buttons.append([
            InlineKeyboardButton(text="⏸ Deactivate" if collection.is_active else "▶️ Activate",
                                 callback_data=f"status_{collection.id}"),
            InlineKeyboardButton(text="🗑 Delete", callback_data=f"del_{collection.id}"),
        ])
        buttons.append([InlineKeyboardButton(text="⬅️ All showcases", callback_data="back_showcases")])

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_property_keyboard(prop: Property, public: bool = False) -> InlineKeyboardMarkup:
    """Buttons under an opened property"""
    pid = prop.id
    buttons = [
        [
            InlineKeyboardButton(text="👍 Liked" if prop.liked else "👍 Like", callback_data=f"like_{pid}"),
            InlineKeyboardButton(text="👎 Disliked" if prop.disliked else "👎 Dislike", callback_data=f"dislike_{pid}"),
            InlineKeyboardButton(text="⭐ Saved" if prop.favorited else "☆ Save", callback_data=f"fav_{pid}"),
        ],
        [
            InlineKeyboardButton(text=f"💬 Comment ({len(prop.comments)})", callback_data=f"comment_{pid}")
        ],
        [
            InlineKeyboardButton(text="⬅️ Back to list", callback_data="back_list")
        ]
    ]
    if public:
        # Clients ask the agent for a visit
        buttons.insert(2, [InlineKeyboardButton(text="📅 Schedule a tour", callback_data=f"tour_{pid}")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_share_keyboard(collection: Collection) -> InlineKeyboardMarkup:
    cid = collection.id
    buttons = []
    if collection.is_public:
        buttons.append([InlineKeyboardButton(text="🔄 New link", callback_data=f"shareregen_{cid}")])
        buttons.append([InlineKeyboardButton(text="🔒 Make private", callback_data=f"shareoff_{cid}")])
    else:
        buttons.append([InlineKeyboardButton(text="🔗 Create share link", callback_data=f"shareon_{cid}")])
    buttons.append([InlineKeyboardButton(text="❌ Close", callback_data="close")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_delete_keyboard(collection: Collection) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="🗑 Yes, delete", callback_data=f"delyes_{collection.id}"),
            InlineKeyboardButton(text="Cancel", callback_data="close"),
        ]
    ])


def get_location_mode_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📍 Address + radius", callback_data="loc_address")],
        [
            InlineKeyboardButton(text="🏙 Cities", callback_data="loc_cities"),
            InlineKeyboardButton(text="🏘 Townships", callback_data="loc_townships"),
        ],
        [InlineKeyboardButton(text="❌ Cancel", callback_data="form_cancel")],
    ])


def get_area_done_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Done", callback_data="area_done")],
        [InlineKeyboardButton(text="❌ Cancel", callback_data="form_cancel")],
    ])


def get_property_types_keyboard(form: ShowcaseForm) -> InlineKeyboardMarkup:
    buttons = []
    row = []
    for attr, label in PROPERTY_TYPES:
        mark = "✅" if getattr(form, attr) else "▫️"
        row.append(InlineKeyboardButton(text=f"{mark} {label}", callback_data=f"ptype_{attr}"))
        if len(row) == 2:
            buttons.append(row)
            row = []
    if row:
        buttons.append(row)

    buttons.append([InlineKeyboardButton(text="➡️ Continue", callback_data="types_done")])
    buttons.append([InlineKeyboardButton(text="❌ Cancel", callback_data="form_cancel")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_form_confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="💾 Save", callback_data="form_save"),
            InlineKeyboardButton(text="❌ Cancel", callback_data="form_cancel"),
        ]
    ])


def get_open_houses_keyboard(open_houses: List[OpenHouse]) -> InlineKeyboardMarkup:
    buttons = []
    for open_house in open_houses:
        text = f"🗑 Remove {open_house.address or open_house.id}"
        buttons.append([InlineKeyboardButton(text=text[:60], callback_data=f"ohdel_{open_house.id}")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_open_house_delete_keyboard(open_house: OpenHouse) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="🗑 Yes, remove", callback_data=f"ohdelyes_{open_house.id}"),
            InlineKeyboardButton(text="Cancel", callback_data="close"),
        ]
    ])
