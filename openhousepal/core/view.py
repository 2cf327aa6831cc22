from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Set

from openhousepal.core.schemas import Collection, Property

TABS = ("all", "liked", "disliked", "favorited")
SORT_KEYS = ("price", "beds", "square_feet")
SORT_ORDERS = ("asc", "desc")


class TabCounts(NamedTuple):
    all: int
    liked: int
    disliked: int
    favorited: int


def derive_view(properties: List[Property], tab: str = "all", sort_by: str = "price",
                sort_order: str = "asc") -> List[Property]:
    """Filtered + sorted list for the active tab. Does not touch the input."""
    if tab not in TABS:
        raise ValueError(f"Unknown tab: {tab}")
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_by}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order: {sort_order}")

    if tab == "liked":
        filtered = [p for p in properties if p.liked is True]
    elif tab == "disliked":
        filtered = [p for p in properties if p.disliked is True]
    elif tab == "favorited":
        filtered = [p for p in properties if p.favorited is True]
    else:
        # "All" hides properties the visitor is not interested in
        filtered = [p for p in properties if not p.disliked]

    return sorted(filtered, key=lambda p: getattr(p, sort_by) or 0, reverse=(sort_order == "desc"))


def tab_counts(properties: List[Property]) -> TabCounts:
    return TabCounts(
        all=sum(1 for p in properties if not p.disliked),
        liked=sum(1 for p in properties if p.liked),
        disliked=sum(1 for p in properties if p.disliked),
        favorited=sum(1 for p in properties if p.favorited),
    )


@dataclass
class ViewState:
    """Everything one chat currently looks at. Lives in memory only."""
    collections: List[Collection] = field(default_factory=list)
    selected: Optional[Collection] = None
    properties: Optional[List[Property]] = None
    detail_id: Optional[str] = None

    tab: str = "all"
    sort_by: str = "price"
    sort_order: str = "asc"

    # Busy flags: block double submission of the same action only
    busy: Set[str] = field(default_factory=set)

    # === SELECTION ===

    def select(self, collection: Optional[Collection]):
        if self.selected is None or collection is None or self.selected.id != collection.id:
            self.properties = None
            self.detail_id = None
            self.tab = "all"
        self.selected = collection

    def find_collection(self, collection_id: str) -> Optional[Collection]:
        for collection in self.collections:
            if collection.id == str(collection_id):
                return collection
        return None

    def replace_collection(self, updated: Collection):
        self.collections = [updated if c.id == updated.id else c for c in self.collections]
        if self.selected and self.selected.id == updated.id:
            self.selected = updated

    def find_property(self, property_id) -> Optional[Property]:
        for prop in self.properties or []:
            if prop.id == str(property_id):
                return prop
        return None

    @property
    def detail(self) -> Optional[Property]:
        # The detail view reads from the list, so list updates show up here as well
        if self.detail_id is None:
            return None
        return self.find_property(self.detail_id)

    # === FILTERS ===

    def set_tab(self, tab: str):
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab}")
        self.tab = tab

    def set_sort(self, sort_by: str, sort_order: str = None):
        if sort_by not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_by}")
        if sort_order is None:
            # Same key again flips the order
            sort_order = ("desc" if self.sort_order == "asc" else "asc") if sort_by == self.sort_by else "asc"
        if sort_order not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {sort_order}")
        self.sort_by = sort_by
        self.sort_order = sort_order

    def view(self) -> List[Property]:
        if self.selected is None or self.properties is None:
            return []
        return derive_view(self.properties, self.tab, self.sort_by, self.sort_order)

    def counts(self) -> TabCounts:
        if self.selected is None or self.properties is None:
            return TabCounts(0, 0, 0, 0)
        return tab_counts(self.properties)

    # === BUSY FLAGS ===

    def is_busy(self, action: str) -> bool:
        return action in self.busy

    def start(self, action: str) -> bool:
        if action in self.busy:
            return False
        self.busy.add(action)
        return True

    def finish(self, action: str):
        self.busy.discard(action)


def flags_of(prop: Property) -> Dict[str, bool]:
    return {"liked": prop.liked, "disliked": prop.disliked, "favorited": prop.favorited}
