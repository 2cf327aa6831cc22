import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError as SchemaError

from openhousepal.core.api import ApiClient, ApiResponse
from openhousepal.core.config import PUBLIC_APP_URL
from openhousepal.core.errors import InteractionError, ValidationError
from openhousepal.core.interactions import InteractionController
from openhousepal.core.notifications import NotificationQueue
from openhousepal.core.schemas import (
    Collection, OpenHouse, Property, ShareState, decode_collections, decode_open_houses, decode_properties,
)
from openhousepal.core.validators import TOUR_SLOT_REQUIRED, ShowcaseForm, TourRequest, validate_form
from openhousepal.core.view import ViewState

logger = logging.getLogger(__name__)

CONNECT_ERROR = "Unable to connect to the server. Please try again."

# Backend message fragment -> friendlier text
FRIENDLY_ERRORS = [
    ("no properties match", "No properties match these preferences yet. Try widening the price range or the search area."),
    ("subscription", "Your subscription is not active. Please check your billing settings."),
    ("not found", "This showcase no longer exists."),
]


def friendly_error(message: Optional[str], fallback: str = "Something went wrong.") -> str:
    if not message or message == "Request failed":
        return fallback
    lowered = message.lower()
    for fragment, text in FRIENDLY_ERRORS:
        if fragment in lowered:
            return text
    return message


class ShowcaseService:
    """Collection-level actions of one chat (list, open, share, edit...)"""

    def __init__(self, api: ApiClient, state: ViewState = None, notifications: NotificationQueue = None):
        self.api = api
        self.state = state or ViewState()
        self.notifications = notifications or NotificationQueue()
        self.interactions = InteractionController(api, self.state, self.notifications)
        self.open_houses: List[OpenHouse] = []

    # === LOADING ===

    async def load_collections(self) -> List[Collection]:
        response = await self.api.get_collections()
        if response.status != 200:
            self._fail(response, "Failed to load your showcases.")
            return self.state.collections

        self.state.collections = decode_collections(response.data)

        # Keep the selection pointing at the fresh object
        if self.state.selected:
            fresh = self.state.find_collection(self.state.selected.id)
            if fresh:
                self.state.selected = fresh
            else:
                self.state.select(None)

        logger.info(f"📋 Loaded {len(self.state.collections)} showcases")
        return self.state.collections

    async def select_collection(self, collection_id) -> Optional[List[Property]]:
        collection = self.state.find_collection(collection_id)
        if collection is None:
            raise InteractionError("Showcase not found.")

        self.state.select(collection)
        return await self.refresh_properties()

    async def refresh_properties(self) -> Optional[List[Property]]:
        collection = self.state.selected
        if collection is None:
            raise InteractionError("No showcase selected.")

        response = await self.api.get_collection_properties(collection.id)

        # The user may have switched showcases while we waited
        if self.state.selected is None or self.state.selected.id != collection.id:
            return None

        if response.status != 200:
            self._fail(response, "Failed to load properties.")
            return None

        self.state.properties = decode_properties(response.data)
        return self.state.properties

    def back_to_list(self):
        self.state.select(None)

    # === PROPERTY DETAIL ===

    async def open_property(self, property_id) -> Property:
        prop = self.state.find_property(property_id)
        if prop is None:
            raise InteractionError(f"Property {property_id} is not in this showcase.")

        self.state.detail_id = prop.id

        if prop.details is None:
            response = await self.api.get_property_details(prop.id)
            data = response.data if isinstance(response.data, dict) else {}
            if response.status == 200 and data.get("success") and data.get("details"):
                prop.details = data["details"]
            else:
                logger.info(f"💤 No cached details for {prop.id} ({response.status})")

        # Comments are always fetched fresh
        await self.interactions.load_comments(prop.id)
        return prop

    def close_property(self):
        self.state.detail_id = None

    # === COLLECTION ACTIONS ===

    async def toggle_status(self, collection_id) -> Optional[Collection]:
        collection = self.require_collection(collection_id)
        new_status = "INACTIVE" if collection.is_active else "ACTIVE"

        response = await self.api.update_collection_status(collection.id, new_status)
        if response.status != 200:
            self._fail(response, "Could not update the showcase status.")
            return None

        updated = collection.model_copy(update={"status": new_status})
        self.state.replace_collection(updated)
        self.notifications.success(f"Showcase is now {new_status.lower()}.")
        return updated

    async def update_share(self, collection_id, make_public: bool, force_regenerate: bool = False) -> Optional[ShareState]:
        collection = self.require_collection(collection_id)
        action = f"share:{collection.id}"
        if not self.state.start(action):
            return None

        try:
            response = await self.api.update_share(collection.id, make_public, force_regenerate)
        finally:
            self.state.finish(action)

        if response.status != 200:
            self._fail(response, "Could not update share settings.")
            return None

        try:
            share = ShareState.model_validate(response.data or {})
        except SchemaError:
            self.notifications.error("Unexpected answer from the server.")
            return None

        # The server decides, not our request
        updated = collection.model_copy(update={
            "is_public": share.is_public,
            "share_token": share.share_token or collection.share_token,
        })
        self.state.replace_collection(updated)
        if not share.share_url and updated.share_token:
            share.share_url = self.share_url(updated)
        return share

    async def generate_share_link(self, collection_id) -> Optional[ShareState]:
        return await self.update_share(collection_id, True)

    async def regenerate_share_link(self, collection_id) -> Optional[ShareState]:
        return await self.update_share(collection_id, True, force_regenerate=True)

    @staticmethod
    def share_url(collection: Collection) -> Optional[str]:
        if not collection.share_token:
            return None
        return f"{PUBLIC_APP_URL}/showcase/{collection.share_token}"

    async def save_preferences(self, collection_id, form: ShowcaseForm) -> bool:
        collection = self.require_collection(collection_id)
        # Invalid forms never reach the network
        validate_form(form)

        response = await self.api.update_preferences(collection.id, form.preferences_payload())
        if response.status != 200:
            self._fail(response, "Could not save preferences.")
            return False

        self.notifications.success("Preferences saved.")
        await self.load_collections()
        if self.state.selected and self.state.selected.id == collection.id:
            await self.refresh_properties()
        return True

    async def create_showcase(self, form: ShowcaseForm) -> bool:
        validate_form(form, require_name=True)

        if not self.state.start("create"):
            return False
        try:
            response = await self.api.create_from_address(form.create_payload())
        finally:
            self.state.finish("create")

        if response.status not in (200, 201):
            self._fail(response, "Could not create the showcase.")
            return False

        self.notifications.success(f"Showcase '{form.showcase_name}' created.")
        await self.load_collections()
        return True

    async def delete_collection(self, collection_id) -> bool:
        collection = self.require_collection(collection_id)
        if not self.state.start("deleting"):
            return False

        try:
            response = await self.api.delete_collection(collection.id)
        finally:
            self.state.finish("deleting")

        if not response.ok:
            self._fail(response, "Could not delete the showcase.")
            return False

        self.state.collections = [c for c in self.state.collections if c.id != collection.id]
        if self.state.selected and self.state.selected.id == collection.id:
            self.state.select(None)
        self.notifications.success("Showcase deleted.")
        return True

    async def load_shared(self, share_token: str) -> Optional[Tuple[Collection, List[Property]]]:
        """Public showcase view: the share token is enough, no login needed"""
        response = await self.api.get_shared_collection(share_token)
        if response.status == 404:
            self.notifications.error("Showcase not found or not available for sharing.")
            return None
        if response.status != 200 or not isinstance(response.data, dict):
            self._fail(response, "Failed to load showcase. Please try again.")
            return None

        try:
            collection = Collection.model_validate(response.data)
        except SchemaError:
            self.notifications.error("Failed to load showcase. Please try again.")
            return None

        properties = decode_properties(response.data.get("matchedProperties") or response.data.get("properties") or [])
        self.state.collections = [collection]
        self.state.select(collection)
        self.state.properties = properties
        return collection, properties

    # === TOURS ===

    async def schedule_tour(self, request: TourRequest) -> bool:
        """Asks the agent for a tour of a property in the open showcase"""
        collection = self.state.selected
        if collection is None:
            raise InteractionError("No showcase selected.")
        prop = self.state.find_property(request.property_id)
        if prop is None:
            raise InteractionError(f"Property {request.property_id} is not in this showcase.")
        if not request.slots:
            raise ValidationError(TOUR_SLOT_REQUIRED, field="preferred_date")

        action = f"tour:{prop.id}"
        if not self.state.start(action):
            return False
        try:
            response = await self.api.schedule_tour(collection.id, prop.id, request.payload())
        finally:
            self.state.finish(action)

        if response.status != 200:
            self._fail(response, "Failed to submit tour request. Please try again.")
            return False

        times = "; ".join(f"{day} at {time_}" for day, time_ in request.slots)
        logger.info(f"📅 Tour requested for {prop.id} in {collection.id}: {times}")
        self.notifications.success(f"Tour request for {prop.address or prop.id} sent ({times}). The agent will contact you to confirm.")
        return True

    # === OPEN HOUSES ===

    async def load_open_houses(self) -> List[OpenHouse]:
        response = await self.api.get_open_houses()
        if response.status != 200:
            self._fail(response, "Failed to load your open houses.")
            return self.open_houses

        self.open_houses = decode_open_houses(response.data)
        logger.info(f"🏡 Loaded {len(self.open_houses)} open houses")
        return self.open_houses

    def find_open_house(self, open_house_id) -> Optional[OpenHouse]:
        open_house_id = str(open_house_id)
        return next((o for o in self.open_houses if o.id == open_house_id), None)

    async def delete_open_house(self, open_house_id) -> bool:
        open_house = self.find_open_house(open_house_id)
        if open_house is None:
            raise InteractionError("Open house not found.")

        action = f"open_house:{open_house.id}"
        if not self.state.start(action):
            return False
        try:
            response = await self.api.delete_open_house(open_house.id)
        finally:
            self.state.finish(action)

        if response.status != 200:
            self._fail(response, "Failed to remove listing. Please try again.")
            return False

        self.open_houses = [o for o in self.open_houses if o.id != open_house.id]
        self.notifications.success("Listing removed. All related data is preserved.")
        await self.load_open_houses()
        return True

    # === HELPERS ===

    def require_collection(self, collection_id) -> Collection:
        collection = self.state.find_collection(collection_id)
        if collection is None:
            raise InteractionError("Showcase not found.")
        return collection

    def _fail(self, response: ApiResponse, fallback: str):
        logger.warning(f"⚠️ {fallback} ({response.status}: {response.error})")
        if response.status == 401:
            return
        if response.is_network_error:
            self.notifications.error(CONNECT_ERROR)
        else:
            self.notifications.error(friendly_error(response.error, fallback))
