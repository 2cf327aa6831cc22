import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from pydantic import ValidationError as SchemaError

from openhousepal.core.api import ApiClient, ApiResponse
from openhousepal.core.errors import InteractionError
from openhousepal.core.notifications import NotificationQueue
from openhousepal.core.schemas import Comment, Property, decode_comment, decode_comments, decode_interaction
from openhousepal.core.view import ViewState, flags_of

logger = logging.getLogger(__name__)

CONNECT_ERROR = "Unable to connect. Your change was not saved, please try again."


class InteractionController:
    """
    Like / dislike / favorite / comment with optimistic updates.

    The local copy changes right away, then the backend decides: on 200 the
    server flags overwrite ours, otherwise the last confirmed flags come back.
    Every request carries a per-property sequence number and only the answer
    to the latest one may touch the view.
    """

    def __init__(self, api: ApiClient, state: ViewState, notifications: NotificationQueue, clock=time.time):
        self.api = api
        self.state = state
        self.notifications = notifications
        self.clock = clock

        self._seq: Dict[Tuple[str, str], int] = {}
        # Last server-confirmed flags while requests are in flight
        self._confirmed: Dict[Tuple[str, str], Dict[str, bool]] = {}
        # Newest request already folded into the confirmed flags
        self._confirmed_seq: Dict[Tuple[str, str], int] = {}

    # === PUBLIC API ===

    async def set_like(self, property_id, liked: bool) -> bool:
        return await self._interact(property_id, "like", liked)

    async def set_dislike(self, property_id, disliked: bool) -> bool:
        return await self._interact(property_id, "dislike", disliked)

    async def set_favorite(self, property_id, favorited: bool) -> bool:
        return await self._interact(property_id, "favorite", favorited)

    async def add_comment(self, property_id, text: str, author: str = None, email: str = None) -> Optional[Comment]:
        text = (text or "").strip()
        if not text:
            raise InteractionError("Comment cannot be empty.")

        collection_id = self._require_collection()
        detail = self.state.detail
        if detail is None or detail.id != str(property_id):
            raise InteractionError("Open the property before commenting.")

        temp = Comment(
            id=self._temp_id(detail),
            author=author or "You",
            content=text,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        detail.comments.append(temp)

        response = await self.api.add_comment(collection_id, detail.id, text, visitor_name=author, visitor_email=email)

        prop = self._current(collection_id, detail.id)
        if prop is None:
            logger.info(f"💤 Comment answer for {detail.id} arrived after the view changed, dropped")
            return None

        if response.ok:
            server_comment = self._decode_comment(response)
            if server_comment is None:
                return await self._confirm_without_body(collection_id, prop, temp)
            prop.comments = [server_comment if c.id == temp.id else c for c in prop.comments]
            return server_comment

        prop.comments = [c for c in prop.comments if c.id != temp.id]
        logger.warning(f"⚠️ Comment on {detail.id} failed ({response.status}): {response.error}")
        self._notify_failure(response, "Could not post your comment.")
        return None

    async def load_comments(self, property_id) -> bool:
        collection_id = self._require_collection()
        prop = self._require_property(property_id)

        response = await self.api.get_comments(collection_id, prop.id)
        target = self._current(collection_id, prop.id)

        if response.status != 200:
            self._notify_failure(response, "Failed to load comments.")
            return False

        if target is not None:
            target.comments = decode_comments(response.data)
        return True

    # === INTERNALS ===

    async def _confirm_without_body(self, collection_id: str, prop: Property, temp: Comment) -> Comment:
        """Saved, but the answer has no comment in it: the server list replaces ours"""
        saved = temp.model_copy(update={"id": temp.id.replace("temp-", "saved-", 1)})
        prop.comments = [saved if c.id == temp.id else c for c in prop.comments]

        response = await self.api.get_comments(collection_id, prop.id)
        target = self._current(collection_id, prop.id)
        if response.status == 200 and target is not None:
            target.comments = decode_comments(response.data)
        else:
            logger.info(f"💤 Could not reload comments of {prop.id} ({response.status}), keeping local copy")
        return saved

    async def _interact(self, property_id, interaction_type: str, value: bool) -> bool:
        collection_id = self._require_collection()
        prop = self._require_property(property_id)
        key = (collection_id, prop.id)

        if key not in self._confirmed:
            self._confirmed[key] = flags_of(prop)

        self._apply(prop, interaction_type, value)
        seq = self._seq.get(key, 0) + 1
        self._seq[key] = seq

        try:
            response = await self.api.interact(collection_id, prop.id, interaction_type, value)
        except asyncio.CancelledError:
            if seq == self._seq.get(key):
                # Nobody will answer: back to what the server agreed with
                confirmed = self._settle(key, seq)
                target = self._current(collection_id, prop.id)
                if target is not None and confirmed is not None:
                    self._set_flags(target, confirmed)
            raise

        server_flags = None
        if response.status == 200:
            server_flags = self._server_flags(response, interaction_type)

        if seq != self._seq.get(key):
            # Older answers still confirm, but only in request order
            if server_flags is not None and key in self._confirmed and seq > self._confirmed_seq.get(key, 0):
                self._confirmed[key].update(server_flags)
                self._confirmed_seq[key] = seq
            logger.info(f"💤 Stale {interaction_type} answer for {prop.id} (seq {seq}), ignored")
            return response.status == 200

        confirmed = self._settle(key, seq)
        target = self._current(collection_id, prop.id)
        if target is None:
            logger.info(f"💤 {interaction_type} answer for {prop.id} arrived after the view changed, dropped")
            return response.status == 200

        if response.status == 200:
            if server_flags is not None:
                self._set_flags(target, server_flags)
            return True

        # Roll back to the last state the server agreed with
        if confirmed is not None:
            self._set_flags(target, confirmed)
        logger.warning(f"⚠️ {interaction_type} on {prop.id} failed ({response.status}): {response.error}")
        self._notify_failure(response, f"Could not save your {interaction_type}.")
        return False

    def _settle(self, key: Tuple[str, str], seq: int) -> Optional[Dict[str, bool]]:
        """The latest request is done: older answers can no longer confirm anything"""
        self._confirmed_seq[key] = seq
        return self._confirmed.pop(key, None)

    @staticmethod
    def _apply(prop: Property, interaction_type: str, value: bool):
        if interaction_type == "like":
            prop.liked = value
            if value:
                prop.disliked = False
        elif interaction_type == "dislike":
            prop.disliked = value
            if value:
                prop.liked = False
        elif interaction_type == "favorite":
            prop.favorited = value
        else:
            raise ValueError(f"Unknown interaction: {interaction_type}")

    @staticmethod
    def _set_flags(prop: Property, flags: Dict[str, bool]):
        prop.liked = flags.get("liked", prop.liked)
        prop.disliked = flags.get("disliked", prop.disliked)
        prop.favorited = flags.get("favorited", prop.favorited)
        if prop.liked and prop.disliked:
            prop.disliked = False

    @staticmethod
    def _server_flags(response: ApiResponse, interaction_type: str) -> Optional[Dict[str, bool]]:
        data = response.data
        if not isinstance(data, dict) or not isinstance(data.get("interaction"), dict):
            logger.warning(f"⚠️ Interaction answer without flags: {data!r}")
            return None

        raw = data["interaction"]
        try:
            interaction = decode_interaction(data)
        except SchemaError as e:
            logger.warning(f"⚠️ Unreadable interaction answer: {e.error_count()} error(s)")
            return None

        if interaction_type == "favorite":
            return {"favorited": interaction.favorited}

        flags = {"liked": interaction.liked, "disliked": interaction.disliked}
        if "favorited" in raw:
            flags["favorited"] = interaction.favorited
        return flags

    @staticmethod
    def _decode_comment(response: ApiResponse) -> Optional[Comment]:
        try:
            return decode_comment(response.data)
        except SchemaError as e:
            logger.warning(f"⚠️ Unreadable comment answer: {e.error_count()} error(s)")
            return None

    def _temp_id(self, prop: Property) -> str:
        stamp = int(self.clock() * 1000)
        existing = {c.id for c in prop.comments}
        while f"temp-{stamp}" in existing:
            stamp += 1
        return f"temp-{stamp}"

    def _require_collection(self) -> str:
        if self.state.selected is None:
            raise InteractionError("No showcase selected.")
        return self.state.selected.id

    def _require_property(self, property_id) -> Property:
        prop = self.state.find_property(property_id)
        if prop is None:
            raise InteractionError(f"Property {property_id} is not in this showcase.")
        return prop

    def _current(self, collection_id: str, property_id: str) -> Optional[Property]:
        if self.state.selected is None or self.state.selected.id != collection_id:
            return None
        return self.state.find_property(property_id)

    def _notify_failure(self, response: ApiResponse, fallback: str):
        if response.status == 401:
            # The auth hook already asks the user to log in again
            return
        if response.is_network_error:
            self.notifications.error(CONNECT_ERROR)
        else:
            self.notifications.error(response.error if response.error and response.error != "Request failed" else fallback)
