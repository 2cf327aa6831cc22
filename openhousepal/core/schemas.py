"""
Backend payload decoding.

The backend has returned several shapes over time (camelCase vs snake_case
properties, single `city` vs `cities`, `comment` vs `content`...). Every raw
payload goes through the models below, so the rest of the code only ever
sees one canonical type.
"""
import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from openhousepal.core.validators import (
    DEFAULT_DIAMETER, PROPERTY_TYPES, AddressSearch, AreaSearch, LocationMode, ShowcaseForm,
)

logger = logging.getLogger(__name__)

# camelCase -> snake_case (old property payloads)
PROPERTY_ALIASES = {
    "squareFeet": "square_feet",
    "zipCode": "zip_code",
    "propertyType": "property_type",
    "imageUrl": "image_url",
    "imageSrc": "image_url",
    "mlsId": "mls_id",
    "bedrooms": "beds",
    "bathrooms": "baths",
    "living_area": "square_feet",
}


def format_price(price) -> str:
    """500000 -> 500K, 1250000 -> 1.25M"""
    price = price or 0
    if price >= 1_000_000:
        return f"{price / 1_000_000:.2f}M"
    elif price >= 1000:
        return f"{math.floor(price / 1000)}K"
    return str(int(price))


# === COMMENTS ===

class Comment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    author: str = "Anonymous"
    content: str = ""
    created_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def legacy_fields(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("content") and data.get("comment"):
            data["content"] = data["comment"]
        if not data.get("created_at") and data.get("createdAt"):
            data["created_at"] = data["createdAt"]
        if not data.get("author"):
            data["author"] = data.get("visitor_name") or data.get("user_name") or "Anonymous"
        return data

    @field_validator("id", mode="before")
    @classmethod
    def str_id(cls, value):
        return str(value) if value is not None else value


# === PROPERTIES ===

class Interaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    liked: bool = False
    disliked: bool = False
    favorited: bool = False

    @model_validator(mode="before")
    @classmethod
    def unwrap(cls, data: Any):
        # {"interaction": {...}} or the bare object
        if isinstance(data, dict) and isinstance(data.get("interaction"), dict):
            return data["interaction"]
        return data


class Property(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    address: str = ""
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    mls_id: Optional[str] = None

    price: Optional[float] = None
    beds: Optional[float] = None
    baths: Optional[float] = None
    square_feet: Optional[float] = None
    property_type: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None

    liked: bool = False
    disliked: bool = False
    favorited: bool = False

    comments: List[Comment] = Field(default_factory=list)
    details: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for old, new in PROPERTY_ALIASES.items():
            if old in data and data.get(new) is None:
                data[new] = data[old]
        for flag in ("liked", "disliked", "favorited"):
            if data.get(flag) is None:
                data[flag] = False
        if data.get("comments") is None:
            data["comments"] = []
        return data

    @field_validator("id", "zip_code", "mls_id", mode="before")
    @classmethod
    def str_ids(cls, value):
        return str(value) if value is not None else value

    @model_validator(mode="after")
    def like_wins(self):
        if self.liked and self.disliked:
            logger.warning(f"⚠️ Property {self.id} is both liked and disliked, keeping like")
            self.disliked = False
        return self

    @property
    def full_address(self) -> str:
        parts = [self.address]
        city_line = ", ".join(p for p in [self.city, self.state] if p)
        if city_line:
            parts.append(city_line)
        return ", ".join(p for p in parts if p)


# === COLLECTIONS ===

class CollectionPreferences(BaseModel):
    model_config = ConfigDict(extra="ignore")

    min_beds: Optional[int] = None
    max_beds: Optional[int] = None
    min_baths: Optional[float] = None
    max_baths: Optional[float] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None

    address: Optional[str] = None
    diameter: Optional[float] = None
    cities: List[str] = Field(default_factory=list)
    townships: List[str] = Field(default_factory=list)

    is_single_family: bool = False
    is_condo: bool = False
    is_town_house: bool = False
    is_apartment: bool = False
    is_multi_family: bool = False
    is_lot_land: bool = False

    special_features: str = ""
    timeframe: Optional[str] = None
    visiting_reason: Optional[str] = None
    has_agent: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def legacy_location(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)

        # Old backends sent a single city / township string
        cities = list(data.get("cities") or [])
        if data.get("city") and data["city"] not in cities:
            cities.append(data["city"])
        townships = list(data.get("townships") or [])
        if data.get("township") and data["township"] not in townships:
            townships.append(data["township"])
        data["cities"] = cities
        data["townships"] = townships

        if data.get("address") and not data.get("diameter"):
            data["diameter"] = DEFAULT_DIAMETER

        for attr, _ in PROPERTY_TYPES:
            if data.get(attr) is None:
                data[attr] = False
        if data.get("special_features") is None:
            data["special_features"] = ""
        return data

    @property
    def location(self) -> Optional[LocationMode]:
        if self.address:
            return AddressSearch(address=self.address, radius=self.diameter or DEFAULT_DIAMETER)
        if self.cities or self.townships:
            return AreaSearch(cities=tuple(self.cities), townships=tuple(self.townships))
        return None

    @property
    def price_range(self) -> str:
        if self.min_price and self.max_price:
            return f"${format_price(self.min_price)} - ${format_price(self.max_price)}"
        if self.min_price:
            return f"${format_price(self.min_price)}+"
        if self.max_price:
            return f"Under ${format_price(self.max_price)}"
        return "Not specified"

    def to_form(self, name: str = "") -> ShowcaseForm:
        form = ShowcaseForm(
            showcase_name=name,
            min_beds=self.min_beds,
            max_beds=self.max_beds,
            min_baths=self.min_baths,
            max_baths=self.max_baths,
            min_price=self.min_price,
            max_price=self.max_price,
            address=self.address or "",
            diameter=self.diameter if self.address else None,
            cities=list(self.cities),
            townships=list(self.townships),
            additional_comments=self.special_features,
        )
        for attr, _ in PROPERTY_TYPES:
            setattr(form, attr, getattr(self, attr))
        if self.timeframe:
            form.timeframe = self.timeframe
        if self.visiting_reason:
            form.visiting_reason = self.visiting_reason
        if self.has_agent:
            form.has_agent = self.has_agent
        return form


class Customer(BaseModel):
    first_name: str = "Registered"
    last_name: str = "User"
    email: Optional[str] = None
    phone: Optional[str] = None
    is_anonymous: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Collection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = "Showcase"
    customer: Customer = Field(default_factory=Customer)
    original_property: Optional[Dict[str, Any]] = None
    status: str = "ACTIVE"
    preferences: CollectionPreferences = Field(default_factory=CollectionPreferences)
    property_count: int = 0
    share_token: Optional[str] = None
    is_public: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def flatten(cls, data: Any):
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "customer" not in data:
            visitor_name = (data.get("visitor_name") or "").strip()
            if visitor_name or data.get("visitor_email"):
                parts = visitor_name.split(" ") if visitor_name else []
                data["customer"] = {
                    "first_name": parts[0] if parts else "Anonymous",
                    "last_name": " ".join(parts[1:]) if len(parts) > 1 else "Visitor",
                    "email": data.get("visitor_email"),
                    "phone": data.get("visitor_phone"),
                    "is_anonymous": False,
                }

        for key in ("preferences", "status", "property_count", "is_public"):
            if data.get(key) is None:
                data.pop(key, None)

        if not data.get("name"):
            original = data.get("original_property") or {}
            data["name"] = original.get("address") or "Showcase"

        if "shareToken" in data and not data.get("share_token"):
            data["share_token"] = data["shareToken"]
        if "isPublic" in data and data.get("is_public") is None:
            data["is_public"] = data["isPublic"]
        return data

    @field_validator("id", mode="before")
    @classmethod
    def str_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        value = (value or "ACTIVE").upper()
        return value if value in ("ACTIVE", "INACTIVE") else "ACTIVE"

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"


class ShareState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    share_token: Optional[str] = None
    is_public: bool = False
    share_url: Optional[str] = None


# === OPEN HOUSES ===

class OpenHouse(BaseModel):
    """A listing the agent hosts an open house for (sign-in form + QR code)"""
    model_config = ConfigDict(extra="ignore")

    id: str
    property_id: Optional[str] = None
    address: str = ""
    created_at: Optional[str] = None
    form_url: Optional[str] = None
    qr_code_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    price: Optional[float] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    living_area: Optional[float] = None

    @field_validator("id", "property_id", mode="before")
    @classmethod
    def str_ids(cls, value):
        return str(value) if value is not None else value


# === DECODERS ===

def _decode_list(model, items, label: str) -> list:
    result = []
    for item in items or []:
        try:
            result.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(f"⚠️ Skipping {label}: {e.error_count()} invalid field(s)")
            continue
    return result


def decode_properties(data) -> List[Property]:
    if isinstance(data, dict):
        data = data.get("properties") or data.get("matchedProperties") or []
    return _decode_list(Property, data, "property")


def decode_comments(data) -> List[Comment]:
    if isinstance(data, dict):
        data = data.get("comments") or []
    return _decode_list(Comment, data, "comment")


def decode_comment(data) -> Comment:
    if isinstance(data, dict) and isinstance(data.get("comment"), dict):
        data = data["comment"]
    return Comment.model_validate(data)


def decode_collections(data) -> List[Collection]:
    if isinstance(data, dict):
        data = data.get("collections") or []
    return _decode_list(Collection, data, "collection")


def decode_interaction(data) -> Interaction:
    return Interaction.model_validate(data)


def decode_open_houses(data) -> List[OpenHouse]:
    if isinstance(data, dict):
        data = data.get("open_houses") or data.get("openHouses") or []
    return _decode_list(OpenHouse, data, "open house")
