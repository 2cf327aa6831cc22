from datetime import date, datetime
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple, Union

from openhousepal.core.errors import ValidationError

MAX_CITIES = 10
MAX_TOWNSHIPS = 10
DEFAULT_DIAMETER = 2.0

RADIUS_REQUIRED = "Radius is required when searching by address."
LOCATION_REQUIRED = "Please specify an address with a radius, or at least one city or township."
PROPERTY_TYPE_REQUIRED = "Please select at least one property type."

# (form / backend field, label)
PROPERTY_TYPES = [
    ("is_single_family", "Single Family"),
    ("is_condo", "Condo"),
    ("is_town_house", "Townhouse"),
    ("is_apartment", "Apartment"),
    ("is_multi_family", "Multi-Family"),
    ("is_lot_land", "Lot / Land"),
]


# === LOCATION MODES ===

@dataclass(frozen=True)
class AddressSearch:
    address: str
    radius: float


@dataclass(frozen=True)
class AreaSearch:
    cities: Tuple[str, ...] = ()
    townships: Tuple[str, ...] = ()


LocationMode = Union[AddressSearch, AreaSearch]


class ValidationResult(NamedTuple):
    is_valid: bool
    error: Optional[str] = None


def parse_number(value, cast=float):
    """'450,000' / '$450k' / '' -> number or None"""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return cast(value)

    s = str(value).strip().lower().replace("$", "").replace(",", "").replace(" ", "")
    if s in ["", "-", "any"]:
        return None

    multiplier = 1
    if s.endswith("k"):
        multiplier, s = 1_000, s[:-1]
    elif s.endswith("m"):
        multiplier, s = 1_000_000, s[:-1]

    try:
        return cast(float(s) * multiplier)
    except ValueError:
        raise ValidationError(f"'{value}' is not a number.")


# === SHOWCASE FORM ===

@dataclass
class ShowcaseForm:
    """Create / edit form for a showcase and its search preferences"""
    showcase_name: str = ""

    full_name: str = ""
    email: str = ""
    phone: str = ""
    visiting_reason: str = "BUYING_SOON"
    timeframe: str = "3_6_MONTHS"
    has_agent: str = "NO"
    additional_comments: str = ""

    min_beds: Optional[int] = None
    max_beds: Optional[int] = None
    min_baths: Optional[float] = None
    max_baths: Optional[float] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None

    address: str = ""
    diameter: Optional[float] = DEFAULT_DIAMETER
    cities: List[str] = field(default_factory=list)
    townships: List[str] = field(default_factory=list)

    is_single_family: bool = False
    is_condo: bool = False
    is_town_house: bool = False
    is_apartment: bool = False
    is_multi_family: bool = False
    is_lot_land: bool = False

    # Location fields are mutually exclusive: every change clears the other mode

    def set_address(self, address: str, diameter: Optional[float] = None):
        self.address = (address or "").strip()
        if diameter is not None:
            self.diameter = diameter
        if self.address:
            self.cities = []
            self.townships = []

    def set_radius(self, diameter: Optional[float]):
        if diameter is not None and diameter <= 0:
            raise ValidationError("Radius must be greater than 0.", field="diameter")
        self.diameter = diameter

    def add_city(self, city: str) -> bool:
        return self._add_area(self.cities, city, MAX_CITIES, "cities")

    def add_township(self, township: str) -> bool:
        return self._add_area(self.townships, township, MAX_TOWNSHIPS, "townships")

    def remove_city(self, city: str):
        self.cities = [c for c in self.cities if c.lower() != city.strip().lower()]

    def remove_township(self, township: str):
        self.townships = [t for t in self.townships if t.lower() != township.strip().lower()]

    def _add_area(self, target: List[str], value: str, limit: int, name: str) -> bool:
        value = (value or "").strip()
        if not value:
            return False
        if any(v.lower() == value.lower() for v in target):
            return False
        if len(target) >= limit:
            raise ValidationError(f"You can select at most {limit} {name}.", field=name)

        target.append(value)
        self.address = ""
        self.diameter = None
        return True

    def toggle_property_type(self, attr: str) -> bool:
        if attr not in [p[0] for p in PROPERTY_TYPES]:
            raise ValueError(f"Unknown property type: {attr}")
        setattr(self, attr, not getattr(self, attr))
        return getattr(self, attr)

    def location_mode(self) -> LocationMode:
        result = validate_location(self)
        if not result.is_valid:
            raise ValidationError(result.error, field="location")
        if self.address:
            return AddressSearch(address=self.address, radius=float(self.diameter))
        return AreaSearch(cities=tuple(self.cities), townships=tuple(self.townships))

    def preferences_payload(self) -> dict:
        """Body for PUT /collection-preferences/collection/{id}"""
        mode = self.location_mode()
        payload = {
            "min_beds": self.min_beds,
            "max_beds": self.max_beds,
            "min_baths": self.min_baths,
            "max_baths": self.max_baths,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "special_features": self.additional_comments or "",
            "timeframe": self.timeframe,
            "visiting_reason": self.visiting_reason,
            "has_agent": self.has_agent,
        }

        if isinstance(mode, AddressSearch):
            payload.update({"address": mode.address, "diameter": mode.radius, "cities": [], "townships": []})
        else:
            payload.update({"address": None, "diameter": None,
                            "cities": list(mode.cities), "townships": list(mode.townships)})

        for attr, _ in PROPERTY_TYPES:
            payload[attr] = bool(getattr(self, attr))

        return payload

    def create_payload(self) -> dict:
        """Body for POST /collections/create-from-address"""
        payload = self.preferences_payload()
        payload.update({
            "name": self.showcase_name,
            "visitor_name": self.full_name,
            "visitor_email": self.email,
            "visitor_phone": self.phone,
            "additional_comments": self.additional_comments or "",
        })
        return payload


# === VALIDATION ===

def validate_location(form: ShowcaseForm) -> ValidationResult:
    has_address = bool((form.address or "").strip())

    if has_address and not form.diameter:
        return ValidationResult(False, RADIUS_REQUIRED)

    if not has_address and not form.cities and not form.townships:
        return ValidationResult(False, LOCATION_REQUIRED)

    return ValidationResult(True, None)


def validate_property_types(form: ShowcaseForm) -> bool:
    return any(getattr(form, attr) for attr, _ in PROPERTY_TYPES)


def validate_form(form: ShowcaseForm, require_name: bool = False):
    """Raises ValidationError with the first inline message"""
    if require_name and not form.showcase_name.strip():
        raise ValidationError("Please enter a showcase name.", field="showcase_name")

    location = validate_location(form)
    if not location.is_valid:
        raise ValidationError(location.error, field="location")

    if not validate_property_types(form):
        raise ValidationError(PROPERTY_TYPE_REQUIRED, field="property_types")

    for low, high, label in [
        (form.min_beds, form.max_beds, "beds"),
        (form.min_baths, form.max_baths, "baths"),
        (form.min_price, form.max_price, "price"),
    ]:
        if low is not None and high is not None and low > high:
            raise ValidationError(f"Minimum {label} cannot be greater than maximum {label}.", field=label)


def parse_range(text: str, cast=float) -> Tuple[Optional[float], Optional[float]]:
    """'3-5' -> (3, 5), '3+' -> (3, None), '-500k' -> (None, 500000), '-' -> (None, None)"""
    s = (text or "").strip().lower().replace(" ", "")
    if s in ["", "-", "any"]:
        return None, None

    if s.endswith("+"):
        return parse_number(s[:-1], cast), None

    if s.startswith("-"):
        return None, parse_number(s[1:], cast)

    if "-" in s:
        low, high = s.split("-", 1)
        return parse_number(low, cast), parse_number(high, cast)

    value = parse_number(s, cast)
    return value, value


# === TOUR REQUEST ===

MAX_TOUR_SLOTS = 3
TOUR_FIRST_HOUR = 6
TOUR_LAST_HOUR = 20
TOUR_SLOT_REQUIRED = "Please select at least your first choice date and time."

TOUR_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%d %I:%M%p", "%Y-%m-%d %I%p"]


@dataclass
class TourRequest:
    """Up to three preferred (date, time) slots and an optional note for the agent"""
    property_id: str
    slots: List[Tuple[str, str]] = field(default_factory=list)
    message: str = ""

    def payload(self) -> dict:
        payload = {"message": self.message or None}
        for i in range(MAX_TOUR_SLOTS):
            suffix = "" if i == 0 else f"_{i + 1}"
            day, time_ = self.slots[i] if i < len(self.slots) else (None, None)
            payload[f"preferred_date{suffix}"] = day
            payload[f"preferred_time{suffix}"] = time_
        return payload


def parse_tour_slot(line: str, today: date) -> Optional[Tuple[str, str]]:
    """'2026-11-02 14:30' / '2026-11-02 2:30pm' -> ('2026-11-02', '14:30'); None if the line is no slot"""
    s = " ".join((line or "").split())
    # "2:30 pm" -> "2:30pm"
    s = s.replace(" am", "am").replace(" pm", "pm").replace(" AM", "AM").replace(" PM", "PM")

    moment = None
    for fmt in TOUR_FORMATS:
        try:
            moment = datetime.strptime(s, fmt)
            break
        except ValueError:
            continue
    if moment is None:
        return None

    if moment.date() < today:
        raise ValidationError(f"{moment:%Y-%m-%d} is in the past.", field="preferred_date")
    if moment.minute not in (0, 30):
        raise ValidationError("Tours start on the hour or half hour.", field="preferred_time")
    minutes = moment.hour * 60 + moment.minute
    if not TOUR_FIRST_HOUR * 60 <= minutes <= TOUR_LAST_HOUR * 60:
        raise ValidationError("Tours can be requested between 6:00 AM and 8:00 PM.", field="preferred_time")

    return f"{moment:%Y-%m-%d}", f"{moment:%H:%M}"


def parse_tour_request(property_id, text: str, today: date = None) -> TourRequest:
    """
    One slot per line, in order of preference; any other line goes to the
    message. Raises ValidationError when no slot was given.
    """
    today = today or date.today()
    request = TourRequest(property_id=str(property_id))
    notes = []

    for line in (text or "").splitlines():
        if not line.strip():
            continue
        slot = parse_tour_slot(line, today)
        if slot is None:
            notes.append(line.strip())
        elif len(request.slots) >= MAX_TOUR_SLOTS:
            raise ValidationError(f"Please give at most {MAX_TOUR_SLOTS} preferred times.", field="preferred_date")
        elif slot not in request.slots:
            request.slots.append(slot)

    if not request.slots:
        raise ValidationError(TOUR_SLOT_REQUIRED, field="preferred_date")

    request.message = "\n".join(notes)
    return request
