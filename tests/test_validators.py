from datetime import date

import pytest

from openhousepal.core.errors import ValidationError
from openhousepal.core.validators import (
    LOCATION_REQUIRED, MAX_CITIES, PROPERTY_TYPE_REQUIRED, RADIUS_REQUIRED, AddressSearch, AreaSearch, ShowcaseForm,
    TOUR_SLOT_REQUIRED, parse_number, parse_range, parse_tour_request, validate_form, validate_location,
    validate_property_types,
)


def test_address_without_radius_is_invalid():
    form = ShowcaseForm(address="123 Main St", diameter=None)

    result = validate_location(form)
    assert result.is_valid is False
    assert result.error == RADIUS_REQUIRED


def test_city_only_is_valid():
    form = ShowcaseForm(address="", cities=["Philadelphia, PA"])

    assert validate_location(form).is_valid is True


def test_empty_location_is_invalid():
    form = ShowcaseForm(diameter=None)

    assert validate_location(form) == (False, LOCATION_REQUIRED)


def test_no_property_type_selected():
    form = ShowcaseForm()

    assert validate_property_types(form) is False

    form.toggle_property_type("is_condo")
    assert validate_property_types(form) is True


def test_adding_city_clears_address_mode():
    form = ShowcaseForm(address="123 Main St", diameter=3)

    form.add_city("Philadelphia, PA")

    assert form.address == ""
    assert form.diameter is None
    assert form.location_mode() == AreaSearch(cities=("Philadelphia, PA",))


def test_setting_address_clears_area_mode():
    form = ShowcaseForm(cities=["Philadelphia, PA"], townships=["Lower Merion"])

    form.set_address("123 Main St", 5)

    assert form.cities == []
    assert form.townships == []
    assert form.location_mode() == AddressSearch(address="123 Main St", radius=5.0)


def test_city_list_is_deduplicated_and_capped():
    form = ShowcaseForm()
    for i in range(MAX_CITIES):
        assert form.add_city(f"City {i}") is True

    assert form.add_city("city 0") is False
    with pytest.raises(ValidationError):
        form.add_city("One too many")
    assert len(form.cities) == MAX_CITIES


def test_radius_must_be_positive():
    form = ShowcaseForm(address="123 Main St")

    with pytest.raises(ValidationError) as e:
        form.set_radius(0)
    assert e.value.field == "diameter"


def test_area_payload_sends_no_address():
    form = ShowcaseForm(is_condo=True)
    form.add_township("Cheltenham")

    payload = form.preferences_payload()

    assert payload["address"] is None
    assert payload["diameter"] is None
    assert payload["townships"] == ["Cheltenham"]
    assert payload["is_condo"] is True
    assert payload["is_lot_land"] is False


def test_validate_form_order_and_messages():
    form = ShowcaseForm(address="1 Main St", diameter=2)
    with pytest.raises(ValidationError) as e:
        validate_form(form)
    assert e.value.message == PROPERTY_TYPE_REQUIRED

    form.is_single_family = True
    form.min_price, form.max_price = 600000, 400000
    with pytest.raises(ValidationError) as e:
        validate_form(form)
    assert e.value.field == "price"

    with pytest.raises(ValidationError) as e:
        validate_form(ShowcaseForm(is_condo=True, cities=["A"]), require_name=True)
    assert e.value.field == "showcase_name"


def test_parse_number():
    assert parse_number("$450k") == 450000
    assert parse_number("1,250,000", int) == 1250000
    assert parse_number("1.5m", int) == 1500000
    assert parse_number("") is None
    with pytest.raises(ValidationError):
        parse_number("lots")


def test_parse_range():
    assert parse_range("3-5", int) == (3, 5)
    assert parse_range("3+", int) == (3, None)
    assert parse_range("-500k", int) == (None, 500000)
    assert parse_range("-") == (None, None)
    assert parse_range("2") == (2.0, 2.0)


def test_remove_area_entry_is_case_insensitive():
    form = ShowcaseForm()
    form.add_city("Philadelphia, PA")
    form.add_city("Camden, NJ")

    form.remove_city(" philadelphia, pa ")

    assert form.cities == ["Camden, NJ"]


TODAY = date(2030, 6, 1)


def test_tour_request_slots_in_order_and_note():
    request = parse_tour_request(5, "2030-06-14 10:30\n\nAfter work please\n2030-06-15 4pm\n2030-06-16 7:00 PM", TODAY)

    assert request.property_id == "5"
    assert request.slots == [("2030-06-14", "10:30"), ("2030-06-15", "16:00"), ("2030-06-16", "19:00")]
    assert request.message == "After work please"


def test_tour_request_needs_a_first_choice():
    with pytest.raises(ValidationError) as e:
        parse_tour_request(5, "Any weekend works", TODAY)
    assert e.value.message == TOUR_SLOT_REQUIRED


@pytest.mark.parametrize("line, field", [
    ("2030-05-31 10:00", "preferred_date"),
    ("2030-06-14 05:30", "preferred_time"),
    ("2030-06-14 20:30", "preferred_time"),
    ("2030-06-14 10:15", "preferred_time"),
])
def test_tour_slot_limits(line, field):
    with pytest.raises(ValidationError) as e:
        parse_tour_request(5, line, TODAY)
    assert e.value.field == field


def test_tour_request_at_most_three_times():
    text = "\n".join(f"2030-06-1{i} 10:00" for i in range(4))

    with pytest.raises(ValidationError):
        parse_tour_request(5, text, TODAY)
