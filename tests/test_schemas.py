from openhousepal.core.schemas import (
    CollectionPreferences, ShareState, decode_collections, decode_comment, decode_interaction, decode_properties,
    format_price,
)
from openhousepal.core.validators import AddressSearch, AreaSearch


def test_camel_case_property_is_normalized():
    [prop] = decode_properties({"properties": [{
        "id": 7, "address": "7 Pine Rd", "squareFeet": 1850, "zipCode": 19103, "propertyType": "Condo",
        "bedrooms": 3, "liked": None,
    }]})

    assert prop.id == "7"
    assert prop.square_feet == 1850
    assert prop.zip_code == "19103"
    assert prop.property_type == "Condo"
    assert prop.beds == 3
    assert prop.liked is False


def test_like_wins_over_dislike():
    [prop] = decode_properties([{"id": 1, "liked": True, "disliked": True}])

    assert (prop.liked, prop.disliked) == (True, False)


def test_invalid_items_are_skipped():
    properties = decode_properties([{"id": 1}, {"address": "no id"}, {"id": 2, "price": "not a number"}])

    assert [p.id for p in properties] == ["1"]


def test_collection_without_customer_uses_visitor_fields():
    [collection] = decode_collections([{
        "id": 3, "visitor_name": "Jane Van Doe", "visitor_email": "jane@example.com",
        "status": "inactive", "shareToken": "tok", "isPublic": True,
    }])

    assert collection.customer.first_name == "Jane"
    assert collection.customer.last_name == "Van Doe"
    assert collection.customer.is_anonymous is False
    assert collection.status == "INACTIVE"
    assert collection.is_active is False
    assert collection.share_token == "tok"
    assert collection.is_public is True


def test_collection_name_falls_back_to_original_property():
    collections = decode_collections({"collections": [
        {"id": 1, "original_property": {"address": "1 Main St"}},
        {"id": 2, "name": None, "visitor_name": "Cher"},
    ]})

    assert [c.name for c in collections] == ["1 Main St", "Showcase"]
    assert collections[1].customer.full_name == "Cher Visitor"
    assert collections[0].customer.full_name == "Registered User"


def test_legacy_single_city_and_township():
    prefs = CollectionPreferences.model_validate({"city": "Philadelphia", "township": "Abington", "is_condo": None})

    assert prefs.cities == ["Philadelphia"]
    assert prefs.townships == ["Abington"]
    assert prefs.is_condo is False
    assert prefs.location == AreaSearch(cities=("Philadelphia",), townships=("Abington",))


def test_address_preferences_get_default_radius():
    prefs = CollectionPreferences.model_validate({"address": "1 Main St", "min_price": 300000, "max_price": 1250000})

    assert prefs.location == AddressSearch(address="1 Main St", radius=2.0)
    assert prefs.price_range == "$300K - $1.25M"

    form = prefs.to_form("Spring search")
    assert form.showcase_name == "Spring search"
    assert form.diameter == 2.0


def test_comment_variants():
    nested = decode_comment({"comment": {"id": 9, "content": "Great light", "visitor_name": "Sam"}})
    legacy = decode_comment({"id": "10", "comment": "Small kitchen", "createdAt": "2024-05-01T10:00:00Z"})

    assert (nested.id, nested.author) == ("9", "Sam")
    assert (legacy.content, legacy.created_at, legacy.author) == ("Small kitchen", "2024-05-01T10:00:00Z", "Anonymous")


def test_interaction_unwraps_envelope():
    interaction = decode_interaction({"interaction": {"liked": True}})

    assert (interaction.liked, interaction.disliked, interaction.favorited) == (True, False, False)


def test_share_state_defaults():
    share = ShareState.model_validate({"share_token": "abc"})

    assert share.is_public is False
    assert share.share_url is None


def test_format_price():
    assert format_price(None) == "0"
    assert format_price(950) == "950"
    assert format_price(499999) == "499K"
    assert format_price(1250000) == "1.25M"
