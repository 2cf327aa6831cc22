import asyncio

import pytest

from openhousepal.core.errors import InteractionError, ValidationError
from openhousepal.core.service import CONNECT_ERROR, ShowcaseService
from openhousepal.core.validators import LOCATION_REQUIRED, TOUR_SLOT_REQUIRED, ShowcaseForm, TourRequest
from openhousepal.core.view import ViewState
from tests.helpers import fail, ok

COLLECTIONS = [
    {"id": 1, "name": "Rittenhouse condos", "status": "ACTIVE", "share_token": "abc", "is_public": False},
    {"id": 2, "name": "Main Line", "status": "INACTIVE"},
]


@pytest.fixture
def service(api, notifications):
    return ShowcaseService(api, ViewState(), notifications)


def loaded(service, api):
    api.queue("get_collections", ok(COLLECTIONS))
    asyncio.run(service.load_collections())
    return service


def test_load_and_select(api, service):
    loaded(service, api)
    api.queue("get_collection_properties", ok({"properties": [{"id": 5, "price": 1}, {"id": 6, "price": 2}]}))

    properties = asyncio.run(service.select_collection(1))

    assert [c.id for c in service.state.collections] == ["1", "2"]
    assert service.state.selected.id == "1"
    assert [p.id for p in properties] == ["5", "6"]
    assert api.called("get_collection_properties")[0][1] == ("1",)


def test_properties_for_previous_selection_are_dropped(api, service):
    loaded(service, api)

    async def scenario():
        answer = asyncio.get_running_loop().create_future()
        api.queue("get_collection_properties", answer)

        task = asyncio.create_task(service.select_collection(1))
        await asyncio.sleep(0)
        service.state.select(service.state.find_collection(2))

        answer.set_result(ok([{"id": 5}]))
        return await task

    assert asyncio.run(scenario()) is None
    assert service.state.properties is None


def test_load_failure_keeps_old_list(api, service, notifications):
    loaded(service, api)
    api.queue("get_collections", fail(0))

    asyncio.run(service.load_collections())

    assert len(service.state.collections) == 2
    assert notifications.current.message == CONNECT_ERROR


def test_toggle_status(api, service, notifications):
    loaded(service, api)

    updated = asyncio.run(service.toggle_status(1))

    assert updated.status == "INACTIVE"
    assert service.state.find_collection(1).is_active is False
    assert api.called("update_collection_status")[0][1] == ("1", "INACTIVE")
    assert notifications.current.type == "success"


def test_share_uses_server_answer(api, service):
    loaded(service, api)
    api.queue("update_share", ok({"share_token": "xyz", "is_public": True}))

    share = asyncio.run(service.regenerate_share_link(1))

    collection = service.state.find_collection(1)
    assert collection.is_public is True
    assert collection.share_token == "xyz"
    assert share.share_url.endswith("/showcase/xyz")
    assert api.called("update_share")[0][1] == ("1", True, True)
    assert service.state.is_busy("share:1") is False


def test_share_failure_changes_nothing(api, service, notifications):
    loaded(service, api)
    api.queue("update_share", fail(403, "Only the owner can share this showcase"))

    assert asyncio.run(service.generate_share_link(1)) is None

    assert service.state.find_collection(1).is_public is False
    assert notifications.current.message == "Only the owner can share this showcase"


def test_invalid_preferences_never_reach_the_network(api, service):
    loaded(service, api)
    form = ShowcaseForm(diameter=None, is_condo=True)

    with pytest.raises(ValidationError) as e:
        asyncio.run(service.save_preferences(1, form))

    assert e.value.message == LOCATION_REQUIRED
    assert api.called("update_preferences") == []


def test_save_preferences_reloads(api, service, notifications):
    loaded(service, api)
    form = ShowcaseForm(cities=["Philadelphia, PA"], is_condo=True)

    assert asyncio.run(service.save_preferences(1, form)) is True

    payload = api.called("update_preferences")[0][1][1]
    assert payload["cities"] == ["Philadelphia, PA"]
    assert api.called("get_collections")
    assert notifications.current.message == "Preferences saved."


def test_friendly_error_for_empty_match(api, service, notifications):
    form = ShowcaseForm(showcase_name="Spring", address="1 Main St", diameter=2, is_condo=True)
    api.queue("create_from_address", fail(400, "No properties match the given criteria"))

    assert asyncio.run(service.create_showcase(form)) is False
    assert notifications.current.message.startswith("No properties match these preferences yet.")


def test_create_accepts_201(api, service):
    form = ShowcaseForm(showcase_name="Spring", address="1 Main St", diameter=2, is_condo=True)
    api.queue("create_from_address", ok({"id": 3}, status=201))
    api.queue("get_collections", ok(COLLECTIONS + [{"id": 3, "name": "Spring"}]))

    assert asyncio.run(service.create_showcase(form)) is True
    assert service.state.find_collection(3).name == "Spring"


def test_delete_is_not_submitted_twice(api, service):
    loaded(service, api)
    service.state.start("deleting")

    assert asyncio.run(service.delete_collection(1)) is False
    assert api.called("delete_collection") == []


def test_delete_clears_selection(api, service):
    loaded(service, api)
    service.state.select(service.state.find_collection(1))

    assert asyncio.run(service.delete_collection(1)) is True

    assert service.state.selected is None
    assert [c.id for c in service.state.collections] == ["2"]
    assert service.state.is_busy("deleting") is False


def test_open_property_loads_details_and_comments(api, service):
    loaded(service, api)
    api.queue("get_collection_properties", ok([{"id": 5}]))
    asyncio.run(service.select_collection(1))
    api.queue("get_property_details", ok({"success": True, "details": {"year_built": 1920}}))
    api.queue("get_comments", ok([{"id": 1, "content": "Nice"}]))

    prop = asyncio.run(service.open_property(5))

    assert service.state.detail is prop
    assert prop.details == {"year_built": 1920}
    assert [c.content for c in prop.comments] == ["Nice"]


def test_unknown_collection_rejected(api, service):
    with pytest.raises(InteractionError):
        asyncio.run(service.toggle_status(42))


def test_shared_showcase(api, service, notifications):
    api.queue("get_shared_collection", fail(404), ok({
        "id": 8, "name": "For the Smiths", "is_public": True,
        "matchedProperties": [{"id": 1, "price": 2}, {"id": 2, "price": 1}],
    }))

    assert asyncio.run(service.load_shared("bad")) is None
    assert notifications.current.message == "Showcase not found or not available for sharing."

    collection, properties = asyncio.run(service.load_shared("good"))
    assert collection.id == "8"
    assert [p.id for p in service.state.view()] == ["2", "1"]


# === TOURS ===

def opened(service, api):
    loaded(service, api)
    api.queue("get_collection_properties", ok([{"id": 5, "address": "5 Oak St"}]))
    asyncio.run(service.select_collection(1))
    return service


def test_schedule_tour_sends_all_preferred_times(api, service, notifications):
    opened(service, api)
    request = TourRequest("5", slots=[("2030-06-14", "10:30"), ("2030-06-15", "16:00")], message="After work please")

    assert asyncio.run(service.schedule_tour(request)) is True

    _, args, _ = api.called("schedule_tour")[0]
    assert args[:2] == ("1", "5")
    assert args[2] == {
        "preferred_date": "2030-06-14", "preferred_time": "10:30",
        "preferred_date_2": "2030-06-15", "preferred_time_2": "16:00",
        "preferred_date_3": None, "preferred_time_3": None,
        "message": "After work please",
    }
    assert notifications.current.type == "success"
    assert "2030-06-14 at 10:30" in notifications.current.message
    assert service.state.is_busy("tour:5") is False


def test_schedule_tour_failure(api, service, notifications):
    opened(service, api)
    api.queue("schedule_tour", ok({"queued": True}, status=202))

    assert asyncio.run(service.schedule_tour(TourRequest("5", slots=[("2030-06-14", "10:30")]))) is False
    assert notifications.current.message == "Failed to submit tour request. Please try again."


def test_schedule_tour_needs_a_time_and_a_known_property(api, service):
    opened(service, api)

    with pytest.raises(ValidationError) as e:
        asyncio.run(service.schedule_tour(TourRequest("5")))
    assert e.value.message == TOUR_SLOT_REQUIRED

    with pytest.raises(InteractionError):
        asyncio.run(service.schedule_tour(TourRequest("99", slots=[("2030-06-14", "10:30")])))
    assert api.called("schedule_tour") == []


def test_schedule_tour_is_not_submitted_twice(api, service):
    opened(service, api)
    service.state.start("tour:5")

    assert asyncio.run(service.schedule_tour(TourRequest("5", slots=[("2030-06-14", "10:30")]))) is False
    assert api.called("schedule_tour") == []


# === OPEN HOUSES ===

OPEN_HOUSES = [
    {"id": "a1", "property_id": 9, "address": "9 Pine St", "price": 425000, "form_url": "https://app/open-house/a1"},
    {"id": "b2", "address": "12 Birch Rd"},
]


def test_load_open_houses(api, service):
    api.queue("get_open_houses", ok(OPEN_HOUSES))

    open_houses = asyncio.run(service.load_open_houses())

    assert [o.id for o in open_houses] == ["a1", "b2"]
    assert open_houses[0].property_id == "9"
    assert service.find_open_house("b2").address == "12 Birch Rd"


def test_delete_open_house_reloads_the_list(api, service, notifications):
    api.queue("get_open_houses", ok(OPEN_HOUSES), ok(OPEN_HOUSES[1:]))
    asyncio.run(service.load_open_houses())

    assert asyncio.run(service.delete_open_house("a1")) is True

    assert api.called("delete_open_house")[0][1] == ("a1",)
    assert [o.id for o in service.open_houses] == ["b2"]
    assert notifications.current.type == "success"
    assert service.state.is_busy("open_house:a1") is False


def test_failed_open_house_delete_keeps_it(api, service, notifications):
    api.queue("get_open_houses", ok(OPEN_HOUSES))
    asyncio.run(service.load_open_houses())
    api.queue("delete_open_house", fail(500))

    assert asyncio.run(service.delete_open_house("a1")) is False

    assert service.find_open_house("a1") is not None
    assert notifications.current.message == "Failed to remove listing. Please try again."


def test_unknown_open_house_rejected(api, service):
    with pytest.raises(InteractionError):
        asyncio.run(service.delete_open_house("zz"))
    assert api.called("delete_open_house") == []
