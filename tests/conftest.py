import pytest

from openhousepal.core.notifications import NotificationQueue
from openhousepal.core.view import ViewState
from tests.helpers import FakeApi, make_collection, make_property


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def notifications():
    # No timers: tests inspect the current toast directly
    return NotificationQueue(duration=0)


@pytest.fixture
def state():
    collection = make_collection(1)
    view = ViewState(collections=[collection])
    view.select(collection)
    view.properties = [
        make_property(5, address="5 Oak St", price=500000),
        make_property(6, address="6 Elm St", price=300000),
    ]
    return view
