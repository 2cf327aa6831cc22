import asyncio

from openhousepal.core.api import ApiResponse
from openhousepal.core.schemas import Collection, Property


def ok(data=None, status=200):
    return ApiResponse(status=status, data=data if data is not None else {})


def fail(status=500, error=None):
    return ApiResponse(status=status, error=error)


class FakeApi:
    """
    Stands in for ApiClient. Responses are queued per method name; a queued
    asyncio.Future keeps the request "in flight" until the test resolves it.
    Unqueued calls answer 200 with an empty body.
    """

    def __init__(self):
        self.calls = []
        self.responses = {}

    def queue(self, name, *responses):
        self.responses.setdefault(name, []).extend(responses)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        async def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            pending = self.responses.get(name)
            if not pending:
                return ok()
            item = pending.pop(0)
            if isinstance(item, asyncio.Future):
                return await item
            return item

        return method


def make_property(id, **fields):
    return Property.model_validate({"id": id, **fields})


def make_collection(id=1, **fields):
    return Collection.model_validate({"id": id, "name": f"Showcase {id}", **fields})
