import asyncio

import pytest

from openhousepal.core.notifications import NotificationQueue


def recording_queue(**kwargs):
    queue = NotificationQueue(**kwargs)
    shown, dismissed = [], []
    queue.subscribe(shown.append, dismissed.append)
    return queue, shown, dismissed


def test_new_toast_replaces_current_and_cancels_its_timer():
    async def scenario():
        queue, shown, dismissed = recording_queue(duration=10)
        first = queue.error("Could not save your like.")
        second = queue.success("Showcase deleted.")
        queue_current = queue.current
        replaced = list(dismissed)
        queue.close()
        return queue_current, first, second, shown, replaced

    current, first, second, shown, replaced = asyncio.run(scenario())

    assert current is second
    assert first.timer.cancelled()
    assert [n.id for n in shown] == [first.id, second.id]
    assert [n.id for n in replaced] == [first.id]


def test_ids_are_monotonic():
    queue = NotificationQueue(duration=0)

    ids = [queue.info(str(i)).id for i in range(3)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 3


def test_toast_expires_on_its_own():
    async def scenario():
        queue, _, dismissed = recording_queue(duration=0.01)
        toast = queue.info("Preferences saved.")
        await asyncio.sleep(0.05)
        return queue, toast, dismissed

    queue, toast, dismissed = asyncio.run(scenario())

    assert queue.current is None
    assert dismissed == [toast]


def test_late_expiry_of_replaced_toast_is_a_no_op():
    queue = NotificationQueue(duration=0)
    first = queue.info("first")
    second = queue.info("second")

    # A timer callback that slipped through still only targets its own id
    queue._expire(first.id)

    assert queue.current is second


def test_dismiss_by_id_and_all():
    queue, _, dismissed = recording_queue(duration=0, capacity=3)
    a = queue.info("a")
    b = queue.info("b")
    queue.info("c")

    queue.dismiss(a.id)
    assert [n.message for n in queue.active] == ["b", "c"]

    queue.dismiss(999)
    assert len(queue.active) == 2

    queue.dismiss()
    assert queue.active == []
    assert [n.id for n in dismissed][:1] == [a.id]
    assert b in dismissed


def test_capacity_evicts_oldest():
    queue = NotificationQueue(duration=0, capacity=2)
    queue.info("a")
    queue.info("b")
    queue.info("c")

    assert [n.message for n in queue.active] == ["b", "c"]


def test_close_cancels_pending_timers():
    async def scenario():
        queue = NotificationQueue(duration=10)
        toast = queue.error("boom")
        queue.close()
        return queue, toast

    queue, toast = asyncio.run(scenario())

    assert toast.timer.cancelled()
    assert queue.current is None


def test_close_tells_listeners_to_remove_rendered_toasts():
    async def scenario():
        queue, _, dismissed = recording_queue(duration=10, capacity=2)
        first = queue.info("hi")
        second = queue.error("Could not save your like.")
        queue.close()
        return queue, [first, second], dismissed

    queue, toasts, dismissed = asyncio.run(scenario())

    assert dismissed == toasts
    assert queue.active == []


def test_listener_errors_do_not_break_the_queue():
    queue = NotificationQueue(duration=0)

    def broken(notification):
        raise RuntimeError("renderer down")

    queue.subscribe(on_show=broken)
    toast = queue.success("ok")

    assert queue.current is toast


def test_unknown_type_and_bad_capacity():
    with pytest.raises(ValueError):
        NotificationQueue(duration=0).show("warning", "?")
    with pytest.raises(ValueError):
        NotificationQueue(capacity=0)
