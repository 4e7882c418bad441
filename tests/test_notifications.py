import asyncio

from palletpark_web.notifications import ConnectionRegistry, EventKind, Notification


class RecordingSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    async def send_json(self, data, mode="text"):
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append(data)


def test_send_reaches_every_socket_of_recipient():
    registry = ConnectionRegistry()
    phone, browser, stranger = RecordingSocket(), RecordingSocket(), RecordingSocket()
    registry.register(1, phone)
    registry.register(1, browser)
    registry.register(2, stranger)

    delivered = asyncio.run(
        registry.send(Notification(1, EventKind.SLOT_ASSIGNED, {"slot": {"id": 7}}))
    )

    assert delivered == 2
    expected = {"type": "slot-assigned", "data": {"slot": {"id": 7}}}
    assert phone.messages == [expected]
    assert browser.messages == [expected]
    assert stranger.messages == []


def test_failed_socket_is_dropped():
    registry = ConnectionRegistry()
    dead, alive = RecordingSocket(fail=True), RecordingSocket()
    registry.register(3, dead)
    registry.register(3, alive)

    delivered = asyncio.run(registry.send(Notification(3, EventKind.REQUEST_CREATED)))

    assert delivered == 1
    assert registry.connection_count() == 1
    assert registry.is_connected(3)


def test_send_without_connection_is_noop():
    registry = ConnectionRegistry()
    assert asyncio.run(registry.send(Notification(5, EventKind.REQUEST_COMPLETED))) == 0
    assert not registry.is_connected(5)


def test_unregister_lifecycle():
    registry = ConnectionRegistry()
    socket = RecordingSocket()
    registry.register(9, socket)
    registry.unregister(9, socket)
    registry.unregister(9, socket)

    assert not registry.is_connected(9)
    assert registry.connection_count() == 0
