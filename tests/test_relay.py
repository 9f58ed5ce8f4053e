from conftest import RecordingChannel
from events import EVENT_SIGNAL


def test_forward_delivers_once_with_sender_attached(backend) -> None:
    ch_b = RecordingChannel()
    a = backend.registry.connect(RecordingChannel()).connection_id
    b = backend.registry.connect(ch_b).connection_id
    payload = {"type": "offer", "sdp": "v=0"}

    assert backend.relay.forward(a, b, payload) is True
    assert ch_b.events == [(EVENT_SIGNAL, {"sender": a, "signal": payload})]


def test_forward_ignores_room_membership(backend) -> None:
    ch_b = RecordingChannel()
    a = backend.registry.connect(RecordingChannel()).connection_id
    b = backend.registry.connect(ch_b).connection_id
    backend.rooms.join("r1", a)
    backend.rooms.join("r2", b)

    assert backend.relay.forward(a, b, "candidate") is True
    assert ch_b.events[-1] == (EVENT_SIGNAL, {"sender": a, "signal": "candidate"})


def test_forward_to_unknown_target_is_dropped(backend) -> None:
    ch_a = RecordingChannel()
    a = backend.registry.connect(ch_a).connection_id

    assert backend.relay.forward(a, "no-such-connection", {"sdp": "x"}) is False
    assert backend.relay.forward(a, ["not", "an", "id"], {"sdp": "x"}) is False
    assert ch_a.events == []


def test_signals_to_one_target_keep_call_order(backend) -> None:
    ch_b = RecordingChannel()
    a = backend.registry.connect(RecordingChannel()).connection_id
    b = backend.registry.connect(ch_b).connection_id

    for n in range(5):
        backend.relay.forward(a, b, n)

    assert [data["signal"] for _, data in ch_b.events] == [0, 1, 2, 3, 4]
