"""
In-process broadcast channel: fan-out, rooms, FIFO order and SSE framing.
"""
import json

from backoffice.services.realtime import BroadcastChannel, format_sse


def test_publish_reaches_every_subscriber():
    ch = BroadcastChannel()
    a, b = ch.subscribe(), ch.subscribe()
    assert ch.publish("booking:created", {"id": 1}) == 2
    assert a.get(timeout=0) == ("booking:created", {"id": 1})
    assert b.get(timeout=0) == ("booking:created", {"id": 1})


def test_late_subscriber_misses_earlier_events():
    ch = BroadcastChannel()
    ch.publish("booking:created", {"id": 1})
    late = ch.subscribe()
    assert late.get(timeout=0) is None


def test_room_targeting_and_order():
    ch = BroadcastChannel()
    front = ch.subscribe(["role:Reception"])
    other = ch.subscribe()
    ch.publish("a", 1, room="role:Reception")
    ch.publish("b", 2)
    assert front.get(timeout=0) == ("a", 1)
    assert front.get(timeout=0) == ("b", 2)
    assert other.get(timeout=0) == ("b", 2)
    assert other.get(timeout=0) is None


def test_full_queue_drops_for_slow_client():
    ch = BroadcastChannel(max_queue=1)
    slow = ch.subscribe()
    assert ch.publish("x", 1) == 1
    assert ch.publish("x", 2) == 0
    assert slow.get(timeout=0) == ("x", 1)


def test_stream_frames_and_cleanup():
    ch = BroadcastChannel()
    sub = ch.subscribe()
    frames = ch.stream(sub, keepalive=0.01)
    assert next(frames) == ": connected\n\n"
    ch.publish("booking:pickup", {"id": 7})
    frame = next(frames)
    assert frame.startswith("event: booking:pickup\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"id": 7}
    assert next(frames) == ": keep-alive\n\n"
    frames.close()
    assert ch.subscriber_count == 0


def test_format_sse():
    assert format_sse("e", {"k": "v"}) == 'event: e\ndata: {"k": "v"}\n\n'
