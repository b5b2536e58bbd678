import json

import pytest

from infrastructure.realtime.voice_hub import VoiceSignalingHub, new_peer_id


class FakeChannel:
    """Records decoded frames; can be switched to fail on send."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.closed = False
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason=None) -> None:
        self.closed = True

    @property
    def last(self):
        return self.sent[-1]


def test_peer_ids_are_unique_hex():
    ids = {new_peer_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 32 and int(i, 16) >= 0 for i in ids)


@pytest.mark.asyncio
async def test_join_identity_relay_and_leave():
    hub = VoiceSignalingHub()
    a, b, c = FakeChannel(), FakeChannel(), FakeChannel()

    a_id = await hub.connect("room-1", a)
    assert a.sent == [{"type": "init", "peerId": a_id, "peers": []}]

    b_id = await hub.connect("room-1", b)
    assert b.sent == [{"type": "init", "peerId": b_id, "peers": [{"peerId": a_id}]}]
    assert a.last == {"type": "peer-join", "peerId": b_id}

    await hub.receive("room-1", a_id, json.dumps({"type": "identity", "userId": "u1", "name": "Ann"}))
    assert b.last == {"type": "peer-info", "peerId": a_id, "meta": {"userId": "u1", "name": "Ann"}}
    assert hub.get_meta("room-1", a_id).name == "Ann"

    c_id = await hub.connect("room-1", c)
    init_c = c.sent[0]
    assert init_c["peers"] == [
        {"peerId": a_id, "meta": {"userId": "u1", "name": "Ann"}},
        {"peerId": b_id},
    ]

    before_offer = len(a.sent)
    await hub.receive("room-1", b_id, json.dumps({"type": "offer", "target": a_id, "sdp": {"type": "offer"}}))
    assert len(a.sent) == before_offer + 1
    assert a.last == {"type": "offer", "target": a_id, "sdp": {"type": "offer"}, "from": b_id}

    await hub.receive("room-1", a_id, json.dumps({"type": "hangup"}))
    assert a.closed
    assert not hub.has_peer("room-1", a_id)
    assert b.last == {"type": "peer-leave", "peerId": a_id}
    assert c.last == {"type": "peer-leave", "peerId": a_id}

    await hub.disconnect("room-1", b_id)
    await hub.disconnect("room-1", c_id)
    assert not hub.has_room("room-1")
    assert hub.room_ids() == []


@pytest.mark.asyncio
async def test_relay_keeps_unknown_fields_and_sets_sender():
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)

    await hub.receive("r", a_id, json.dumps({
        "type": "ice-candidate",
        "target": b_id,
        "candidate": {"candidate": "candidate:1 1 UDP 1 10.0.0.1 5000 typ host"},
        "from": "spoofed",
        "extra": 1,
    }))

    assert b.last["from"] == a_id
    assert b.last["extra"] == 1
    assert b.last["candidate"]["candidate"].startswith("candidate:1")


@pytest.mark.asyncio
async def test_relay_to_missing_target_is_dropped():
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    await hub.connect("r", b)
    before_a, before_b = len(a.sent), len(b.sent)

    await hub.receive("r", a_id, json.dumps({"type": "answer", "target": "nobody", "sdp": "v=0"}))

    assert (len(a.sent), len(b.sent)) == (before_a, before_b)
    assert hub.has_peer("r", a_id)


@pytest.mark.asyncio
async def test_rooms_are_isolated():
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r1", a)
    b_id = await hub.connect("r2", b)

    assert b.sent[0]["peers"] == []
    await hub.receive("r1", a_id, json.dumps({"type": "offer", "target": b_id, "sdp": "v=0"}))
    assert len(b.sent) == 1


@pytest.mark.asyncio
async def test_disconnect_is_idempotent():
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)

    assert await hub.disconnect("r", b_id) is True
    assert await hub.disconnect("r", b_id) is False
    assert await hub.hangup("r", b_id) is False

    leaves = [m for m in a.sent if m["type"] == "peer-leave"]
    assert leaves == [{"type": "peer-leave", "peerId": b_id}]
    assert hub.peer_ids("r") == [a_id]


@pytest.mark.asyncio
async def test_failed_broadcast_removes_broken_recipient():
    hub = VoiceSignalingHub()
    a, b, c = FakeChannel(), FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)
    b.fail = True

    c_id = await hub.connect("r", c)

    assert b.closed
    assert not hub.has_peer("r", b_id)
    assert a.last == {"type": "peer-leave", "peerId": b_id}
    assert c.last == {"type": "peer-leave", "peerId": b_id}
    assert sorted(hub.peer_ids("r")) == sorted([a_id, c_id])


@pytest.mark.asyncio
async def test_failed_relay_removes_target_only():
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)
    b.fail = True

    await hub.receive("r", a_id, json.dumps({"type": "offer", "target": b_id, "sdp": "v=0"}))

    assert hub.has_peer("r", a_id)
    assert not hub.has_peer("r", b_id)
    assert a.last == {"type": "peer-leave", "peerId": b_id}


@pytest.mark.asyncio
async def test_init_failure_leaves_no_trace():
    hub = VoiceSignalingHub()
    a = FakeChannel()
    a_id = await hub.connect("r", a)

    broken = FakeChannel(fail=True)
    broken_id = await hub.connect("r", broken)

    assert not hub.has_peer("r", broken_id)
    assert hub.peer_ids("r") == [a_id]
    assert all(m["type"] != "peer-join" for m in a.sent)


@pytest.mark.asyncio
async def test_last_peer_leaving_evicts_room():
    hub = VoiceSignalingHub()
    a = FakeChannel()
    a_id = await hub.connect("solo", a)
    assert hub.room_size("solo") == 1

    await hub.disconnect("solo", a_id)

    assert not hub.has_room("solo")
    assert hub.room_size("solo") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    "not json",
    "[1, 2, 3]",
    "42",
    json.dumps({"type": "bogus"}),
    json.dumps({"type": "offer", "sdp": "v=0"}),
    json.dumps({"type": "identity", "userId": "", "name": "Ann"}),
    json.dumps({"noType": True}),
    json.dumps({"type": "identity", "userId": 0, "name": "Ann"}),
    json.dumps({"type": "identity", "userId": "u1", "name": 0.0}),
    b"\xff\xfe{not utf-8",
])
async def test_malformed_frames_are_ignored(raw):
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    await hub.connect("r", b)
    before_a, before_b = len(a.sent), len(b.sent)

    await hub.receive("r", a_id, raw)

    assert (len(a.sent), len(b.sent)) == (before_a, before_b)
    assert hub.has_peer("r", a_id)
    assert hub.get_meta("r", a_id) is None


@pytest.mark.asyncio
async def test_oversized_frame_is_ignored():
    hub = VoiceSignalingHub(max_frame_bytes=64)
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)
    before = len(b.sent)

    await hub.receive("r", a_id, json.dumps({"type": "offer", "target": b_id, "sdp": "x" * 100}))

    assert len(b.sent) == before


@pytest.mark.asyncio
async def test_frame_limit_counts_utf8_bytes_not_characters():
    hub = VoiceSignalingHub(max_frame_bytes=1000)
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)
    before = len(b.sent)

    # 900 characters, 2700 bytes of sdp once encoded
    wide = json.dumps({"type": "offer", "target": b_id, "sdp": "あ" * 900}, ensure_ascii=False)
    assert len(wide) < 1000 < len(wide.encode("utf-8"))
    await hub.receive("r", a_id, wide)
    assert len(b.sent) == before

    narrow = json.dumps({"type": "offer", "target": b_id, "sdp": "あ" * 100}, ensure_ascii=False)
    await hub.receive("r", a_id, narrow)
    assert len(b.sent) == before + 1
    assert b.last["sdp"] == "あ" * 100


@pytest.mark.asyncio
async def test_binary_frames_are_measured_before_decoding():
    hub = VoiceSignalingHub(max_frame_bytes=64)
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    b_id = await hub.connect("r", b)
    before = len(b.sent)

    await hub.receive("r", a_id, json.dumps({"type": "offer", "target": b_id, "sdp": "x" * 100}).encode("utf-8"))
    assert len(b.sent) == before

    await hub.receive("r", a_id, json.dumps({"type": "answer", "target": b_id}).encode("utf-8"))
    assert len(b.sent) == before + 1
    assert b.last == {"type": "answer", "target": b_id, "from": a_id}


@pytest.mark.asyncio
async def test_numeric_identity_is_coerced_to_string():
    hub = VoiceSignalingHub()
    a, b = FakeChannel(), FakeChannel()
    a_id = await hub.connect("r", a)
    await hub.connect("r", b)

    await hub.receive("r", a_id, json.dumps({"type": "identity", "userId": 7, "name": "Bo"}))

    assert b.last["meta"] == {"userId": "7", "name": "Bo"}

    await hub.receive("r", a_id, json.dumps({"type": "identity", "userId": 8.0, "name": "Bo"}))

    assert b.last["meta"] == {"userId": "8", "name": "Bo"}


@pytest.mark.asyncio
async def test_frames_from_unknown_peer_are_ignored():
    hub = VoiceSignalingHub()
    a = FakeChannel()
    await hub.connect("r", a)
    before = len(a.sent)

    await hub.receive("r", "stranger", json.dumps({"type": "hangup"}))
    await hub.receive("other", "stranger", json.dumps({"type": "hangup"}))

    assert len(a.sent) == before
    assert not hub.has_room("other")
