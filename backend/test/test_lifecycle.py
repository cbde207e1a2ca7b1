"""ConnectionLifecycle 테스트: 수신 루프, 오류 복구, 종료 정리."""

from relay import Connection, ConnectionState
from conftest import FakeWebSocket, text_frame


async def test_malformed_json_replies_error_and_connection_survives(lifecycle, directory, make_connection):
    conn = make_connection()

    await lifecycle.handle_frame(conn, "{not json")
    await lifecycle.handle_frame(conn, '{"type": "join-room", "roomId": "r1", "userId": "a"}')

    error, joined = conn.websocket.sent
    assert error["type"] == "error"
    assert error["message"].startswith("Invalid JSON")
    assert joined["type"] == "joined"
    assert conn.state is ConnectionState.JOINED
    assert await directory.members_of("r1") == [conn]


async def test_non_object_json_is_rejected(lifecycle, make_connection):
    conn = make_connection()

    await lifecycle.handle_frame(conn, "[1, 2, 3]")

    assert conn.websocket.sent == [{"type": "error", "message": "Message must be a JSON object"}]
    assert conn.state is ConnectionState.CONNECTING


async def test_binary_frames_are_decoded_as_text(lifecycle, make_connection):
    conn = make_connection()

    await lifecycle.handle_frame(conn, b'{"type": "join-room", "roomId": "r1"}')
    await lifecycle.handle_frame(conn, b"\xff\xfe")

    assert conn.websocket.sent[0]["type"] == "joined"
    assert conn.websocket.sent[1] == {"type": "error", "message": "Binary frame is not valid UTF-8 text"}


async def test_oversize_frame_is_rejected(lifecycle, make_connection):
    conn = make_connection()

    await lifecycle.handle_frame(conn, '{"type": "offer", "offer": "' + "x" * 2048 + '"}')

    assert conn.websocket.sent == [{"type": "error", "message": "Message exceeds 1024 bytes"}]


async def test_join_without_room_id_replies_error(lifecycle, make_connection):
    conn = make_connection()

    await lifecycle.handle_frame(conn, '{"type": "join-room", "userId": "a"}')

    assert conn.websocket.sent == [{"type": "error", "message": "roomId is required"}]
    assert conn.room_id is None


async def test_unexpected_handler_error_is_reported(lifecycle, directory, make_connection, monkeypatch):
    conn = make_connection()

    async def failing_join(*args, **kwargs):
        raise RuntimeError("directory unavailable")

    monkeypatch.setattr(directory, "join", failing_join)

    await lifecycle.handle_frame(conn, '{"type": "join-room", "roomId": "r1"}')

    assert conn.websocket.sent == [{"type": "error", "message": "directory unavailable"}]
    assert conn.state is ConnectionState.CONNECTING


async def test_close_leaves_room_and_notifies_members(lifecycle, directory, make_connection):
    a, b = make_connection(), make_connection()
    await lifecycle.handle_frame(a, '{"type": "join-room", "roomId": "r1", "userId": "a"}')
    await lifecycle.handle_frame(b, '{"type": "join-room", "roomId": "r1", "userId": "b"}')
    b.websocket.sent.clear()

    await lifecycle.close(a)
    await lifecycle.close(a)

    assert a.state is ConnectionState.CLOSED
    assert b.websocket.sent == [{"type": "user-left", "userId": "a"}]
    assert await directory.members_of("r1") == [b]

    await lifecycle.close(b)
    assert not await directory.has_room("r1")
    assert directory.connection_count == 0


async def test_close_before_join_sends_nothing(lifecycle, directory, make_connection):
    a, b = make_connection(), make_connection()
    await directory.register(a)
    await lifecycle.handle_frame(b, '{"type": "join-room", "roomId": "r1", "userId": "b"}')
    b.websocket.sent.clear()

    await lifecycle.close(a)

    assert b.websocket.sent == []
    assert directory.connection_count == 1


async def test_closed_connection_cannot_rejoin(lifecycle, directory, make_connection):
    conn = make_connection()
    await lifecycle.close(conn)

    await lifecycle.handle_frame(conn, '{"type": "join-room", "roomId": "r1"}')

    assert not await directory.has_room("r1")
    assert conn.websocket.sent == []


async def test_serve_runs_until_disconnect_and_cleans_up(lifecycle, directory, make_connection):
    peer = make_connection()
    await lifecycle.handle_frame(peer, '{"type": "join-room", "roomId": "r1", "userId": "peer"}')
    peer.websocket.sent.clear()

    websocket = FakeWebSocket(incoming=[
        {"type": "websocket.receive", "text": "oops"},
        text_frame({"type": "join-room", "roomId": "r1", "userId": "a"}),
        text_frame({"type": "offer", "offer": {"sdp": "s"}, "to": "peer"}),
    ])

    await lifecycle.serve(websocket)

    assert websocket.accepted
    assert [m["type"] for m in websocket.sent] == ["error", "joined"]
    assert peer.websocket.sent == [
        {"type": "user-joined", "userId": "a", "userName": None},
        {"type": "offer", "offer": {"sdp": "s"}, "from": "a"},
        {"type": "user-left", "userId": "a"},
    ]
    assert await directory.members_of("r1") == [peer]
    assert directory.connection_count == 1


async def test_serve_cleans_up_after_transport_error(lifecycle, directory, make_connection):
    peer = make_connection()
    await lifecycle.handle_frame(peer, '{"type": "join-room", "roomId": "r1", "userId": "peer"}')
    peer.websocket.sent.clear()

    class BrokenWebSocket(FakeWebSocket):
        async def receive(self):
            if self.incoming:
                return self.incoming.pop(0)
            raise ConnectionResetError("reset by peer")

    websocket = BrokenWebSocket(incoming=[text_frame({"type": "join-room", "roomId": "r1", "userId": "a"})])

    await lifecycle.serve(websocket)

    assert peer.websocket.sent[-1] == {"type": "user-left", "userId": "a"}
    assert await directory.members_of("r1") == [peer]


async def test_shutdown_closes_every_connection(lifecycle, directory, make_connection):
    a, b, idle = make_connection(), make_connection(), make_connection()
    await lifecycle.handle_frame(a, '{"type": "join-room", "roomId": "r1"}')
    await lifecycle.handle_frame(b, '{"type": "join-room", "roomId": "r2"}')
    await directory.register(idle)

    await lifecycle.shutdown()

    for conn in (a, b, idle):
        assert conn.websocket.close_code == 1001
        assert conn.state is ConnectionState.CLOSED
    assert directory.room_count == 0
    assert directory.connection_count == 0


def test_connection_transitions():
    conn = Connection(websocket=FakeWebSocket())
    assert conn.state is ConnectionState.CONNECTING
    assert conn.is_open

    conn.mark_joined("r1", "a", None)
    assert conn.state is ConnectionState.JOINED

    assert conn.mark_closed() is True
    assert conn.mark_closed() is False
    assert not conn.is_open


async def test_close_of_shadowed_duplicate_id_keeps_peers_connected(lifecycle, directory, make_connection):
    old, new, peer = make_connection(), make_connection(), make_connection()
    for conn, user_id in ((old, "dup"), (new, "dup"), (peer, "p")):
        await lifecycle.handle_frame(conn, f'{{"type": "join-room", "roomId": "r1", "userId": "{user_id}"}}')
    peer.websocket.sent.clear()

    await lifecycle.close(old)
    assert peer.websocket.sent == []
    assert await directory.find_in_room("r1", "dup") is new

    await lifecycle.close(new)
    assert peer.websocket.sent == [{"type": "user-left", "userId": "dup"}]
