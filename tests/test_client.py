import socket
import struct
import threading

import pytest

from syncrocket.client import (
    CLIENT_GREETING,
    SERVER_GREETING,
    ConnectError,
    GreetingMismatchError,
    HandshakeError,
    Pause,
    RocketClient,
    SaveTracks,
    SetRow,
    TrackerIOError,
)
from syncrocket.interpolation import Interpolation
from syncrocket.track import Key


def _recv_exact(sock, size):
    data = bytearray()
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return bytes(data)


@pytest.fixture
def session():
    server, client_sock = socket.socketpair()
    server.settimeout(5)
    server.sendall(SERVER_GREETING)
    client = RocketClient(client_sock)
    greeting = _recv_exact(server, len(CLIENT_GREETING))
    yield client, server, greeting
    client.close()
    server.close()


def test_handshake_sends_client_greeting(session):
    _, _, greeting = session
    assert greeting == b"hello, synctracker!"


def test_greeting_mismatch():
    server, client_sock = socket.socketpair()
    try:
        server.sendall(b"hello, evil!")
        with pytest.raises(GreetingMismatchError) as info:
            RocketClient(client_sock)
        assert info.value.greeting == b"hello, evil!"
    finally:
        server.close()


def test_handshake_fails_when_peer_closes():
    server, client_sock = socket.socketpair()
    server.sendall(b"hello")
    server.close()
    with pytest.raises(HandshakeError):
        RocketClient(client_sock)


def test_get_track_mut_sends_request_once(session):
    client, server, _ = session
    track = client.get_track_mut("test")
    assert _recv_exact(server, 9) == b"\x02\x00\x00\x00\x04test"
    again = client.get_track_mut("test")
    assert again is track
    server.settimeout(0.1)
    with pytest.raises(socket.timeout):
        server.recv(1)


def test_get_track_unknown_is_none(session):
    client, _, _ = session
    client.get_track_mut("a:test2")
    assert client.get_track("missing") is None
    assert client.get_track("a:test2").name == "a:test2"


def test_save_tracks_keeps_request_order(session):
    client, _, _ = session
    for name in ("test", "test2", "a:test2"):
        client.get_track_mut(name)
    assert [t.name for t in client.save_tracks()] == ["test", "test2", "a:test2"]


def test_set_row_wire_format(session):
    client, server, _ = session
    client.set_row(5)
    assert _recv_exact(server, 5) == b"\x03\x00\x00\x00\x05"


def test_set_row_rejects_negative(session):
    client, _, _ = session
    with pytest.raises(ValueError):
        client.set_row(-1)


def test_poll_without_data_returns_none(session):
    client, _, _ = session
    assert client.poll_events() is None


def test_set_row_event(session):
    client, server, _ = session
    server.sendall(struct.pack(">BI", 3, 42))
    assert client.poll_events() == SetRow(42)


@pytest.mark.parametrize("flag, expected", [(1, True), (0, False)])
def test_pause_event(session, flag, expected):
    client, server, _ = session
    server.sendall(bytes([4, flag]))
    assert client.poll_events() == Pause(expected)


def test_save_tracks_event(session):
    client, server, _ = session
    server.sendall(bytes([5]))
    assert client.poll_events() == SaveTracks()


def test_events_in_sequence(session):
    client, server, _ = session
    server.sendall(struct.pack(">BI", 3, 7) + bytes([4, 1, 5]))
    events = [client.poll_events() for _ in range(4)]
    assert events == [SetRow(7), Pause(True), SaveTracks(), None]


def test_partial_command_is_completed_later(session):
    client, server, _ = session
    message = struct.pack(">BI", 3, 9)
    server.sendall(message[:2])
    assert client.poll_events() is None
    server.sendall(message[2:])
    assert client.poll_events() == SetRow(9)


def test_set_key_and_delete_key_edit_tracks(session):
    client, server, _ = session
    track = client.get_track_mut("test")
    server.sendall(struct.pack(">BIIfB", 0, 0, 0, 1.0, 1))
    server.sendall(struct.pack(">BIIfB", 0, 0, 10, 2.0, 0))
    assert client.poll_events() is None
    assert client.poll_events() is None
    assert track.keys == (
        Key(0, 1.0, Interpolation.LINEAR),
        Key(10, 2.0, Interpolation.STEP),
    )
    server.sendall(struct.pack(">BII", 1, 0, 0))
    assert client.poll_events() is None
    assert track.keys == (Key(10, 2.0, Interpolation.STEP),)


def test_set_key_unknown_interpolation_becomes_step(session):
    client, server, _ = session
    track = client.get_track_mut("test")
    server.sendall(struct.pack(">BIIfB", 0, 0, 3, 0.5, 9))
    client.poll_events()
    assert track.keys == (Key(3, 0.5, Interpolation.STEP),)


def test_unknown_command_is_reported_and_skipped(session, capsys):
    client, server, _ = session
    server.sendall(bytes([99]) + struct.pack(">BI", 3, 1))
    assert client.poll_events() is None
    assert "rocket: Unknown command: 99" in capsys.readouterr().err
    assert client.poll_events() == SetRow(1)


def test_disconnect_raises(session):
    client, server, _ = session
    server.close()
    with pytest.raises(TrackerIOError):
        client.poll_events()


def test_context_manager_closes(session):
    client, _, _ = session
    with client as entered:
        assert entered is client
    with pytest.raises(TrackerIOError):
        client.set_row(1)


def test_connect_refused():
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(ConnectError):
        RocketClient.connect("127.0.0.1", port)


def test_connect_to_listening_tracker():
    listener = socket.socket()
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(5)
    port = listener.getsockname()[1]
    received = {}
    done = threading.Event()

    def serve():
        conn, _ = listener.accept()
        with conn:
            conn.settimeout(5)
            conn.sendall(SERVER_GREETING)
            received["greeting"] = _recv_exact(conn, len(CLIENT_GREETING))
            received["row"] = _recv_exact(conn, 5)
            done.wait(5)

    thread = threading.Thread(target=serve)
    thread.start()
    polled = "unset"
    saved = None
    try:
        with RocketClient.connect("127.0.0.1", port) as client:
            client.set_row(5)
            for _ in range(100):
                if "row" in received:
                    break
                threading.Event().wait(0.01)
            polled = client.poll_events()
            saved = list(client.save_tracks())
    finally:
        done.set()
        thread.join(5)
        listener.close()
    assert polled is None
    assert saved == []
    assert received["greeting"] == CLIENT_GREETING
    assert received["row"] == b"\x03\x00\x00\x00\x05"