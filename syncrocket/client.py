"""Connection to a Rocket sync tracker, and the events it sends."""

from __future__ import annotations

import socket
import struct
import sys
from dataclasses import dataclass
from typing import Optional, Union

from .interpolation import Interpolation
from .track import Key, Track

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 1338

CLIENT_GREETING = b"hello, synctracker!"
SERVER_GREETING = b"hello, demo!"

SET_KEY = 0
DELETE_KEY = 1
GET_TRACK = 2
SET_ROW = 3
PAUSE = 4
SAVE_TRACKS = 5

# Payload sizes following each command byte; unknown commands carry none.
_PAYLOAD_LEN = {
    SET_KEY: 4 + 4 + 4 + 1,
    DELETE_KEY: 4 + 4,
    SET_ROW: 4,
    PAUSE: 1,
    SAVE_TRACKS: 0,
}

_U32_MAX = 0xFFFFFFFF
_PREFIX = "rocket"


class RocketError(Exception):
    """Base class of errors raised while talking to the tracker."""

    default_message = "Rocket tracker error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class ConnectError(RocketError):
    """The TCP connection to the tracker could not be established."""

    default_message = "Failed to establish a TCP connection with the Rocket tracker"


class HandshakeError(RocketError):
    """Greetings could not be sent to or received from the tracker."""

    default_message = "Handshake with the Rocket tracker failed"


class GreetingMismatchError(RocketError):
    """The tracker answered the handshake with an unexpected greeting."""

    def __init__(self, greeting: bytes) -> None:
        self.greeting = bytes(greeting)
        super().__init__(f"The Rocket tracker greeting {self.greeting!r} wasn't correct")


class NonblockingError(RocketError):
    """The connection could not be switched to non-blocking mode."""

    default_message = "Cannot set Rocket's TCP connection to nonblocking mode"


class TrackerIOError(RocketError):
    """Network failure while talking to a connected tracker."""

    default_message = "Rocket tracker disconnected"


@dataclass(frozen=True)
class SetRow:
    """The tracker moved to another row."""

    row: int


@dataclass(frozen=True)
class Pause:
    """The tracker paused (``True``) or resumed (``False``)."""

    paused: bool


@dataclass(frozen=True)
class SaveTracks:
    """The tracker asks for the track data to be saved."""


Event = Union[SetRow, Pause, SaveTracks]


class RocketClient:
    """A live connection to a Rocket tracker holding the edited tracks."""

    def __init__(self, sock: socket.socket) -> None:
        """Perform the handshake over a connected socket, then make it non-blocking."""
        self._sock = sock
        self._tracks: list[Track] = []
        self._buffer = bytearray()
        self._pending: Optional[int] = None
        try:
            self._handshake()
            try:
                self._sock.setblocking(False)
            except OSError as exc:
                raise NonblockingError() from exc
        except RocketError:
            self._sock.close()
            raise

    @classmethod
    def connect(cls, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> "RocketClient":
        """Connect to a tracker at ``host``:``port`` (localhost:1338 by default)."""
        try:
            sock = socket.create_connection((host, port))
        except OSError as exc:
            raise ConnectError() from exc
        return cls(sock)

    def _handshake(self) -> None:
        try:
            self._sock.sendall(CLIENT_GREETING)
            received = bytearray()
            while len(received) < len(SERVER_GREETING):
                chunk = self._sock.recv(len(SERVER_GREETING) - len(received))
                if not chunk:
                    raise HandshakeError(
                        "Handshake with the Rocket tracker failed: connection closed"
                    )
                received += chunk
        except OSError as exc:
            raise HandshakeError() from exc
        if bytes(received) != SERVER_GREETING:
            raise GreetingMismatchError(bytes(received))

    def _send(self, data: bytes) -> None:
        try:
            self._sock.sendall(data)
        except OSError as exc:
            raise TrackerIOError() from exc

    def get_track_mut(self, name: str) -> Track:
        """Return the track called ``name``, asking the tracker for it if it is new."""
        existing = self.get_track(name)
        if existing is not None:
            return existing
        encoded = name.encode("utf-8")
        if len(encoded) > _U32_MAX:
            raise ValueError("Track name too long")
        self._send(struct.pack(">BI", GET_TRACK, len(encoded)) + encoded)
        track = Track(name)
        self._tracks.append(track)
        return track

    def get_track(self, name: str) -> Optional[Track]:
        """Return an already requested track, or ``None``."""
        return next((track for track in self._tracks if track.name == name), None)

    def save_tracks(self) -> list[Track]:
        """Return the session's tracks in the order they were requested."""
        return list(self._tracks)

    def set_row(self, row: int) -> None:
        """Tell the tracker the current row."""
        if not 0 <= row <= _U32_MAX:
            raise ValueError(f"row {row} is outside the range 0..{_U32_MAX}")
        self._send(struct.pack(">BI", SET_ROW, row))

    def _recv(self, size: int) -> Optional[bytes]:
        try:
            data = self._sock.recv(size)
        except BlockingIOError:
            return None
        except OSError as exc:
            raise TrackerIOError() from exc
        if not data:
            raise TrackerIOError()
        return data

    def poll_events(self) -> Optional[Event]:
        """Read what the tracker has sent; return the next event, or ``None``.

        Keep calling this while it returns events. Key edits are applied to
        the tracks as they arrive.
        """
        while True:
            if self._pending is None:
                head = self._recv(1)
                if head is None:
                    return None
                self._buffer = bytearray(head)
                self._pending = _PAYLOAD_LEN.get(head[0], 0)
            if self._pending > 0:
                chunk = self._recv(self._pending)
                if chunk is None:
                    return None
                self._buffer += chunk
                self._pending -= len(chunk)
                continue
            return self._process()

    def _process(self) -> Optional[Event]:
        command = bytes(self._buffer)
        self._buffer = bytearray()
        self._pending = None

        cmd, payload = command[0], command[1:]
        if cmd == SET_KEY:
            index, row, value, raw = struct.unpack(">IIfB", payload)
            key = Key(row, value, Interpolation.from_raw(raw))
            self._tracks[index].set_key(key)
            return None
        if cmd == DELETE_KEY:
            index, row = struct.unpack(">II", payload)
            self._tracks[index].delete_key(row)
            return None
        if cmd == SET_ROW:
            (row,) = struct.unpack(">I", payload)
            return SetRow(row)
        if cmd == PAUSE:
            return Pause(payload[0] == 1)
        if cmd == SAVE_TRACKS:
            return SaveTracks()
        print(f"{_PREFIX}: Unknown command: {cmd}", file=sys.stderr)
        return None

    def close(self) -> None:
        """Close the connection."""
        self._sock.close()

    def __enter__(self) -> "RocketClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()