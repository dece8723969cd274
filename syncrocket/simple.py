"""A high-level sync interface that works both live against a tracker and from a saved file.

In client mode every failure is printed to stderr and the connection to the
tracker is re-established as long as :meth:`Rocket.poll_events` keeps being
called. In player mode tracks are loaded from a file and never change.
Reconnecting wipes the track state held by the client.
"""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass
from datetime import timedelta
from time import monotonic
from typing import BinaryIO, Optional, Union

from .client import DEFAULT_HOST, DEFAULT_PORT, RocketClient, RocketError
from .client import Pause as _TrackerPause
from .client import SaveTracks as _TrackerSaveTracks
from .client import SetRow as _TrackerSetRow
from .codec import DecodeError, read_tracks, write_tracks
from .player import RocketPlayer

SECS_PER_MINUTE = 60.0
ROWS_PER_BEAT = 8.0
PREFIX = "rocket"

_RECONNECT_INTERVAL = 1.0
_U32_MAX = 0xFFFFFFFF


def print_msg(prefix: str, msg: str) -> None:
    """Print ``msg`` to stderr, prefixed with ``prefix: ``."""
    print(f"{prefix}: {msg}", file=sys.stderr)


def _source_of(error: BaseException) -> Optional[BaseException]:
    if error.__cause__ is not None:
        return error.__cause__
    if error.__suppress_context__:
        return None
    return error.__context__


def print_errors(prefix: str, error: BaseException) -> None:
    """Print an error and the chain of errors that caused it to stderr."""
    print(f"{prefix}: {error}", file=sys.stderr)
    seen = {id(error)}
    cause = _source_of(error)
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        print(f"    Caused by: {cause}", file=sys.stderr)
        cause = _source_of(cause)


@dataclass(frozen=True)
class Seek:
    """The tracker moved to another row; seek the time source to ``to``."""

    to: timedelta


@dataclass(frozen=True)
class Pause:
    """The tracker paused (``True``) or resumed (``False``)."""

    paused: bool


@dataclass(frozen=True)
class NotConnected:
    """No tracker is connected; later polls will try to reconnect."""


Event = Union[Seek, Pause, NotConnected]


def _saturating_u32(row: float) -> int:
    if math.isnan(row) or row <= 0:
        return 0
    if row >= _U32_MAX:
        return _U32_MAX
    return int(row)


def _seconds(time: Union[timedelta, float]) -> float:
    if isinstance(time, timedelta):
        return time.total_seconds()
    return float(time)


class Rocket:
    """Provides sync values, either from a live tracker or from a saved file."""

    def __init__(
        self,
        path: Union[str, "os.PathLike[str]"],
        bpm: float,
        player: bool = False,
        address: tuple[str, int] = (DEFAULT_HOST, DEFAULT_PORT),
    ) -> None:
        """Connect to a tracker, or with ``player`` load the tracks saved at ``path``.

        In player mode, failure to open or decode the file is printed and re-raised.
        """
        self._setup(path, bpm, player, address)
        if player:
            self._playback = self._load(path)
        else:
            self._client = self._connect()
            self._connected = self._client is not None
            self._connection_attempted = monotonic()

    def _setup(self, path, bpm: float, player: bool, address: tuple[str, int]) -> None:
        self._path = path
        self._bps = bpm / SECS_PER_MINUTE
        self._row = 0.0
        self._player_mode = player
        self._address = (address[0], address[1])
        self._tracker_row = 0
        self._connected = False
        self._connection_attempted = monotonic()
        self._client: Optional[RocketClient] = None
        self._playback: Optional[RocketPlayer] = None

    @classmethod
    def from_stream(cls, stream: BinaryIO, bpm: float) -> "Rocket":
        """Build a player-mode instance from serialised tracks in a binary stream."""
        playback = RocketPlayer(read_tracks(stream))
        rocket = cls.__new__(cls)
        rocket._setup("release", bpm, True, (DEFAULT_HOST, DEFAULT_PORT))
        rocket._playback = playback
        return rocket

    @staticmethod
    def _load(path) -> RocketPlayer:
        try:
            stream = open(path, "rb")
        except OSError as exc:
            print_msg(PREFIX, f"Failed to open {os.fspath(path)}")
            print_errors(PREFIX, exc)
            raise
        with stream:
            try:
                tracks = read_tracks(stream)
            except (DecodeError, OSError) as exc:
                print_msg(PREFIX, f"Failed to read {os.fspath(path)}")
                print_errors(PREFIX, exc)
                raise
        return RocketPlayer(tracks)

    def _connect(self) -> Optional[RocketClient]:
        print_msg(PREFIX, "Connecting...")
        try:
            return RocketClient.connect(*self._address)
        except RocketError:
            return None

    def get_value(self, track: str) -> float:
        """Return the value of ``track`` at the time given to :meth:`set_time`.

        In client mode this is ``0.0`` while no tracker is connected. In player
        mode a missing track is reported and raises :class:`LookupError`.
        """
        if self._player_mode:
            found = self._playback.get_track(track)
            if found is None:
                print_msg(PREFIX, f"Track {track} doesn't exist in {os.fspath(self._path)}")
                raise LookupError(f"{PREFIX}: Can't recover")
            return found.get_value(self._row)

        if self._client is None:
            self._connected = False
            return 0.0
        try:
            found = self._client.get_track_mut(track)
        except RocketError:
            self._connected = False
            return 0.0
        return found.get_value(self._row)

    def set_time(self, time: Union[timedelta, float]) -> None:
        """Update the current time (a ``timedelta`` or seconds) and keep the tracker in sync."""
        beat = _seconds(time) * self._bps
        self._row = beat * ROWS_PER_BEAT

        if self._player_mode:
            return
        row = _saturating_u32(self._row)
        if not self._connected or row == self._tracker_row:
            return
        if self._client is None:
            self._connected = False
            return
        try:
            self._client.set_row(row)
        except RocketError as exc:
            print_errors(PREFIX, exc)
            self._connected = False
        else:
            self._tracker_row = row

    def poll_events(self) -> Optional[Event]:
        """Return the next event from the tracker, or ``None`` when there is none.

        Save requests from the tracker are handled here; a failure to write
        the file is printed and re-raised. In player mode this returns ``None``.
        """
        if self._player_mode:
            return None

        while True:
            if not self._connected or self._client is None:
                if monotonic() - self._connection_attempted < _RECONNECT_INTERVAL:
                    return NotConnected()
                self._connection_attempted = monotonic()
                client = self._connect()
                if client is None:
                    return NotConnected()
                if self._client is not None:
                    self._client.close()
                self._client = client
                self._connected = True

            try:
                event = self._client.poll_events()
            except RocketError as exc:
                print_errors(PREFIX, exc)
                self._connected = False
                continue

            if event is None:
                return None
            if isinstance(event, _TrackerSetRow):
                self._tracker_row = event.row
                beat = event.row / ROWS_PER_BEAT
                return Seek(timedelta(seconds=beat / self._bps))
            if isinstance(event, _TrackerPause):
                return Pause(event.paused)
            if isinstance(event, _TrackerSaveTracks):
                self.save_tracks()
                continue

    def save_tracks(self) -> None:
        """Write the session's tracks to the path given at construction.

        Failures are printed and re-raised. In player mode this does nothing.
        """
        if self._player_mode:
            return
        path_text = os.fspath(self._path)
        if self._client is None:
            print_msg(PREFIX, f"Did not connect, not able to save {path_text}")
            return
        try:
            stream = open(self._path, "wb")
        except OSError as exc:
            print_msg(PREFIX, f"Failed to open {path_text}")
            print_errors(PREFIX, exc)
            raise
        with stream:
            try:
                write_tracks(self._client.save_tracks(), stream)
            except (OSError, ValueError) as exc:
                print_msg(PREFIX, f"Failed to write to {path_text}")
                print_errors(PREFIX, exc)
                raise
        print_msg(PREFIX, f"Tracks saved to {path_text}")