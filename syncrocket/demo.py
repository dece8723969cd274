"""Small command-line programs that drive the sync library.

``edit`` connects to a tracker and saves tracks on request, ``play`` replays
a saved file, and ``simple`` runs the high-level interface against a clock.
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from datetime import timedelta
from typing import Callable, Optional, Sequence, Union

from .client import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    Pause as TrackerPause,
    RocketClient,
    RocketError,
    SaveTracks,
    SetRow,
)
from .codec import DecodeError, read_tracks, write_tracks
from .player import RocketPlayer
from .simple import NotConnected, Pause, Rocket, Seek

TRACKS_FILE = "tracks.bin"

_EDIT_TRACKS = ("test", "test2", "a:test2")
_EDIT_INTERVAL = 0.032
_PLAY_INTERVAL = 0.032
_SIMPLE_INTERVAL = 0.010


class TimeSource:
    """A pausable, seekable clock standing in for a music player."""

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._start = self._clock()
        self._offset = timedelta(0)
        self._paused = False

    def get_time(self) -> timedelta:
        """Return the current playback position."""
        if self._paused:
            return self._offset
        return timedelta(seconds=self._clock() - self._start) + self._offset

    def pause(self, state: bool) -> None:
        """Pause (``True``) or resume (``False``) at the current position."""
        self._offset = self.get_time()
        self._start = self._clock()
        self._paused = state

    def seek(self, to: timedelta) -> None:
        """Move the playback position to ``to``."""
        self._offset = to
        self._start = self._clock()


def run_edit(
    tracks_file: Union[str, "os.PathLike[str]"] = TRACKS_FILE,
    address: tuple[str, int] = (DEFAULT_HOST, DEFAULT_PORT),
) -> None:
    """Edit tracks live against a tracker, saving them to ``tracks_file`` on request.

    Runs until the tracker disconnects, which raises a :class:`RocketError`.
    """
    with RocketClient.connect(*address) as rocket:
        for name in _EDIT_TRACKS:
            rocket.get_track_mut(name)

        current_row = 0
        paused = True

        while True:
            event = rocket.poll_events()
            if event is not None:
                if isinstance(event, SetRow):
                    print(f"SetRow (row: {event.row})")
                    current_row = event.row
                elif isinstance(event, TrackerPause):
                    paused = event.paused
                    value = rocket.get_track("test").get_value(float(current_row))
                    print(f"Pause (value: {value}) (row: {current_row})")
                elif isinstance(event, SaveTracks):
                    with open(tracks_file, "wb") as stream:
                        write_tracks(rocket.save_tracks(), stream)
                    print(f"Tracks saved to {os.fspath(tracks_file)}")
                print(event)

            if not paused:
                current_row += 1
                rocket.set_row(current_row)

            time.sleep(_EDIT_INTERVAL)


def run_play(
    tracks_file: Union[str, "os.PathLike[str]"] = TRACKS_FILE,
    track_name: str = "test",
    rows: Optional[int] = None,
) -> None:
    """Print the values of one saved track row by row; ``rows=None`` plays forever."""
    with open(tracks_file, "rb") as stream:
        player = RocketPlayer(read_tracks(stream))
    print(f"Tracks loaded from {os.fspath(tracks_file)}")

    track = player.get_track(track_name)
    if track is None:
        raise LookupError(f"Track {track_name} doesn't exist in {os.fspath(tracks_file)}")

    current_row = 0
    while rows is None or current_row < rows:
        print(f"value: {track.get_value(float(current_row))} (row: {current_row})")
        current_row += 1
        time.sleep(_PLAY_INTERVAL)


def run_simple(
    tracks_file: Union[str, "os.PathLike[str]"] = TRACKS_FILE,
    bpm: float = 60.0,
) -> None:
    """Drive the high-level interface from a clock, printing the ``test`` track."""
    rocket = Rocket(tracks_file, bpm)
    time_source = TimeSource()
    previous_print_time = timedelta(0)

    while True:
        not_connected = False
        while True:
            try:
                event = rocket.poll_events()
            except (OSError, ValueError):
                event = None
            if event is None:
                break
            if isinstance(event, Seek):
                time_source.seek(event.to)
            elif isinstance(event, Pause):
                time_source.pause(event.paused)
            elif isinstance(event, NotConnected):
                not_connected = True
                break

        if not_connected:
            time.sleep(_SIMPLE_INTERVAL)
            continue

        current = time_source.get_time()
        rocket.set_time(current)

        if current != previous_print_time:
            print(f"{current}: test = {rocket.get_value('test')}")
        previous_print_time = current
        time.sleep(_SIMPLE_INTERVAL)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="syncrocket", description="Edit, play back or follow sync tracks."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    edit = commands.add_parser("edit", help="edit tracks live against a tracker")
    edit.add_argument("--file", default=TRACKS_FILE, help="where to save tracks")
    edit.add_argument("--host", default=DEFAULT_HOST, help="tracker host")
    edit.add_argument("--port", type=int, default=DEFAULT_PORT, help="tracker port")

    play = commands.add_parser("play", help="print values from saved tracks")
    play.add_argument("--file", default=TRACKS_FILE, help="saved tracks")
    play.add_argument("--track", default="test", help="track to print")
    play.add_argument("--rows", type=int, default=None, help="rows to play (default: forever)")

    simple = commands.add_parser("simple", help="run the high-level interface")
    simple.add_argument("--file", default=TRACKS_FILE, help="where to save tracks")
    simple.add_argument("--bpm", type=float, default=60.0, help="beats per minute")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one of the programs; return the process exit status."""
    args = _build_parser().parse_args(argv)
    try:
        if args.command == "edit":
            run_edit(args.file, (args.host, args.port))
        elif args.command == "play":
            run_play(args.file, args.track, args.rows)
        else:
            run_simple(args.file, args.bpm)
    except KeyboardInterrupt:
        return 0
    except (RocketError, OSError, DecodeError, LookupError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())