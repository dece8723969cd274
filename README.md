# syncrocket

A client and a file player for the Rocket sync tracker. Connect to a running
tracker, request named tracks, edit their keyframes live in the tracker and read
interpolated values while your production renders. When you are done, save the
tracks to a file and play them back without a tracker.

## Installation

```console
pip install .
```

The package has no runtime dependencies. Install the `test` extra to run the
tests with pytest.

## Concepts

- `syncrocket.interpolation.Interpolation` is an `IntEnum` with `STEP`,
  `LINEAR`, `SMOOTH` and `RAMP`. `Interpolation.from_raw(raw)` maps a protocol
  byte to a mode (unknown values become `STEP`); `interpolate(t)` gives the
  curve factor for `t` in `[0, 1]`.
- `syncrocket.track.Key` is a frozen dataclass of `row` (0 to 2**32 - 1),
  `value` and `interpolation`.
- `syncrocket.track.Track` is a named list of keys kept sorted by row.
  `set_key(key)` inserts or replaces the key on that row, `delete_key(row)`
  removes one if present, and `get_value(row)` accepts fractional rows: before
  the first key it returns the first value, after the last key the last value,
  and `0.0` for a track with no keys.
- `syncrocket.client.RocketClient` talks to a tracker over TCP
  (`localhost`, port `1338` by default). `poll_events()` applies key edits as
  they arrive and returns `SetRow`, `Pause` or `SaveTracks` events, or `None`
  when nothing is waiting. Failures raise subclasses of `RocketError`:
  `ConnectError`, `HandshakeError`, `GreetingMismatchError`,
  `NonblockingError` and `TrackerIOError`.
- `syncrocket.player.RocketPlayer` holds saved tracks for lookup by name.
- `syncrocket.codec` turns a list of tracks into bytes and back with
  `encode_tracks` / `decode_tracks`, or to and from a binary stream with
  `write_tracks` / `read_tracks`. Malformed data raises `DecodeError`.
- `syncrocket.simple.Rocket` wraps it all: it reconnects on its own, converts
  between time and rows from a BPM (8 rows per beat), saves the tracks to its
  file when the tracker asks, and in player mode reads them from that file
  instead.

## Low-level client

```python
from syncrocket.client import RocketClient, SetRow, Pause, SaveTracks
from syncrocket.codec import write_tracks

with RocketClient.connect("localhost", 1338) as rocket:
    rocket.get_track_mut("camera:x")
    row, paused = 0, True
    while True:
        while (event := rocket.poll_events()) is not None:
            if isinstance(event, SetRow):
                row = event.row
            elif isinstance(event, Pause):
                paused = event.paused
            elif isinstance(event, SaveTracks):
                with open("tracks.bin", "wb") as f:
                    write_tracks(rocket.save_tracks(), f)
        if not paused:
            row += 1
            rocket.set_row(row)
        x = rocket.get_track("camera:x").get_value(row)
```

## Playback

```python
from syncrocket.codec import read_tracks
from syncrocket.player import RocketPlayer

with open("tracks.bin", "rb") as f:
    player = RocketPlayer(read_tracks(f))
print(player.get_track("camera:x").get_value(123.5))
```

## Simple API

```python
from datetime import timedelta
from syncrocket.simple import Rocket, Seek, Pause, NotConnected

rocket = Rocket("tracks.bin", 120.0)
music_time = timedelta(0)
while True:
    while (event := rocket.poll_events()) is not None:
        if isinstance(event, NotConnected):
            break
        if isinstance(event, Seek):
            music_time = event.to
        # on Pause, pause or resume your music player
    rocket.set_time(music_time)
    value = rocket.get_value("camera:x")
```

`set_time` takes a `timedelta` or a number of seconds. While no tracker is
connected, `poll_events()` returns `NotConnected` and tries to reconnect at most
once a second, and `get_value` returns `0.0`. If saving the file fails, the error
is printed to stderr and raised from `poll_events()` or `save_tracks()`.

Pass `player=True` to load `tracks.bin` for playback instead of connecting; a
track that is not in the file is reported and raises `LookupError`. To load
from any binary stream, use `Rocket.from_stream(stream, bpm)`.

`print_msg(prefix, msg)` and `print_errors(prefix, error)` write messages and
error chains to stderr in the same form the package uses.

## Command line

The `syncrocket` command runs small demo programs:

```console
syncrocket edit   [--file tracks.bin] [--host localhost] [--port 1338]
syncrocket play   [--file tracks.bin] [--track test] [--rows N]
syncrocket simple [--file tracks.bin] [--bpm 60]
```

- `edit` connects to a tracker, requests the tracks `test`, `test2` and
  `a:test2`, advances the row while unpaused and saves the tracks when the
  tracker asks.
- `play` prints the values of one saved track row by row, forever unless
  `--rows` is given.
- `simple` drives `simple.Rocket` from a built-in clock and prints the `test`
  track.

The same programs are available as `run_edit`, `run_play` and `run_simple` in
`syncrocket.demo`, alongside the `TimeSource` clock that `simple` uses.

## What this package does not do

It does not include a tracker: editing requires a Rocket tracker running
separately and listening on the given address. Reconnecting starts a fresh
session with no keys, so save in the tracker before you close and reopen it.