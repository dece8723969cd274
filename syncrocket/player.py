"""Read-only playback of previously saved tracks."""

from __future__ import annotations

from typing import Iterable, Optional

from .track import Track


class RocketPlayer:
    """Looks up saved tracks by name; a later track replaces an earlier one of the same name."""

    def __init__(self, tracks: Iterable[Track]) -> None:
        self._tracks = {track.name: track for track in tracks}

    def get_track(self, name: str) -> Optional[Track]:
        """Return the track called ``name``, or ``None`` if there is none."""
        return self._tracks.get(name)