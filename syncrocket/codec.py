"""Binary serialisation of track lists.

The layout uses variable-length little-endian integers: a value below 251
is one byte; otherwise a marker byte (251, 252, 253) is followed by a
2, 4 or 8 byte integer. Floats are 4-byte little-endian IEEE singles and
interpolation modes are encoded by their variant index.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Iterable

from .interpolation import Interpolation
from .track import Key, Track

_SINGLE_BYTE_MAX = 250
_MARKER_U16 = 251
_MARKER_U32 = 252
_MARKER_U64 = 253
_MARKER_U128 = 254
_MARKER_WIDTHS = {_MARKER_U16: 2, _MARKER_U32: 4, _MARKER_U64: 8, _MARKER_U128: 16}


class DecodeError(ValueError):
    """Raised when serialised track data cannot be decoded."""


def _encode_varint(value: int, out: bytearray) -> None:
    if value <= _SINGLE_BYTE_MAX:
        out.append(value)
    elif value <= 0xFFFF:
        out.append(_MARKER_U16)
        out += value.to_bytes(2, "little")
    elif value <= 0xFFFFFFFF:
        out.append(_MARKER_U32)
        out += value.to_bytes(4, "little")
    else:
        out.append(_MARKER_U64)
        out += value.to_bytes(8, "little")


def _encode_f32(value: float, out: bytearray) -> None:
    try:
        out += struct.pack("<f", value)
    except OverflowError as exc:
        raise ValueError(f"value {value!r} does not fit a 32-bit float") from exc


def _encode_track(track: Track, out: bytearray) -> None:
    name = track.name.encode("utf-8")
    _encode_varint(len(name), out)
    out += name
    _encode_varint(len(track.keys), out)
    for key in track.keys:
        _encode_varint(key.row, out)
        _encode_f32(key.value, out)
        _encode_varint(int(key.interpolation), out)


def encode_tracks(tracks: Iterable[Track]) -> bytes:
    """Serialise a sequence of tracks to bytes."""
    tracks = list(tracks)
    out = bytearray()
    _encode_varint(len(tracks), out)
    for track in tracks:
        _encode_track(track, out)
    return bytes(out)


def write_tracks(tracks: Iterable[Track], stream: BinaryIO) -> None:
    """Serialise tracks into a writable binary stream."""
    stream.write(encode_tracks(tracks))


class _Reader:
    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def read(self, size: int) -> bytes:
        data = bytearray()
        while len(data) < size:
            chunk = self._stream.read(size - len(data))
            if not chunk:
                raise DecodeError(
                    f"unexpected end of data: needed {size} bytes, got {len(data)}"
                )
            data += chunk
        return bytes(data)

    def varint(self, bits: int) -> int:
        marker = self.read(1)[0]
        if marker <= _SINGLE_BYTE_MAX:
            return marker
        width = _MARKER_WIDTHS.get(marker)
        if width is None:
            raise DecodeError(f"invalid integer marker byte {marker}")
        if width * 8 > bits:
            raise DecodeError(
                f"integer of {width * 8} bits where at most {bits} bits were expected"
            )
        return int.from_bytes(self.read(width), "little")

    def f32(self) -> float:
        return struct.unpack("<f", self.read(4))[0]

    def string(self) -> str:
        raw = self.read(self.varint(64))
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"track name is not valid UTF-8: {exc}") from exc

    def interpolation(self) -> Interpolation:
        index = self.varint(32)
        try:
            return Interpolation(index)
        except ValueError as exc:
            raise DecodeError(f"unknown interpolation variant {index}") from exc

    def key(self) -> Key:
        row = self.varint(32)
        value = self.f32()
        return Key(row, value, self.interpolation())

    def track(self) -> Track:
        name = self.string()
        count = self.varint(64)
        return Track(name, [self.key() for _ in range(count)])


def read_tracks(stream: BinaryIO) -> list[Track]:
    """Read one serialised track list from a binary stream."""
    reader = _Reader(stream)
    count = reader.varint(64)
    return [reader.track() for _ in range(count)]


def decode_tracks(data: bytes) -> list[Track]:
    """Decode a track list from bytes; bytes after the list are ignored."""
    return read_tracks(io.BytesIO(data))