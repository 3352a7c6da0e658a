"""Checked UTF-8 encoding, decoding and conversion.

Every function validates its input and raises a ``Utf8Exception`` subclass
on malformed data. Byte sequences are bytes-like objects and positions are
byte offsets into them.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .utf8_core import (
    LEAD_OFFSET,
    SURROGATE_OFFSET,
    TRAIL_SURROGATE_MIN,
    UtfError,
    is_code_point_valid,
    is_lead_surrogate,
    is_trail,
    is_trail_surrogate,
    validate_next,
)

__all__ = [
    "Utf8Exception",
    "InvalidCodePoint",
    "InvalidUtf8",
    "InvalidUtf16",
    "NotEnoughRoom",
    "REPLACEMENT_CHARACTER",
    "append",
    "replace_invalid",
    "next_code_point",
    "peek_next",
    "prior",
    "advance",
    "distance",
    "utf16to8",
    "utf8to16",
    "utf32to8",
    "utf8to32",
]

REPLACEMENT_CHARACTER = 0xFFFD


class Utf8Exception(ValueError):
    """Base of the errors raised by the checked UTF-8 functions."""


class InvalidCodePoint(Utf8Exception):
    """A value that is not a Unicode scalar value was met."""

    def __init__(self, code_point: int) -> None:
        super().__init__("Invalid code point")
        self.code_point = code_point


class InvalidUtf8(Utf8Exception):
    """A malformed UTF-8 sequence was met; ``octet`` is its first byte."""

    def __init__(self, octet: int) -> None:
        super().__init__("Invalid UTF-8")
        self.octet = octet & 0xFF


class InvalidUtf16(Utf8Exception):
    """An unpaired or misplaced UTF-16 surrogate was met."""

    def __init__(self, unit: int) -> None:
        super().__init__("Invalid UTF-16")
        self.unit = unit & 0xFFFF


class NotEnoughRoom(Utf8Exception):
    """The input ended in the middle of a sequence."""

    def __init__(self) -> None:
        super().__init__("Not enough space")


def append(cp: int) -> bytes:
    """Encode one code point as UTF-8."""
    if cp < 0 or not is_code_point_valid(cp):
        raise InvalidCodePoint(cp)
    if cp < 0x80:
        return bytes([cp])
    if cp < 0x800:
        return bytes([(cp >> 6) | 0xC0, (cp & 0x3F) | 0x80])
    if cp < 0x10000:
        return bytes(
            [(cp >> 12) | 0xE0, ((cp >> 6) & 0x3F) | 0x80, (cp & 0x3F) | 0x80]
        )
    return bytes(
        [
            (cp >> 18) | 0xF0,
            ((cp >> 12) & 0x3F) | 0x80,
            ((cp >> 6) & 0x3F) | 0x80,
            (cp & 0x3F) | 0x80,
        ]
    )


def replace_invalid(data: bytes, replacement: int = REPLACEMENT_CHARACTER) -> bytes:
    """Copy ``data`` with each invalid sequence replaced by one ``replacement``.

    Raises NotEnoughRoom when the input ends inside a sequence.
    """
    marker = append(replacement)
    out = bytearray()
    pos = 0
    end = len(data)
    while pos != end:
        result = validate_next(data, pos)
        if result.error is UtfError.UTF8_OK:
            out += data[pos : result.pos]
            pos = result.pos
        elif result.error is UtfError.NOT_ENOUGH_ROOM:
            raise NotEnoughRoom()
        elif result.error is UtfError.INVALID_LEAD:
            out += marker
            pos += 1
        else:
            out += marker
            pos += 1
            while pos != end and is_trail(data[pos]):
                pos += 1
    return bytes(out)


def _decode(data: bytes, pos: int) -> Tuple[int, int]:
    result = validate_next(data, pos)
    if result.error is UtfError.UTF8_OK:
        return result.code_point, result.pos
    if result.error is UtfError.NOT_ENOUGH_ROOM:
        raise NotEnoughRoom()
    if result.error is UtfError.INVALID_CODE_POINT:
        raise InvalidCodePoint(result.code_point)
    raise InvalidUtf8(data[pos])


def next_code_point(data: bytes, pos: int = 0) -> Tuple[int, int]:
    """Decode the sequence at ``pos``; returns ``(code_point, next_pos)``."""
    return _decode(data, pos)


def peek_next(data: bytes, pos: int = 0) -> int:
    """Decode the code point at ``pos`` without moving past it."""
    return _decode(data, pos)[0]


def prior(data: bytes, pos: int, start: int = 0) -> Tuple[int, int]:
    """Decode the code point ending at ``pos``; returns ``(code_point, its_start)``.

    ``start`` is the lowest offset the search may reach.
    """
    if pos == start:
        raise NotEnoughRoom()
    it = pos - 1
    while is_trail(data[it]):
        if it == start:
            raise InvalidUtf8(data[it])
        it -= 1
    cp, _ = _decode(memoryview(data)[:pos], it)
    return cp, it


def advance(data: bytes, pos: int, n: int) -> int:
    """Return the offset ``n`` code points after ``pos``."""
    for _ in range(n):
        _, pos = _decode(data, pos)
    return pos


def distance(data: bytes) -> int:
    """Number of code points in ``data``."""
    count = 0
    pos = 0
    end = len(data)
    while pos < end:
        _, pos = _decode(data, pos)
        count += 1
    return count


def utf16to8(units: Iterable[int]) -> bytes:
    """Encode UTF-16 code units as UTF-8, validating surrogate pairs."""
    out = bytearray()
    it = iter(units)
    for unit in it:
        cp = unit & 0xFFFF
        if is_lead_surrogate(cp):
            try:
                trail = next(it) & 0xFFFF
            except StopIteration:
                raise InvalidUtf16(cp) from None
            if not is_trail_surrogate(trail):
                raise InvalidUtf16(trail)
            cp = (cp << 10) + trail + SURROGATE_OFFSET
        elif is_trail_surrogate(cp):
            raise InvalidUtf16(cp)
        out += append(cp)
    return bytes(out)


def utf8to16(data: bytes) -> List[int]:
    """Decode UTF-8 into UTF-16 code units."""
    units: List[int] = []
    for cp in utf8to32(data):
        if cp > 0xFFFF:
            units.append((cp >> 10) + LEAD_OFFSET)
            units.append((cp & 0x3FF) + TRAIL_SURROGATE_MIN)
        else:
            units.append(cp)
    return units


def utf32to8(code_points: Iterable[int]) -> bytes:
    """Encode code points as UTF-8."""
    return b"".join(append(cp) for cp in code_points)


def utf8to32(data: bytes) -> List[int]:
    """Decode UTF-8 into code points."""
    code_points: List[int] = []
    pos = 0
    end = len(data)
    while pos != end:
        cp, pos = _decode(data, pos)
        code_points.append(cp)
    return code_points