"""UTF-8 validation and decoding primitives.

The checked functions report problems through ``UtfError`` values; the
``unchecked_*`` functions assume well-formed input and do no validation.
Byte sequences are any bytes-like objects; positions are byte offsets.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, NamedTuple, Tuple

__all__ = [
    "UtfError",
    "Decoded",
    "BOM",
    "CODE_POINT_MAX",
    "LEAD_SURROGATE_MIN",
    "LEAD_SURROGATE_MAX",
    "TRAIL_SURROGATE_MIN",
    "TRAIL_SURROGATE_MAX",
    "LEAD_OFFSET",
    "SURROGATE_OFFSET",
    "is_trail",
    "is_lead_surrogate",
    "is_trail_surrogate",
    "is_surrogate",
    "is_code_point_valid",
    "sequence_length",
    "is_overlong_sequence",
    "validate_next",
    "find_invalid",
    "is_valid",
    "starts_with_bom",
    "unchecked_append",
    "unchecked_next",
    "unchecked_prior",
    "unchecked_distance",
    "unchecked_utf16to8",
    "unchecked_utf8to16",
    "unchecked_utf32to8",
    "unchecked_utf8to32",
]

LEAD_SURROGATE_MIN = 0xD800
LEAD_SURROGATE_MAX = 0xDBFF
TRAIL_SURROGATE_MIN = 0xDC00
TRAIL_SURROGATE_MAX = 0xDFFF
LEAD_OFFSET = LEAD_SURROGATE_MIN - (0x10000 >> 10)
SURROGATE_OFFSET = 0x10000 - (LEAD_SURROGATE_MIN << 10) - TRAIL_SURROGATE_MIN

CODE_POINT_MAX = 0x10FFFF

BOM = b"\xef\xbb\xbf"

# Bits of the lead octet that carry payload, by sequence length.
_LEAD_MASKS = {1: 0xFF, 2: 0x1F, 3: 0x0F, 4: 0x07}


class UtfError(Enum):
    """Outcome of decoding one UTF-8 sequence."""

    UTF8_OK = 0
    NOT_ENOUGH_ROOM = 1
    INVALID_LEAD = 2
    INCOMPLETE_SEQUENCE = 3
    OVERLONG_SEQUENCE = 4
    INVALID_CODE_POINT = 5


class Decoded(NamedTuple):
    """Result of ``validate_next``.

    ``pos`` is the offset after the sequence on success and the original
    offset on failure. ``code_point`` holds whatever was decoded, which is
    meaningful for ``UTF8_OK`` and ``INVALID_CODE_POINT``.
    """

    error: UtfError
    code_point: int
    pos: int


def is_trail(octet: int) -> bool:
    """True if ``octet`` is a continuation byte (10xxxxxx)."""
    return ((octet & 0xFF) >> 6) == 0x2


def is_lead_surrogate(cp: int) -> bool:
    """True if ``cp`` is a UTF-16 high surrogate."""
    return LEAD_SURROGATE_MIN <= cp <= LEAD_SURROGATE_MAX


def is_trail_surrogate(cp: int) -> bool:
    """True if ``cp`` is a UTF-16 low surrogate."""
    return TRAIL_SURROGATE_MIN <= cp <= TRAIL_SURROGATE_MAX


def is_surrogate(cp: int) -> bool:
    """True if ``cp`` lies in the surrogate range."""
    return LEAD_SURROGATE_MIN <= cp <= TRAIL_SURROGATE_MAX


def is_code_point_valid(cp: int) -> bool:
    """True if ``cp`` is a Unicode scalar value."""
    return cp <= CODE_POINT_MAX and not is_surrogate(cp)


def sequence_length(lead: int) -> int:
    """Length of the sequence a lead octet starts, or 0 for an invalid lead."""
    lead &= 0xFF
    if lead < 0x80:
        return 1
    if (lead >> 5) == 0x6:
        return 2
    if (lead >> 4) == 0xE:
        return 3
    if (lead >> 3) == 0x1E:
        return 4
    return 0


def is_overlong_sequence(cp: int, length: int) -> bool:
    """True if ``cp`` was encoded with more octets than it needs."""
    if cp < 0x80:
        return length != 1
    if cp < 0x800:
        return length != 2
    if cp < 0x10000:
        return length != 3
    return False


def validate_next(data: bytes, pos: int = 0) -> Decoded:
    """Decode and validate the sequence starting at ``pos``."""
    end = len(data)
    if pos >= end:
        return Decoded(UtfError.NOT_ENOUGH_ROOM, 0, pos)

    lead = data[pos] & 0xFF
    length = sequence_length(lead)
    if length == 0:
        return Decoded(UtfError.INVALID_LEAD, 0, pos)

    cp = lead & _LEAD_MASKS[length]
    for it in range(pos + 1, pos + length):
        if it >= end:
            return Decoded(UtfError.NOT_ENOUGH_ROOM, cp, pos)
        octet = data[it]
        if not is_trail(octet):
            return Decoded(UtfError.INCOMPLETE_SEQUENCE, cp, pos)
        cp = (cp << 6) | (octet & 0x3F)

    if not is_code_point_valid(cp):
        return Decoded(UtfError.INVALID_CODE_POINT, cp, pos)
    if is_overlong_sequence(cp, length):
        return Decoded(UtfError.OVERLONG_SEQUENCE, cp, pos)
    return Decoded(UtfError.UTF8_OK, cp, pos + length)


def find_invalid(data: bytes) -> int:
    """Offset of the first invalid sequence, or ``len(data)`` if there is none."""
    pos = 0
    end = len(data)
    while pos != end:
        result = validate_next(data, pos)
        if result.error is not UtfError.UTF8_OK:
            return pos
        pos = result.pos
    return pos


def is_valid(data: bytes) -> bool:
    """True if ``data`` is entirely valid UTF-8."""
    return find_invalid(data) == len(data)


def starts_with_bom(data: bytes) -> bool:
    """True if ``data`` begins with the UTF-8 byte order mark."""
    return bytes(data[:3]) == BOM


def unchecked_append(cp: int) -> bytes:
    """Encode ``cp`` as UTF-8 without checking that it is valid."""
    if cp < 0x80:
        return bytes([cp & 0xFF])
    if cp < 0x800:
        return bytes([((cp >> 6) | 0xC0) & 0xFF, (cp & 0x3F) | 0x80])
    if cp < 0x10000:
        return bytes(
            [
                ((cp >> 12) | 0xE0) & 0xFF,
                ((cp >> 6) & 0x3F) | 0x80,
                (cp & 0x3F) | 0x80,
            ]
        )
    return bytes(
        [
            ((cp >> 18) | 0xF0) & 0xFF,
            ((cp >> 12) & 0x3F) | 0x80,
            ((cp >> 6) & 0x3F) | 0x80,
            (cp & 0x3F) | 0x80,
        ]
    )


def unchecked_next(data: bytes, pos: int = 0) -> Tuple[int, int]:
    """Decode the sequence at ``pos``; returns ``(code_point, next_pos)``.

    An invalid lead octet is returned as-is and consumes one byte.
    """
    lead = data[pos] & 0xFF
    length = sequence_length(lead)
    if length <= 1:
        return lead, pos + 1
    cp = lead & _LEAD_MASKS[length]
    for octet in data[pos + 1 : pos + length]:
        cp = (cp << 6) | (octet & 0x3F)
    if pos + length > len(data):
        raise IndexError("truncated UTF-8 sequence")
    return cp, pos + length


def unchecked_prior(data: bytes, pos: int) -> Tuple[int, int]:
    """Decode the sequence ending before ``pos``; returns ``(code_point, start)``."""
    it = pos - 1
    while it >= 0 and is_trail(data[it]):
        it -= 1
    if it < 0:
        raise IndexError("no lead octet before position")
    cp, _ = unchecked_next(data, it)
    return cp, it


def unchecked_distance(data: bytes) -> int:
    """Number of code points in ``data``."""
    count = 0
    pos = 0
    end = len(data)
    while pos < end:
        _, pos = unchecked_next(data, pos)
        count += 1
    return count


def unchecked_utf16to8(units: Iterable[int]) -> bytes:
    """Encode UTF-16 code units as UTF-8, joining surrogate pairs."""
    out = bytearray()
    it = iter(units)
    for unit in it:
        cp = unit & 0xFFFF
        if is_lead_surrogate(cp):
            try:
                trail = next(it) & 0xFFFF
            except StopIteration:
                raise IndexError("lead surrogate at end of input") from None
            cp = (cp << 10) + trail + SURROGATE_OFFSET
        out += unchecked_append(cp)
    return bytes(out)


def unchecked_utf8to16(data: bytes) -> List[int]:
    """Decode UTF-8 into UTF-16 code units."""
    units: List[int] = []
    pos = 0
    end = len(data)
    while pos < end:
        cp, pos = unchecked_next(data, pos)
        if cp > 0xFFFF:
            units.append(((cp >> 10) + LEAD_OFFSET) & 0xFFFF)
            units.append(((cp & 0x3FF) + TRAIL_SURROGATE_MIN) & 0xFFFF)
        else:
            units.append(cp)
    return units


def unchecked_utf32to8(code_points: Iterable[int]) -> bytes:
    """Encode code points as UTF-8."""
    return b"".join(unchecked_append(cp) for cp in code_points)


def unchecked_utf8to32(data: bytes) -> List[int]:
    """Decode UTF-8 into code points."""
    code_points: List[int] = []
    pos = 0
    end = len(data)
    while pos < end:
        cp, pos = unchecked_next(data, pos)
        code_points.append(cp)
    return code_points