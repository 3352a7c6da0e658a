import struct

import pytest

from tihu.utf8_core import (
    BOM,
    CODE_POINT_MAX,
    UtfError,
    find_invalid,
    is_code_point_valid,
    is_lead_surrogate,
    is_overlong_sequence,
    is_surrogate,
    is_trail,
    is_trail_surrogate,
    is_valid,
    sequence_length,
    starts_with_bom,
    unchecked_append,
    unchecked_distance,
    unchecked_next,
    unchecked_prior,
    unchecked_utf8to16,
    unchecked_utf8to32,
    unchecked_utf16to8,
    unchecked_utf32to8,
    validate_next,
)

SAMPLE = "a\u00e9\u20ac\U0001f600 \u0633\u0644\u0627\u0645"
SAMPLE_CODE_POINTS = [ord(c) for c in SAMPLE]
INTERESTING = [0x0, 0x41, 0x7F, 0x80, 0x7FF, 0x800, 0xFFFF, 0x10000, 0x1F600, CODE_POINT_MAX]


def _utf16_units(text):
    raw = text.encode("utf-16-le")
    return list(struct.unpack(f"<{len(raw) // 2}H", raw))


def test_euro_sign_encoding():
    assert unchecked_append(0x20AC) == b"\xe2\x82\xac"


def test_bom_detection():
    assert BOM == b"\xef\xbb\xbf"
    assert starts_with_bom(BOM + b"abc")
    assert not starts_with_bom(b"\xef\xbb")
    assert not starts_with_bom(b"abc")


@pytest.mark.parametrize("cp", INTERESTING)
def test_append_matches_standard_encoding(cp):
    assert unchecked_append(cp) == chr(cp).encode("utf-8", "surrogatepass")


@pytest.mark.parametrize("cp", INTERESTING)
def test_validate_next_round_trip(cp):
    encoded = chr(cp).encode("utf-8")
    result = validate_next(encoded, 0)
    assert result.error is UtfError.UTF8_OK
    assert result.code_point == cp
    assert result.pos == len(encoded)
    assert sequence_length(encoded[0]) == len(encoded)
    assert not is_overlong_sequence(cp, len(encoded))


def test_trail_and_surrogate_predicates():
    assert is_trail(0x80) and is_trail(0xBF)
    assert not is_trail(0x7F) and not is_trail(0xC0)
    assert is_lead_surrogate(0xD800) and not is_lead_surrogate(0xDC00)
    assert is_trail_surrogate(0xDFFF) and not is_trail_surrogate(0xDBFF)
    assert is_surrogate(0xDABC)
    assert not is_code_point_valid(0xD800)
    assert not is_code_point_valid(CODE_POINT_MAX + 1)
    assert is_code_point_valid(CODE_POINT_MAX)


def test_invalid_lead_sequence_length_is_zero():
    assert sequence_length(0xFF) == 0
    assert sequence_length(0x80) == 0


@pytest.mark.parametrize(
    "data, error",
    [
        (b"\xff", UtfError.INVALID_LEAD),
        (b"\x80", UtfError.INVALID_LEAD),
        (b"\xe2\x82", UtfError.NOT_ENOUGH_ROOM),
        (b"\xe2\x41\x41", UtfError.INCOMPLETE_SEQUENCE),
        (b"\xc0\x80", UtfError.OVERLONG_SEQUENCE),
        (b"\xe0\x80\xaf", UtfError.OVERLONG_SEQUENCE),
        (b"\xed\xa0\x80", UtfError.INVALID_CODE_POINT),
        (b"\xf4\x90\x80\x80", UtfError.INVALID_CODE_POINT),
        (b"", UtfError.NOT_ENOUGH_ROOM),
    ],
)
def test_validate_next_errors_keep_position(data, error):
    result = validate_next(data, 0)
    assert result.error is error
    assert result.pos == 0


def test_find_invalid_and_is_valid():
    good = SAMPLE.encode("utf-8")
    assert find_invalid(good) == len(good)
    assert is_valid(good)
    bad = good + b"\xff" + good
    assert find_invalid(bad) == bad.index(b"\xff")
    assert not is_valid(bad)


def test_unchecked_next_walks_all_code_points():
    data = SAMPLE.encode("utf-8")
    pos = 0
    decoded = []
    while pos < len(data):
        cp, pos = unchecked_next(data, pos)
        decoded.append(cp)
    assert decoded == SAMPLE_CODE_POINTS
    assert pos == len(data)


def test_unchecked_prior_walks_backwards():
    data = SAMPLE.encode("utf-8")
    pos = len(data)
    decoded = []
    while pos > 0:
        cp, pos = unchecked_prior(data, pos)
        decoded.append(cp)
    assert decoded == list(reversed(SAMPLE_CODE_POINTS))


def test_unchecked_prior_without_lead_raises():
    with pytest.raises(IndexError):
        unchecked_prior(b"\x80\x80", 2)


def test_unchecked_distance_counts_code_points():
    assert unchecked_distance(SAMPLE.encode("utf-8")) == len(SAMPLE)
    assert unchecked_distance(b"") == 0


def test_utf32_round_trip():
    encoded = unchecked_utf32to8(SAMPLE_CODE_POINTS)
    assert encoded == SAMPLE.encode("utf-8")
    assert unchecked_utf8to32(encoded) == SAMPLE_CODE_POINTS


def test_utf16_round_trip():
    units = _utf16_units(SAMPLE)
    encoded = unchecked_utf16to8(units)
    assert encoded == SAMPLE.encode("utf-8")
    assert unchecked_utf8to16(encoded) == units


def test_utf16_surrogate_pair_joined():
    units = _utf16_units("\U0001f600")
    assert len(units) == 2
    assert unchecked_utf16to8(units) == "\U0001f600".encode("utf-8")


def test_utf16_lone_lead_surrogate_at_end_raises():
    with pytest.raises(IndexError):
        unchecked_utf16to8([0xD800])