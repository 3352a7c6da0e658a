"""Public enumerations, error strings and version information of the engine."""

from __future__ import annotations

from enum import IntEnum

__all__ = [
    "ErrorCode",
    "Param",
    "CallbackReturn",
    "CallbackMessage",
    "Voice",
    "error_string",
    "version",
]

VERSION = "Version 0.2"


class ErrorCode(IntEnum):
    """Error codes reported by the engine."""

    NONE = 0
    LOADING = 1
    LOAD_USER_DIC = 2
    NO_PYTHON = 3


class Param(IntEnum):
    """Adjustable engine parameters."""

    PITCH = 0
    VOLUME = 1
    RATE = 2
    READ_PUNCS = 3
    FREQUENCY = 4


class CallbackReturn(IntEnum):
    """Values a client callback may return."""

    DATA_NOT_PROCESSED = 0
    DATA_PROCESSED = 1
    DATA_ABORT = 2


class CallbackMessage(IntEnum):
    """Kinds of messages delivered to a client callback."""

    WAVE_BUFFER = 0
    TEXT_MESSAGE = 1
    TEXT_TAGS = 2
    EVENT_WORD_BOUNDARY = 3
    EVENT_SENTENCE_BOUNDARY = 4
    EVENT_BOOKMARK = 5


class Voice(IntEnum):
    """Voices the engine can speak with."""

    MBROLA_MALE = 0
    MBROLA_FEMALE = 1
    ESPEAK_MALE = 2
    ESPEAK_FEMALE = 3
    COUNT = 4


_ERROR_STRINGS = {
    ErrorCode.NONE: "No Error.",
    ErrorCode.LOADING: "Error loading loading failed",
    ErrorCode.LOAD_USER_DIC: "Error loading user lexicon failed",
    ErrorCode.NO_PYTHON: "Error loading python3.7",
}


def error_string(error_code: int) -> str:
    """Return the human readable message for an error code.

    Raises ValueError for a code the engine does not define.
    """
    try:
        return _ERROR_STRINGS[ErrorCode(error_code)]
    except ValueError:
        raise ValueError(f"unknown error code: {error_code!r}") from None


def version() -> str:
    """Return the engine version string."""
    return VERSION