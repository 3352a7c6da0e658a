"""Speech synthesis front end built around an external mbrola process, with UTF-8 helpers."""

__version__ = "0.2.0"

__all__ = [
    "constants",
    "settings",
    "synthesizer",
    "mbrowrap",
    "mbrola",
    "utf8_core",
    "utf8_checked",
]