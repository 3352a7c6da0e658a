# tihu

A speech synthesis front end. It runs an external `mbrola` program, feeds it
phoneme lines, reads 16-bit audio back, resamples that audio to the rate set
in your settings and hands it, together with word-boundary events, to a
callback of yours.

It also carries a set of strict and lenient UTF-8 helpers.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

Producing sound needs an `mbrola` executable and a voice database. By
default `MbrolaProcess` runs `./mbrola`, and `MbrolaSynthesizer.load(name)`
loads the voice at `./data/<name>`. Talking to the process relies on
`/proc/<pid>/stat` and `select.poll`, so it works on Linux.

## Modules

- `tihu.constants`: the enums `ErrorCode`, `Param`, `CallbackReturn`,
  `CallbackMessage` and `Voice`; `error_string(code)`, which raises
  `ValueError` for an unknown code; and `version()`, which returns
  `"Version 0.2"`.
- `tihu.settings`: the `Settings` dataclass with `pitch`, `rate`, `volume`,
  `frequency` and `debug_mode`. Defaults: pitch 0, rate 0, volume 10,
  frequency 22050, debug mode off.
- `tihu.synthesizer`: `resample(samples, from_rate, to_rate)`, which returns
  a new int16 NumPy array, and the abstract `Synthesizer` base class with
  `fire_word_boundary(offset, length)` and `play_samples(samples)`.
- `tihu.mbrowrap`: `MbrolaProcess`, which starts and talks to the `mbrola`
  program (`init`, `write`, `flush`, `read`, `reset`, `set_volume_ratio`,
  `last_error`, `reset_error`, `close`, and use as a context manager);
  `MbrolaError`, `MbrolaState` and `parse_wav_header(header)`.
- `tihu.mbrola`: `MbrolaLib`, a control layer over an `MbrolaProcess`, and
  `MbrolaSynthesizer`; plus the conversions `pitch_factor()`, `rate_factor()`
  and `volume_ratio()` from settings values to mbrola ratios.
- `tihu.utf8_core`: validation and lenient decoding (`validate_next`,
  `find_invalid`, `is_valid`, `starts_with_bom`, `unchecked_next`,
  `unchecked_utf8to32`, ...). `validate_next` returns a `Decoded` tuple
  holding a `UtfError`, the code point and the next position.
- `tihu.utf8_checked`: strict conversions (`append`, `next_code_point`,
  `prior`, `advance`, `distance`, `utf8to16`, `utf16to8`, `utf8to32`,
  `utf32to8`, `replace_invalid`) that raise `InvalidUtf8`,
  `InvalidCodePoint`, `InvalidUtf16` or `NotEnoughRoom`, all subclasses of
  `Utf8Exception` (itself a `ValueError`).

## Callback

The callback is called as `callback(message, payload, length)`:

- `CallbackMessage.WAVE_BUFFER`: `payload` is an int16 NumPy array of
  samples at `settings.frequency`, `length` is its size in bytes. Audio whose
  rate differs from `settings.frequency` is resampled and delivered in
  chunks of at most 4096 samples.
- `CallbackMessage.EVENT_WORD_BOUNDARY`: `payload` is the word's character
  offset, `length` its length in characters.

Returning `CallbackReturn.DATA_ABORT` stops playback; any other return value
lets it continue.

## Example

```python
from tihu.constants import CallbackMessage, CallbackReturn
from tihu.mbrola import MbrolaSynthesizer
from tihu.settings import Settings

chunks = []

def on_event(message, payload, length):
    if message is CallbackMessage.WAVE_BUFFER:
        chunks.append(payload)
    return CallbackReturn.DATA_PROCESSED

settings = Settings()
with MbrolaSynthesizer(settings, on_event) as synth:
    synth.load("ir1/ir1")          # raises MbrolaError if mbrola cannot start
    synth.apply_changes()
    synth.speak_words([
        (0, 4, ["_ 100\n", "s 80\n", "a 120\n", "l 70\n", "a 120\n", "m 80\n", "_ 100\n"]),
    ])
```

`speak_words` takes `(offset, length, phoneme_lines)` tuples, fires a
word-boundary event before each word and stops early when `stop()` is
called or the callback aborts. `synthesize(line)` speaks a single line of
phonemes and returns `False` if playback was aborted.

## UTF-8 helpers

```python
from tihu.utf8_checked import replace_invalid, utf8to32
from tihu.utf8_core import is_valid

utf8to32("سلام".encode())          # [1587, 1604, 1575, 1605]
is_valid(b"\xff")                   # False
replace_invalid(b"a\xffb", 0xFFFD)  # b"a\xef\xbf\xbdb"
```

## What this package does not do

- It does not turn text into phonemes. Words must be given as mbrola
  phoneme lines already.
- It has only the mbrola synthesizer. `Voice` lists eSpeak voices, but there
  is no synthesizer for them.
- There is no engine object that ties settings, voices and error codes
  together, and no command-line program; `ErrorCode` and `Param` are only
  enumerations.