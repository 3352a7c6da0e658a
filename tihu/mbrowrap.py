"""Drive an external mbrola process through pipes.

The voice database is loaded by starting the mbrola binary with its input and
output connected to pipes. Phoneme text is written to its standard input and
16-bit little-endian audio is read back from its standard output.
"""

from __future__ import annotations

import logging
import os
import select
import signal
import subprocess
import sys
from array import array
from collections import deque
from enum import IntEnum
from typing import Optional, Sequence, Union

__all__ = ["MbrolaError", "MbrolaState", "MbrolaProcess", "parse_wav_header"]

logger = logging.getLogger(__name__)

_ERROR_LIMIT = 159
_HEADER_SIZE = 44
_STALL_LIMIT_MS = 5000 * (4 - 1) // 4
_RESET_MESSAGES = (b"Got a reset signal", b"Input Flush Signal")


class MbrolaError(Exception):
    """Raised when the mbrola process cannot be started or talked to."""


class MbrolaState(IntEnum):
    """Life cycle of the mbrola process."""

    INACTIVE = 0
    IDLE = 1
    NEWDATA = 2
    AUDIO = 3
    WEDGED = 4


def parse_wav_header(header: bytes) -> int:
    """Return the sample rate stored in a canonical WAV header."""
    if len(header) < 28 or header[0:4] != b"RIFF" or header[8:16] != b"WAVEfmt ":
        raise MbrolaError("mbrola did not return a .wav Header")
    return int.from_bytes(header[24:28], "little")


class MbrolaProcess:
    """A running mbrola binary fed with phonemes and read for audio."""

    def __init__(self, executable: Union[str, Sequence[str]] = "./mbrola") -> None:
        self._command = [executable] if isinstance(executable, str) else list(executable)
        self._state = MbrolaState.INACTIVE
        self._voice_path: Optional[str] = None
        self._proc: Optional[subprocess.Popen] = None
        self._running = False
        self._stat_path: Optional[str] = None
        self._samplerate = 0
        self._volume = 1.0
        self._error = ""
        self._pending: deque[bytearray] = deque()

    def __enter__(self) -> "MbrolaProcess":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> MbrolaState:
        """Current state of the process."""
        return self._state

    @property
    def volume(self) -> float:
        """Volume ratio the process is started with."""
        return self._volume

    @property
    def frequency(self) -> int:
        """Sample rate of the loaded voice database."""
        return self._samplerate

    # -- error handling -------------------------------------------------

    def _err(self, message: str) -> None:
        self._error = message[:_ERROR_LIMIT]
        logger.error("mbrowrap error: %s", self._error)

    def _fail(self, message: str) -> None:
        self._err(message)
        raise MbrolaError(self._error)

    # -- process management ---------------------------------------------

    @property
    def _cmd_fd(self) -> int:
        return self._proc.stdin.fileno()

    @property
    def _audio_fd(self) -> int:
        return self._proc.stdout.fileno()

    @property
    def _error_fd(self) -> int:
        return self._proc.stderr.fileno()

    def _start(self, voice_path: str) -> None:
        if self._state != MbrolaState.INACTIVE:
            self._fail("mbrola init request when already initialized")

        command = self._command + ["-e", "-v", f"{self._volume:g}", voice_path, "-", "-.wav"]
        try:
            self._proc = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                start_new_session=True,
            )
        except OSError as exc:
            self._proc = None
            self._fail(f"mbrola: {exc.strerror or exc}")
        self._running = True

        self._stat_path = f"/proc/{self._proc.pid}/stat"
        try:
            with open(self._stat_path, "rb"):
                pass
        except OSError as exc:
            self._kill()
            self._fail(f"/proc is unaccessible: {exc.strerror}")

        try:
            for fd in (self._cmd_fd, self._audio_fd, self._error_fd):
                os.set_blocking(fd, False)
        except OSError as exc:
            self._kill()
            self._fail(f"fcntl(): {exc.strerror}")

        self._state = MbrolaState.IDLE

    def _kill(self) -> None:
        proc = self._proc
        if proc is None:
            return
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            try:
                stream.close()
            except OSError:
                pass
        if self._running:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
            proc.wait()
            self._running = False
        self._proc = None

    def _stop(self) -> None:
        if self._state == MbrolaState.INACTIVE:
            return
        self._kill()
        self._state = MbrolaState.INACTIVE

    def _died(self) -> bool:
        code = self._proc.poll()
        if code is None:
            message = "mbrola closed stderr and did not exit"
        else:
            self._running = False
            if code < 0:
                message = f"mbrola died by signal {-code}"
            else:
                message = f"mbrola exited with status {code}"
        logger.error("mbrowrap error: %s", message)
        combined = message if not self._error else f"{self._error}, ({message})"
        self._error = combined[:_ERROR_LIMIT]
        return True

    def _has_errors(self) -> bool:
        remainder = b""
        while True:
            try:
                chunk = os.read(self._error_fd, 255)
            except BlockingIOError:
                return False
            except OSError as exc:
                self._err(f"read(error): {exc.strerror}")
                return True
            if not chunk:
                return self._died()
            *lines, remainder = (remainder + chunk).split(b"\n")
            for line in lines:
                if line.startswith(_RESET_MESSAGES):
                    continue
                logger.warning("mbrola: %s", line.decode("utf-8", "replace"))
            if not remainder:
                return False

    def _is_idle(self) -> bool:
        try:
            with open(self._stat_path, "rb") as stat:
                content = stat.read()
        except OSError:
            return False
        close = content.rfind(b")")
        return close >= 0 and content[close + 1 : close + 3] == b" S"

    def _send(self, command: Union[str, bytes]) -> int:
        if not self._running:
            raise MbrolaError("mbrola is not running")
        data = command.encode("utf-8") if isinstance(command, str) else bytes(command)
        try:
            written = os.write(self._cmd_fd, data)
        except BlockingIOError:
            written = 0
        except BrokenPipeError as exc:
            if self._has_errors():
                raise MbrolaError(self._error) from None
            self._fail(f"write(): {exc.strerror}")
        except OSError as exc:
            self._fail(f"write(): {exc.strerror}")
        if written != len(data):
            self._pending.append(bytearray(data[written:]))
        return len(data)

    def _write_pending(self) -> bool:
        """Write the head of the pending queue; True when more blocks follow."""
        head = self._pending[0]
        try:
            written = os.write(self._cmd_fd, head)
        except BlockingIOError:
            return False
        except BrokenPipeError as exc:
            if self._has_errors():
                raise MbrolaError(self._error) from None
            self._fail(f"write(): {exc.strerror}")
        except OSError as exc:
            self._fail(f"write(): {exc.strerror}")
        if written != len(head):
            del head[:written]
            return False
        self._pending.popleft()
        return bool(self._pending)

    def _receive(self, bufsize: int) -> bytes:
        if not self._running:
            raise MbrolaError("mbrola is not running")

        received = bytearray()
        wait = 1
        while len(received) < bufsize:
            poller = select.poll()
            poller.register(self._audio_fd, select.POLLIN)
            poller.register(self._error_fd, select.POLLIN)
            if self._pending:
                poller.register(self._cmd_fd, select.POLLOUT)

            idle = self._is_idle()
            try:
                events = dict(poller.poll(0 if idle else wait))
            except OSError as exc:
                self._fail(f"poll(): {exc.strerror}")

            if not events:
                if idle:
                    self._state = MbrolaState.IDLE
                    break
                if wait >= _STALL_LIMIT_MS:
                    self._state = MbrolaState.WEDGED
                    self._err("mbrola process is stalled")
                    break
                wait *= 4
                continue
            wait = 1

            if events.get(self._error_fd) and self._has_errors():
                raise MbrolaError(self._error)

            if self._pending and events.get(self._cmd_fd):
                if self._write_pending():
                    continue

            if events.get(self._audio_fd):
                try:
                    data = os.read(self._audio_fd, bufsize - len(received))
                except BlockingIOError:
                    data = b""
                except OSError as exc:
                    self._fail(f"read(): {exc.strerror}")
                received += data
                self._state = MbrolaState.AUDIO
        return bytes(received)

    # -- public interface -----------------------------------------------

    def init(self, voice_path: str) -> None:
        """Start mbrola with the given voice database and read its sample rate."""
        self._start(voice_path)
        try:
            if self._send("#\n") != 2:
                raise MbrolaError(self._error)
            header = self._receive(_HEADER_SIZE + 1)
            if len(header) != _HEADER_SIZE:
                self._fail("unable to get .wav Header from mbrola")
            try:
                self._samplerate = parse_wav_header(header)
            except MbrolaError as exc:
                self._fail(str(exc))
        except MbrolaError:
            self._stop()
            raise

        logger.info("mbrowrap: voice samplerate = %d", self._samplerate)
        self._voice_path = voice_path
        logger.info("mbrola started.")

    def close(self) -> None:
        """Stop mbrola and forget the voice and volume."""
        self._stop()
        self._pending.clear()
        self._voice_path = None
        self._volume = 1.0

    def reset(self) -> bool:
        """Abort ongoing synthesis and drop buffered data; True on success."""
        if self._state == MbrolaState.IDLE:
            return True
        if not self._running:
            return False

        success = True
        try:
            self._proc.send_signal(signal.SIGUSR1)
        except OSError:
            success = False
        self._pending.clear()
        try:
            if os.write(self._cmd_fd, b"\n#\n") != 3:
                success = False
        except OSError:
            success = False

        while True:
            try:
                drained = os.read(self._audio_fd, 4096)
            except BlockingIOError:
                break
            except OSError:
                success = False
                break
            if not drained:
                success = False
                break

        if not self._has_errors() and success:
            self._state = MbrolaState.IDLE
        return success

    def read(self, nb_samples: int) -> array:
        """Return at most ``nb_samples`` 16-bit samples produced so far."""
        data = self._receive(nb_samples * 2)
        samples = array("h", data[: len(data) - len(data) % 2])
        if sys.byteorder == "big":
            samples.byteswap()
        return samples

    def write(self, data: Union[str, bytes]) -> int:
        """Queue phoneme text for mbrola; returns the number of bytes taken."""
        self._state = MbrolaState.NEWDATA
        return self._send(data)

    def flush(self) -> bool:
        """Ask mbrola to synthesize everything written so far."""
        return self._send("\n#\n") == 3

    def set_volume_ratio(self, value: float) -> None:
        """Change the volume; an idle process is restarted to apply it."""
        if value == self._volume:
            return
        self._volume = value
        if self._state != MbrolaState.IDLE:
            return
        self._stop()
        try:
            self.init(self._voice_path)
        except MbrolaError as exc:
            logger.error("mbrowrap error: restart failed: %s", exc)

    def last_error(self) -> str:
        """Return the latest error message, or an empty string."""
        if self._running:
            self._has_errors()
        return self._error

    def reset_error(self) -> None:
        """Clear the pending error message."""
        self._error = ""