import struct
import sys
import time

import pytest

from tihu.mbrowrap import MbrolaError, MbrolaProcess, MbrolaState, parse_wav_header

FAKE_MBROLA = r'''
import os
import signal
import struct
import sys

signal.signal(signal.SIGUSR1, lambda *args: None)

volume = float(sys.argv[3])
voice = sys.argv[4]
if not os.path.exists(voice):
    sys.stderr.write("voice not found\n")
    sys.stderr.flush()
    sys.exit(2)
with open(voice) as handle:
    rate = int(handle.read().strip())

out = sys.stdout.buffer
header = (b"RIFF" + struct.pack("<I", 0x7FFFFFFF) + b"WAVEfmt "
          + struct.pack("<IHHIIHH", 16, 1, 1, rate, rate * 2, 2, 16)
          + b"data" + struct.pack("<I", 0x7FFFFFFF))
out.write(header)
out.flush()

value = int(1000 * volume)
pending = 0
while True:
    line = sys.stdin.buffer.readline()
    if not line:
        break
    text = line.strip()
    if not text or text.startswith(b";"):
        continue
    if text == b"#":
        if pending:
            out.write(struct.pack("<h", value) * pending)
            out.flush()
        pending = 0
        continue
    parts = text.split()
    pending += int(parts[1])
'''


def _header(rate):
    return (
        b"RIFF"
        + struct.pack("<I", 100)
        + b"WAVEfmt "
        + struct.pack("<IHHIIHH", 16, 1, 1, rate, rate * 2, 2, 16)
        + b"data"
        + struct.pack("<I", 0)
    )


@pytest.fixture
def executable(tmp_path):
    script = tmp_path / "fake_mbrola.py"
    script.write_text(FAKE_MBROLA)
    return [sys.executable, str(script)]


@pytest.fixture
def voice(tmp_path):
    path = tmp_path / "voice"
    path.write_text("16000")
    return str(path)


@pytest.fixture
def process(executable, voice):
    proc = MbrolaProcess(executable)
    proc.init(voice)
    yield proc
    proc.close()


def _collect(proc, count, timeout=10.0):
    samples = []
    deadline = time.monotonic() + timeout
    while len(samples) < count and time.monotonic() < deadline:
        chunk = proc.read(count - len(samples))
        samples.extend(chunk)
        if not chunk:
            time.sleep(0.01)
    return samples


def test_parse_wav_header_reads_sample_rate():
    assert parse_wav_header(_header(16000)) == 16000
    assert parse_wav_header(_header(22050)) == 22050


def test_parse_wav_header_rejects_non_wav():
    with pytest.raises(MbrolaError):
        parse_wav_header(b"JUNK" + b"\0" * 40)
    with pytest.raises(MbrolaError):
        parse_wav_header(b"RIFF")


def test_state_values_follow_life_cycle_order():
    assert [MbrolaState(value) for value in range(5)] == list(MbrolaState)
    assert MbrolaState(0) is MbrolaState.INACTIVE
    with pytest.raises(ValueError):
        MbrolaState(5)


def test_new_process_is_inactive(executable):
    proc = MbrolaProcess(executable)
    assert proc.state == MbrolaState.INACTIVE
    assert proc.frequency == 0
    assert proc.volume == 1.0


def test_init_reads_voice_frequency(process):
    assert process.frequency == 16000
    assert process.state == MbrolaState.IDLE
    assert process.last_error() == ""


def test_write_flush_and_read_samples(process):
    assert process.write("a 30\nb 20\n") == len(b"a 30\nb 20\n")
    assert process.state == MbrolaState.NEWDATA
    assert process.flush() is True
    samples = _collect(process, 50)
    assert len(samples) == 50
    assert set(samples) == {1000}


def test_volume_change_restarts_idle_process(process, voice):
    process.set_volume_ratio(2.0)
    assert process.volume == 2.0
    assert process.state == MbrolaState.IDLE
    assert process.frequency == 16000
    process.write("a 10\n")
    process.flush()
    samples = _collect(process, 10)
    assert samples == [2000] * 10


def test_init_twice_is_an_error(process, voice):
    with pytest.raises(MbrolaError, match="already initialized"):
        process.init(voice)
    assert process.state == MbrolaState.IDLE


def test_missing_executable_raises(tmp_path, voice):
    proc = MbrolaProcess(str(tmp_path / "no-such-mbrola"))
    with pytest.raises(MbrolaError):
        proc.init(voice)
    assert proc.state == MbrolaState.INACTIVE
    assert proc.last_error().startswith("mbrola:")


def test_missing_voice_reports_exit_status(executable, tmp_path):
    proc = MbrolaProcess(executable)
    with pytest.raises(MbrolaError, match="exited with status 2"):
        proc.init(str(tmp_path / "absent"))
    assert proc.state == MbrolaState.INACTIVE
    assert "exited with status 2" in proc.last_error()


def test_write_without_process_raises(executable):
    proc = MbrolaProcess(executable)
    with pytest.raises(MbrolaError):
        proc.write("a 10\n")


def test_read_without_process_raises(executable):
    proc = MbrolaProcess(executable)
    with pytest.raises(MbrolaError):
        proc.read(10)


def test_reset_when_idle_succeeds(process):
    assert process.reset() is True
    assert process.state == MbrolaState.IDLE


def test_reset_after_write_returns_to_idle(process):
    process.write("a 10\n")
    assert process.reset() is True
    assert process.state == MbrolaState.IDLE


def test_reset_without_process_fails(executable):
    proc = MbrolaProcess(executable)
    assert proc.reset() is False


def test_reset_error_clears_message(executable):
    proc = MbrolaProcess(executable)
    with pytest.raises(MbrolaError):
        proc.write("x")
    proc._error = "boom"
    proc.reset_error()
    assert proc.last_error() == ""


def test_close_stops_process(process):
    process.set_volume_ratio(1.5)
    process.close()
    assert process.state == MbrolaState.INACTIVE
    assert process.volume == 1.0
    with pytest.raises(MbrolaError):
        process.flush()


def test_context_manager_closes(executable, voice):
    with MbrolaProcess(executable) as proc:
        proc.init(voice)
        assert proc.state == MbrolaState.IDLE
    assert proc.state == MbrolaState.INACTIVE