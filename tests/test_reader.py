"""Tests for the log reader."""

import io

import pytest

from adif_uploader.errors import FormatError, LogOpenError, LogReadError
from adif_uploader.reader import DEFAULT_CHUNK_SIZE, LogReader


def _append(path, data: bytes):
    with open(path, "ab") as f:
        f.write(data)


@pytest.fixture
def log_file(tmp_path):
    f = tmp_path / "wsjtx_log.adi"
    f.write_bytes(b"")
    return f


class TestOpen:
    def test_missing_file(self, tmp_path):
        with pytest.raises(LogOpenError):
            LogReader.open(str(tmp_path / "missing.adi"))

    def test_default_chunk_size(self):
        assert DEFAULT_CHUNK_SIZE == 256 * 1024

    def test_context_manager_closes(self, log_file):
        with LogReader.open(str(log_file)) as reader:
            assert reader.read_chunk() is None
        with pytest.raises(ValueError):
            reader.read_chunk()


class TestReadChunk:
    def test_empty_file_yields_nothing(self, log_file):
        reader = LogReader.open(str(log_file))
        assert reader.read_chunk() is None
        assert list(reader.drain()) == []

    def test_single_record_at_startup(self, log_file):
        log_file.write_bytes(b"CALL:K1ABC<eor>\r\n")
        reader = LogReader.open(str(log_file))
        assert list(reader.drain()) == ["CALL:K1ABC<eor>\r\n"]
        assert reader.read_chunk() is None
        assert reader.read_chunk() is None

    def test_burst_of_two_records_is_one_chunk(self, log_file):
        reader = LogReader.open(str(log_file))
        assert reader.read_chunk() is None
        _append(log_file, b"A<eor>\nB<eor>\n")
        assert list(reader.drain()) == ["A<eor>\nB<eor>\n"]

    def test_partial_terminator_completed_later(self, log_file):
        reader = LogReader.open(str(log_file))
        _append(log_file, b"C<eo")
        assert list(reader.drain()) == []
        assert reader.pending == 4
        _append(log_file, b"r>\n")
        assert list(reader.drain()) == ["C<eor>\n"]
        assert reader.pending == 0

    def test_idempotent_when_exhausted(self, log_file):
        log_file.write_bytes(b"A<eor>\n")
        reader = LogReader.open(str(log_file))
        assert reader.read_chunk() == "A<eor>\n"
        for _ in range(5):
            assert reader.read_chunk() is None
        _append(log_file, b"B<eor>\n")
        assert reader.read_chunk() == "B<eor>\n"

    def test_tail_after_last_record_is_retained(self, log_file):
        log_file.write_bytes(b"A<eor>\nB<ca")
        reader = LogReader.open(str(log_file))
        assert reader.read_chunk() == "A<eor>\n"
        _append(log_file, b"ll:1>X<EOR>\r\n")
        assert reader.read_chunk() == "B<call:1>X<EOR>\r\n"

    def test_counters(self, log_file):
        log_file.write_bytes(b"A<eor>\nB")
        reader = LogReader.open(str(log_file))
        reader.read_chunk()
        assert reader.bytes_read == 8
        assert reader.bytes_emitted == 7
        assert reader.pending == 1


class TestDrain:
    def test_no_loss_no_duplication(self, log_file):
        writes = [
            b"<adif_ver:5>3.1.2<eoh>\n<call:4>W1AW",
            b"<eor>\n<call:5>K1A",
            b"BC<eor>\r\n",
            b"<call:3>N0C<e",
            b"or>",
            b"\n\n<call:2>XX",
        ]
        reader = LogReader.open(str(log_file), chunk_size=7)
        emitted = []
        for data in writes:
            _append(log_file, data)
            emitted.extend(reader.drain())

        written = b"".join(writes)
        expected = written[: written.rfind(b"<eor>") + len(b"<eor>")]
        assert "".join(emitted).encode() == expected
        assert reader.pending == len(b"\n\n<call:2>XX")

    def test_record_longer_than_chunk_size(self, log_file):
        record = b"<comment:40>" + b"x" * 40 + b"<eor>\n"
        log_file.write_bytes(record)
        reader = LogReader.open(str(log_file), chunk_size=8)
        assert list(reader.drain()) == [record.decode()]

    def test_latin1_encoding(self, log_file):
        log_file.write_bytes(b"<name:4>J\xf6rg<eor>\n")
        reader = LogReader.open(str(log_file), encoding="latin-1")
        assert list(reader.drain()) == ["<name:4>Jörg<eor>\n"]


class TestErrors:
    def test_invalid_utf8_before_boundary(self, log_file):
        log_file.write_bytes(b"<name:4>J\xf6rg<eor>\n")
        reader = LogReader.open(str(log_file))
        with pytest.raises(FormatError):
            reader.read_chunk()
        assert reader.bytes_emitted == 0

    def test_invalid_bytes_in_tail_not_decoded(self, log_file):
        log_file.write_bytes(b"A<eor>\n\xff\xfe")
        reader = LogReader.open(str(log_file))
        assert reader.read_chunk() == "A<eor>\n"
        assert reader.pending == 2

    def test_read_error(self):
        class BrokenFile(io.RawIOBase):
            def read(self, size=-1):
                raise OSError("device went away")

        reader = LogReader(BrokenFile())
        with pytest.raises(LogReadError, match="device went away"):
            reader.read_chunk()

    def test_error_exit_codes(self):
        assert FormatError.exit_code == 65
        assert LogOpenError.exit_code == 66
        assert LogReadError.exit_code == 74
