"""Log reader — pulls raw bytes from an open ADIF log and emits complete-record chunks."""

import logging
from typing import BinaryIO, Iterator, Optional

from adif_uploader.errors import FormatError, LogOpenError, LogReadError
from adif_uploader.segmenter import RecordBuffer

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 256 * 1024


class LogReader:
    """Reads a growing log file sequentially from the start.

    Each call to read_chunk() performs exactly one read. The file position
    and the pending buffer persist between calls, so a reader that has
    returned None picks up where it left off once the file grows.
    """

    def __init__(
        self,
        file: BinaryIO,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        encoding: str = "utf-8",
    ):
        self._file = file
        self._chunk_size = chunk_size
        self._encoding = encoding
        self._buffer = RecordBuffer()
        self._bytes_read = 0
        self._bytes_emitted = 0
        self._last_read = 0

    @classmethod
    def open(cls, path: str, **kwargs) -> "LogReader":
        """Open *path* read-only and wrap it. Raises LogOpenError on failure."""
        try:
            f = open(path, "rb", buffering=0)
        except OSError as e:
            raise LogOpenError(f"Failed to open log file {path}: {e}") from e
        logger.debug("Opened log file %s", path)
        return cls(f, **kwargs)

    @property
    def bytes_read(self) -> int:
        return self._bytes_read

    @property
    def bytes_emitted(self) -> int:
        return self._bytes_emitted

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete record."""
        return len(self._buffer)

    def read_chunk(self) -> Optional[str]:
        """Read once and return every complete record now available, or None."""
        try:
            data = self._file.read(self._chunk_size)
        except OSError as e:
            raise LogReadError(f"Failed to read from log file: {e}") from e

        self._last_read = len(data)
        if data:
            self._buffer.extend(data)
            self._bytes_read += len(data)

        clen = self._buffer.complete_length()
        if clen == 0:
            return None

        try:
            text = self._buffer.peek(clen).decode(self._encoding)
        except UnicodeDecodeError as e:
            raise FormatError(f"Unable to decode chunk as {self._encoding}: {e}") from e

        self._buffer.take(clen)
        self._bytes_emitted += clen
        return text

    def drain(self) -> Iterator[str]:
        """Yield chunks until no complete record is currently available.

        A read that fills the whole chunk without completing a record means
        the file holds more data, so reading continues.
        """
        while True:
            chunk = self.read_chunk()
            if chunk is not None:
                yield chunk
            elif self._last_read < self._chunk_size:
                return

    def close(self):
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
