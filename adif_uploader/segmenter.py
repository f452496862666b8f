"""Record segmenter — finds the longest run of complete ADIF records in a byte buffer."""

import re

# Everything up to the last <eor> plus any CR/LF that trails it. Greedy .*
# with DOTALL backtracks to the final terminator, so one match covers every
# complete record currently buffered.
_COMPLETE_RE = re.compile(rb"(?is).*<eor>[\r\n]*")


def complete_length(buffer: bytes) -> int:
    """Return the offset just past the last complete record, or 0 if there is none."""
    match = _COMPLETE_RE.match(buffer)
    if match is None:
        return 0
    return match.end()


class RecordBuffer:
    """Growable byte buffer holding data read but not yet emitted as records.

    Only two mutations happen: appending newly read bytes and dropping an
    emitted prefix from the front.
    """

    def __init__(self):
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    @property
    def pending(self) -> bytes:
        return bytes(self._data)

    def extend(self, data: bytes):
        self._data += data

    def complete_length(self) -> int:
        return complete_length(self._data)

    def peek(self, n: int) -> bytes:
        return bytes(self._data[:n])

    def take(self, n: int) -> bytes:
        """Remove and return the first *n* bytes."""
        head = bytes(self._data[:n])
        del self._data[:n]
        return head
