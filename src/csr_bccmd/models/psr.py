"""PSR record files: bulk lists of PS key values.

Format::

    // PSKEY_BDADDR
    &0001 = 0012 3456 0078 9abc
    # comments may also start with a hash
    &01be = 01d8

Each record line is ``&`` + hex key id, ``=``, then hex 16-bit words
separated by spaces or commas. Words are carried low byte first, so a
record's payload is always word aligned.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterable, Iterator

from ..exceptions import RecordFileError
from .pskeys import MAX_KEY, symbol

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"^[0-9a-fA-F]{1,4}$")
_SEPARATORS = re.compile(r"[\s,]+")


@dataclass
class PSRecord:
    """One key/value entry of a record file."""

    key: int
    data: bytes

    @property
    def length(self) -> int:
        """Value length in 16-bit words."""
        return len(self.data) // 2

    def __repr__(self) -> str:
        return f"PSRecord(key=0x{self.key:04X}, data={self.data.hex(' ')})"


def parse_record_line(line: str, path: str = "", lineno: int | None = None) -> PSRecord | None:
    """Parse one line of a record file.

    Returns:
        The record, or ``None`` for blank and comment lines.

    Raises:
        RecordFileError: If the line is not a valid record.
    """
    text = line.strip()
    if not text or text.startswith("//") or text.startswith("#"):
        return None

    if not text.startswith("&") or "=" not in text:
        raise RecordFileError(f"not a record: {text!r}", path, lineno)

    key_text, _, value_text = text[1:].partition("=")
    try:
        key = int(key_text.strip(), 16)
    except ValueError:
        raise RecordFileError(f"bad key {key_text.strip()!r}", path, lineno) from None
    if not 0 < key <= MAX_KEY:
        raise RecordFileError(f"key 0x{key:x} out of range", path, lineno)

    tokens = [t for t in _SEPARATORS.split(value_text.strip()) if t]
    if not tokens:
        raise RecordFileError(f"no value for key 0x{key:04x}", path, lineno)

    data = bytearray()
    for token in tokens:
        if not _WORD_RE.match(token):
            raise RecordFileError(f"bad value word {token!r}", path, lineno)
        data += int(token, 16).to_bytes(2, "little")

    return PSRecord(key=key, data=bytes(data))


class RecordCursor:
    """Lazy iterator over the records of an open record file.

    Iteration ends (``StopIteration``) at end of file; a malformed line
    raises :class:`RecordFileError`.
    """

    def __init__(
        self, lines: Iterable[str], path: str = "", file: IO[str] | None = None
    ) -> None:
        self._lines = iter(lines)
        self._path = path
        self._lineno = 0
        self._file = file

    @property
    def path(self) -> str:
        return self._path

    def __iter__(self) -> Iterator[PSRecord]:
        return self

    def __next__(self) -> PSRecord:
        for line in self._lines:
            self._lineno += 1
            record = parse_record_line(line, self._path, self._lineno)
            if record is not None:
                return record
        raise StopIteration

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> RecordCursor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_records(path: str | Path) -> RecordCursor:
    """Open a record file for lazy reading.

    Raises:
        RecordFileError: If the file cannot be opened.
    """
    path = Path(path)
    try:
        handle = open(path, "r", encoding="ascii", errors="replace")
    except OSError as e:
        raise RecordFileError(f"cannot open: {e.strerror or e}", str(path)) from e

    logger.debug("Reading PS records from %s", path)
    return RecordCursor(handle, str(path), file=handle)


def format_entry(key: int, words: Iterable[int]) -> str:
    """Format a key value as a commented record, as written by ``psread``."""
    values = "".join(f" {word >> 8:02x}{word & 0xFF:02x}" for word in words)
    return f"// {symbol(key)}\n&{key:04x} ={values}"
