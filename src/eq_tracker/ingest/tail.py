"""Incremental tail reader.

Reads only the bytes appended to a source since the last recorded offset.
On first sight of a file (no offset yet) only a bounded window at the end is
read, so years of history are never reprocessed; the backscanner recovers the
zone from older text when needed.

Offset rules:

- no offset recorded            -> read the last ``window_bytes``
- offset <= current size        -> read exactly ``[offset, size)``
- offset >  current size        -> the file shrank; treat it as new
- after every successful read   -> ``offsets[key] = size`` (even if nothing
  was appended)

I/O errors propagate as :exc:`OSError` with the offset untouched, so the
next cycle retries the same byte range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

#: Bytes read from the end of a file seen for the first time.
FIRST_SIGHT_WINDOW_BYTES = 256 * 1024


@dataclass(frozen=True)
class TailRead:
    """Result of one tail read.

    Attributes:
        lines:       Non-empty lines in file order.
        first_sight: ``True`` when no usable offset existed before this read.
        start:       Byte position the read started at.
        end:         File size at read time (the new offset).
    """

    lines: list[str]
    first_sight: bool
    start: int
    end: int

    @property
    def bytes_read(self) -> int:
        return self.end - self.start


def split_lines(data: bytes) -> list[str]:
    """Decode bytes and split into non-empty lines (CRLF tolerant)."""
    text = data.decode("utf-8", errors="replace").replace("\r\n", "\n")
    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


def read_appended(
    path: Path | str,
    offsets: dict[str, int],
    *,
    key: str | None = None,
    window_bytes: int = FIRST_SIGHT_WINDOW_BYTES,
) -> TailRead:
    """Read the bytes appended to ``path`` since ``offsets[key]``.

    Args:
        path:         Source file.
        offsets:      Offset map; updated in place after a successful read.
        key:          Offset map key; defaults to ``str(path)``.
        window_bytes: First-sight window size.

    Returns:
        A :class:`TailRead`.

    Raises:
        OSError: If the file cannot be stat-ed or read.
    """
    path = Path(path)
    key = key or str(path)
    last = offsets.get(key)

    with path.open("rb") as fh:
        fh.seek(0, 2)
        size = fh.tell()

        first_sight = last is None
        if last is not None and last > size:
            logger.info("tail: %s shrank (%d -> %d bytes); treating as new", path.name, last, size)
            first_sight = True

        start = max(0, size - window_bytes) if first_sight else int(last or 0)
        fh.seek(start)
        data = fh.read(size - start)

    offsets[key] = size
    return TailRead(lines=split_lines(data), first_sight=first_sight, start=start, end=size)
