"""Reverse zone search.

When a source has no Zone Fact after a normal tail read, the backscanner
walks the file backward from the end in fixed-size blocks looking for the
most recent "You have entered ..." line.  Lines that straddle a block
boundary are reassembled from a carry-over buffer holding the incomplete
leading fragment of the later block.

The search stops at the start of the file or once the byte budget is spent,
whichever comes first; it never reads a byte twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from eq_tracker.logparse.classifier import EventKind, LogEvent, classify_line

logger = logging.getLogger(__name__)

#: Default block size for the backward walk.
BLOCK_BYTES = 512 * 1024


@dataclass(frozen=True)
class BackscanResult:
    """Outcome of :func:`find_last_zone`.

    Attributes:
        event:      The most recent ``ZONE_CHANGE`` event, or ``None``.
        bytes_read: Total bytes read from the file.
    """

    event: LogEvent | None
    bytes_read: int

    @property
    def found(self) -> bool:
        return self.event is not None


def _zone_event(raw: bytes) -> LogEvent | None:
    line = raw.rstrip(b"\r").decode("utf-8", errors="replace")
    event = classify_line(line)
    if event is not None and event.kind is EventKind.ZONE_CHANGE:
        return event
    return None


def find_last_zone(
    path: Path | str, max_bytes: int = 0, *, block_size: int = BLOCK_BYTES
) -> BackscanResult:
    """Return the most recent zone-change line of ``path``.

    Args:
        path:       Source file.
        max_bytes:  Byte budget; ``0`` (or negative) means the whole file.
        block_size: Size of each backward read.

    Returns:
        A :class:`BackscanResult`; ``event`` is ``None`` when no zone line
        was found within the budget.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    path = Path(path)
    block_size = max(1, int(block_size))

    with path.open("rb") as fh:
        fh.seek(0, 2)
        size = fh.tell()
        if size <= 0:
            return BackscanResult(event=None, bytes_read=0)

        limit = size if max_bytes <= 0 else min(int(max_bytes), size)
        end_pos = size
        read_total = 0
        carry = b""

        while end_pos > 0 and read_total < limit:
            to_read = min(block_size, end_pos, limit - read_total)
            start_pos = end_pos - to_read
            fh.seek(start_pos)
            current = fh.read(to_read) + carry
            read_total += to_read
            end_pos = start_pos

            # The first segment may be the tail of a line that starts in an
            # earlier block; it is only complete at start-of-file.
            segments = current.split(b"\n")
            carry = segments[0]
            complete = segments[1:] if start_pos > 0 else segments
            for raw in reversed(complete):
                event = _zone_event(raw)
                if event is not None:
                    return BackscanResult(event=event, bytes_read=read_total)

    return BackscanResult(event=None, bytes_read=read_total)
