"""
Shared test constants and log-writing helpers.

This module provides constants and small helpers used across multiple test
files, so every test writes log lines in exactly the format the EverQuest
client does.
"""

from datetime import datetime, timedelta
from pathlib import Path

# A fixed local wall-clock start for synthetic logs.
BASE_TIME = datetime(2024, 3, 23, 20, 0, 0)

# Small Entity Set used by unit tests (already normalized).
TEST_ENTITIES = frozenset({"sontalak", "lord yelinak", "cobalt drake", "kelorekdar"})


def stamp(when: datetime) -> str:
    """Client timestamp text, e.g. ``Sat Mar 23 20:03:36 2024``."""
    return when.strftime("%a %b %d %H:%M:%S %Y")


def log_line(when: datetime | int, text: str) -> str:
    """One log line; an int is taken as seconds after :data:`BASE_TIME`."""
    if isinstance(when, int):
        when = BASE_TIME + timedelta(seconds=when)
    return f"[{stamp(when)}] {text}"


def write_log(path: Path, lines: list[str]) -> Path:
    """Create or replace a log file with ``lines`` (CRLF, like the client)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes("".join(f"{line}\r\n" for line in lines).encode("utf-8"))
    return path


def append_log(path: Path, lines: list[str]) -> Path:
    """Append ``lines`` to a log file."""
    with path.open("ab") as fh:
        fh.write("".join(f"{line}\r\n" for line in lines).encode("utf-8"))
    return path
