"""Log source discovery.

The client writes one file per character per server:
``eqlog_<Character>_<Server>.txt``.  The character name comes from the file
name; the file path itself is the source identity, so two characters with
the same name on different servers never share Zone Facts or offsets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

_LOG_NAME_RE = re.compile(r"^eqlog_(?P<character>[^_]+)_(?P<server>.+)\.txt$", re.IGNORECASE)
_LOG_GLOB_RE = re.compile(r"^eqlog_.+?\.txt$", re.IGNORECASE)


@dataclass(frozen=True)
class LogSource:
    """One append-only log file and the character it belongs to."""

    path: Path
    character: str
    server: str | None

    @property
    def key(self) -> str:
        """Stable identity used for offsets and per-source facts."""
        return str(self.path)


def parse_log_name(file_name: str) -> tuple[str, str | None]:
    """Extract ``(character, server)`` from a log file name.

    Falls back to a looser split (text between the ``eqlog_`` prefix and the
    next underscore or extension) when the strict pattern does not match.
    """
    base = Path(file_name).name.strip()
    m = _LOG_NAME_RE.match(base)
    if m:
        return m["character"], m["server"]
    stem = re.sub(r"^eqlog_", "", Path(base).stem, flags=re.IGNORECASE)
    return stem.split("_", 1)[0], None


def is_log_file(file_name: str) -> bool:
    return bool(_LOG_GLOB_RE.match(Path(file_name).name))


def discover_sources(log_dir: Path | str) -> list[LogSource]:
    """List the log sources in ``log_dir``, sorted by file name."""
    directory = Path(log_dir)
    if not directory.is_dir():
        return []
    sources = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or not is_log_file(path.name):
            continue
        character, server = parse_log_name(path.name)
        if character:
            sources.append(LogSource(path=path, character=character, server=server))
    return sources


def sources_for_character(log_dir: Path | str, character: str) -> list[LogSource]:
    """Sources whose file name names ``character`` (case-insensitive)."""
    wanted = character.lower()
    return [s for s in discover_sources(log_dir) if s.character.lower() == wanted]
