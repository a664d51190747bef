"""EQ Character Tracker.

Watches EverQuest client log files and keeps the latest derived facts per
character: current zone, inventory contents, and a single faction standing
toward a curated set of named entities.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version: read from pyproject.toml via importlib.metadata.
#
# If the package is imported without being installed we fall back to the
# last released version so the CLI can still start.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("eq-character-tracker")
except PackageNotFoundError:
    __version__ = "0.3.0"
