"""JSON snapshot store for the tracker state.

Storage
-------
One file, ``<data_dir>/state.json``, rewritten after every scan cycle.

Envelope format
---------------
.. code-block:: json

    {
      "schema_version": "1.0",
      "saved_at":       "2026-02-27T14:23:01.452345+00:00",
      "state":          { ... TrackerState.to_dict() ... },
      "_checksum":      "sha256:b94f3e..."
    }

``_checksum`` is computed over the envelope body (every field except
``_checksum``) serialized with ``sort_keys=True``, so a hand-edited or
truncated file is detected on load.

Durability
----------
The snapshot is written to a temporary file in the same directory, flushed
and ``fsync``-ed, then moved over the previous snapshot with
:func:`os.replace`.  A crash mid-write leaves the last good snapshot intact.

Failure isolation
-----------------
:exc:`StateWriteError` is raised on filesystem failure.  The scan cycle
catches it and logs; tracking continues in memory and the next cycle retries.
A snapshot that cannot be read back is never fatal either: :func:`load_state`
logs and starts from an empty state.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from eq_tracker.ingest.types import TrackerState

logger = logging.getLogger(__name__)

# Increment when the envelope or state layout changes incompatibly.
_SCHEMA_VERSION = "1.0"


class StateWriteError(Exception):
    """Raised when the state snapshot cannot be written.

    Example::

        try:
            save_state(state, path)
        except StateWriteError:
            logger.warning("State save failed; will retry next cycle.", exc_info=True)
    """


def _compute_checksum(body: dict[str, Any]) -> str:
    """SHA-256 hex digest of ``body`` serialized canonically."""
    raw = json.dumps(body, ensure_ascii=False, sort_keys=True).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def save_state(state: TrackerState, path: Path | str) -> Path:
    """Atomically write ``state`` to ``path``.

    Returns:
        The path written.

    Raises:
        StateWriteError: If the directory or file cannot be written.
    """
    path = Path(path)
    body: dict[str, Any] = {
        "schema_version": _SCHEMA_VERSION,
        "saved_at": datetime.now(UTC).isoformat(),
        "state": state.to_dict(),
    }
    envelope = {**body, "_checksum": f"sha256:{_compute_checksum(body)}"}

    try:
        text = json.dumps(envelope, ensure_ascii=False, sort_keys=True, indent=2)
    except (TypeError, ValueError) as exc:
        raise StateWriteError(f"State is not JSON-serializable: {exc}") from exc

    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise StateWriteError(f"Failed to write state snapshot to {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("state: could not remove temp file %s", tmp_name)

    logger.debug("state: saved snapshot to %s", path)
    return path


def load_state(path: Path | str) -> TrackerState:
    """Load the snapshot at ``path``.

    Returns:
        The stored :class:`TrackerState`, or an empty one when the file is
        missing, unreadable, not valid JSON, from another schema version or
        fails its checksum.
    """
    path = Path(path)
    if not path.exists():
        return TrackerState()

    try:
        envelope = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("state: cannot read %s (%s); starting fresh", path, exc)
        return TrackerState()

    if not isinstance(envelope, dict):
        logger.error("state: %s is not a JSON object; starting fresh", path)
        return TrackerState()

    recorded = envelope.get("_checksum")
    body = {k: v for k, v in envelope.items() if k != "_checksum"}
    if recorded != f"sha256:{_compute_checksum(body)}":
        logger.warning("state: checksum mismatch in %s; starting fresh", path)
        return TrackerState()

    if body.get("schema_version") != _SCHEMA_VERSION:
        logger.warning(
            "state: unknown schema_version %r in %s; starting fresh",
            body.get("schema_version"),
            path,
        )
        return TrackerState()

    payload = body.get("state")
    if not isinstance(payload, dict):
        logger.warning("state: %s has no state payload; starting fresh", path)
        return TrackerState()

    try:
        return TrackerState.from_dict(payload)
    except (TypeError, ValueError, KeyError) as exc:
        logger.error("state: malformed payload in %s (%s); starting fresh", path, exc)
        return TrackerState()
