"""State package: durable JSON snapshot of the tracker state arena.

Public surface
--------------
- :func:`save_state`      : atomic, checksummed snapshot write.
- :func:`load_state`      : read a snapshot back, empty state on any damage.
- :exc:`StateWriteError`  : raised when the snapshot cannot be written.
"""

from eq_tracker.state.store import StateWriteError, load_state, save_state

__all__ = [
    "StateWriteError",
    "load_state",
    "save_state",
]
