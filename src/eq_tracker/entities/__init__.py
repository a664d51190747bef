"""Entity Set: the curated, user-adjustable names tracked for standing.

Public surface
--------------
- :func:`build_entity_set` : merge bundled, override-file and settings names.
- :func:`matches_entity`   : exact-then-prefix membership test.
- :func:`load_bundled_names`: the raw bundled baseline list.
"""

from eq_tracker.entities.builder import (
    build_entity_set,
    load_bundled_names,
    matches_entity,
    read_override_file,
)

__all__ = [
    "build_entity_set",
    "load_bundled_names",
    "matches_entity",
    "read_override_file",
]
