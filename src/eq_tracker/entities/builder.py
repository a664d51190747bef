"""Entity Set builder.

The Entity Set is the normalized set of names the standing tracker cares
about.  It is merged from four inputs and then filtered:

1. the bundled baseline list (``data/entities.yaml``),
2. the user override file (plain text, one name per line, optional),
3. the explicit list from settings,
4. the additions list from settings,

minus every name whose normalized form matches a normalized entry of the
settings removals list (removal wins).

The set is rebuilt on every call so edits to the override file take effect
on the next scan.  Callers that need a stable set for one pass snapshot it
once per pass.  A build failure is logged and yields an empty set rather
than propagating, so zone and inventory tracking carry on.
"""

from __future__ import annotations

import logging
import re
from importlib import resources
from pathlib import Path

import yaml

from eq_tracker.config import EntitySettings
from eq_tracker.logparse.normalize import normalize_name

logger = logging.getLogger(__name__)

_TRAILING_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*$")


def load_bundled_names() -> list[str]:
    """Load the bundled baseline names, without parenthetical notes.

    Raises:
        ValueError: If the bundled YAML is not a mapping with a ``names`` list.
    """
    text = resources.files("eq_tracker.entities").joinpath("data/entities.yaml").read_text(
        encoding="utf-8"
    )
    raw = yaml.safe_load(text)
    if not isinstance(raw, dict) or not isinstance(raw.get("names"), list):
        raise ValueError("entities.yaml must be a mapping with a 'names' list.")
    names = []
    for entry in raw["names"]:
        name = _TRAILING_PARENTHETICAL_RE.sub("", str(entry)).strip()
        if name:
            names.append(name)
    return names


def read_override_file(path: Path | None) -> list[str]:
    """Read the user override file; a missing file is an empty list."""
    if path is None or not path.exists():
        return []
    text = path.read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if line.strip()]


def _merge(settings: EntitySettings) -> frozenset[str]:
    merged_raw: list[str] = [
        *load_bundled_names(),
        *read_override_file(settings.override_file),
        *(str(s).strip() for s in settings.names),
        *(str(s).strip() for s in settings.additions),
    ]
    removals = {normalize_name(str(s)) for s in settings.removals}
    removals.discard("")

    out: set[str] = set()
    for name in merged_raw:
        norm = normalize_name(name)
        if not norm or norm in removals:
            continue
        out.add(norm)
    return frozenset(out)


def build_entity_set(settings: EntitySettings | None = None) -> frozenset[str]:
    """Build the normalized Entity Set from the bundled list and user settings.

    Args:
        settings: User adjustments; ``None`` means the bundled list only.

    Returns:
        A frozenset of normalized names; empty if anything went wrong.
    """
    settings = settings or EntitySettings()
    try:
        return _merge(settings)
    except (OSError, ValueError, yaml.YAMLError):
        logger.exception("entity set build failed; using an empty set for this cycle")
        return frozenset()


def matches_entity(normalized: str, entity_set: frozenset[str]) -> bool:
    """True if ``normalized`` is in the set, or starts with a member of it."""
    if not normalized:
        return False
    if normalized in entity_set:
        return True
    return any(normalized.startswith(name) for name in entity_set)
