"""Entity name normalization.

Names reach the tracker from three places that never agree on spelling: the
bundled entity list, user edits, and the names the client prints in consider
and combat lines ("a cobalt drake", "Kelorek`Dar", "Pearl (map item)").
Every comparison goes through :func:`normalize_name` so that all three land on
the same canonical string.
"""

from __future__ import annotations

import re

_PARENTHETICAL_RE = re.compile(r"\s*\(.*?\)\s*")
_APOSTROPHE_RE = re.compile(r"[`'’]")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")
_LEADING_ARTICLE_RE = re.compile(r"^(?:the|an|a)\s+")


def simple_stem(word: str) -> str:
    """Strip a plural suffix from one lowercase word.

    Words of three characters or fewer are returned unchanged.  ``-ies``
    becomes ``y``, ``-es`` is dropped, and a trailing ``s`` is dropped unless
    the word ends in ``ss`` or ``us``.
    """
    w = (word or "").lower()
    if len(w) <= 3:
        return w
    if w.endswith("ies") and len(w) > 4:
        return w[:-3] + "y"
    if w.endswith("es") and len(w) > 4:
        return w[:-2]
    if w.endswith("s") and not w.endswith("ss") and not w.endswith("us"):
        return w[:-1]
    return w


def _stem_fully(word: str) -> str:
    # Repeat until stable so normalize_name(normalize_name(x)) == normalize_name(x);
    # "horses" -> "hors" -> "hor".
    while True:
        stemmed = simple_stem(word)
        if stemmed == word:
            return word
        word = stemmed


def normalize_name(text: str | None) -> str:
    """Return the canonical matching form of an entity name.

    Args:
        text: Free-text name; ``None`` is accepted.

    Returns:
        Lowercase, article-free, stemmed words joined by single spaces, or
        ``""`` for empty input.

    Example::

        >>> normalize_name("The Lord Yelinak")
        'lord yelinak'
        >>> normalize_name("Pearl (map item)")
        'pearl'
    """
    if not text:
        return ""
    t = _PARENTHETICAL_RE.sub(" ", str(text))
    t = _APOSTROPHE_RE.sub("", t)
    t = _NON_ALNUM_RE.sub(" ", t).strip().lower()
    # Stemming can expose a new leading article ("thes guardian" -> "the guardian"),
    # so strip and stem until nothing changes.
    while True:
        stripped = _LEADING_ARTICLE_RE.sub("", t, count=1)
        stemmed = " ".join(_stem_fully(word) for word in stripped.split())
        if stemmed == t:
            return t
        t = stemmed
