"""Path similarity scoring for "did you mean" suggestions.

:func:`similarity` evaluates three tiers in order and stops at the first one
that applies:

1. Substring containment (case-insensitive, outer slashes trimmed) in either
   direction scores a flat ``0.8``.
2. Token overlap: both paths are split on ``/``, ``-``, and ``_``.  A token
   counts when the other path has an equal token, or one that contains it or
   is contained in it.  When ``matches / max(len(a), len(b))`` exceeds
   ``0.3`` the score is ``0.5 + ratio * 0.3``.
3. Edit distance: ``(max_len - levenshtein(a, b)) / max_len``.
"""

from __future__ import annotations

import re

SUBSTRING_SCORE = 0.8
TOKEN_RATIO_THRESHOLD = 0.3

_TOKEN_SPLIT = re.compile(r"[/\-_]+")


def levenshtein(a: str, b: str) -> int:
    """Return the edit distance between *a* and *b*."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def _tokens(path: str) -> list[str]:
    return [t for t in _TOKEN_SPLIT.split(path) if t]


def similarity(a: str, b: str) -> float:
    """Score how alike two paths are, from ``0.0`` to ``1.0``."""
    left = a.lower().strip("/")
    right = b.lower().strip("/")
    if not left and not right:
        return 1.0

    if left and right and (left in right or right in left):
        return SUBSTRING_SCORE

    left_tokens, right_tokens = _tokens(left), _tokens(right)
    longest = max(len(left_tokens), len(right_tokens))
    if longest:
        matches = sum(
            1 for lt in left_tokens
            if any(lt == rt or lt in rt or rt in lt for rt in right_tokens)
        )
        ratio = matches / longest
        if ratio > TOKEN_RATIO_THRESHOLD:
            return 0.5 + ratio * 0.3

    max_len = max(len(left), len(right))
    return (max_len - levenshtein(left, right)) / max_len


def suggest(
    path: str,
    candidates: list[str],
    threshold: float = 0.3,
    limit: int = 3,
) -> list[str]:
    """Return up to *limit* candidates scoring above *threshold*, best first.

    Ties keep the candidates' original order.
    """
    scored = [(similarity(path, c), i, c) for i, c in enumerate(candidates)]
    kept = [item for item in scored if item[0] > threshold]
    kept.sort(key=lambda item: (-item[0], item[1]))
    return [c for _, _, c in kept[:limit]]
