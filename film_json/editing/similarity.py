"""Token-overlap similarity between two shot texts.

All functions are pure: no I/O, no external state.
"""
from __future__ import annotations

import re
from typing import List

_PUNCT_RE = re.compile(r"[.,!?]")


def normalize_text(text: str) -> str:
    """Lowercase, drop ``. , ! ?`` and trim."""
    return _PUNCT_RE.sub("", text.lower()).strip()


def tokenize(text: str) -> List[str]:
    return normalize_text(text).split()


def similarity(a: str, b: str) -> float:
    """Dice coefficient over the whitespace tokens of *a* and *b*.

    A token counts toward the overlap when it appears anywhere in the other
    side; repeats on one side each count.  Both directions are summed so the
    score is symmetric and stays within [0, 1].  With no repeated tokens this
    equals ``2 * |common| / (|a| + |b|)``.
    """
    if not a or not b:
        return 0.0
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    total = len(tokens_a) + len(tokens_b)
    if total == 0:
        return 0.0
    set_a = set(tokens_a)
    set_b = set(tokens_b)
    hits_a = sum(1 for t in tokens_a if t in set_b)
    hits_b = sum(1 for t in tokens_b if t in set_a)
    return (hits_a + hits_b) / total
