"""Name normalization shared by every identity comparison in the engine.

Lock/ban matching, dedup, synergy lookups and tag matching all compare
canonical forms, so "Déjà Vu" and "deja vu" are the same perk.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perk_engine.catalog import Perk


def normalize(text: str) -> str:
    """Lower-case, NFKD-decompose and strip combining marks.

    Idempotent: ``normalize(normalize(x)) == normalize(x)``.
    """
    current = text
    # Compatibility decompositions can surface upper-case letters
    # (e.g. "℃" -> "°C"), so fold until the text is stable.
    while True:
        folded = _fold(current)
        if folded == current:
            return folded
        current = folded


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_all(values: Iterable[str]) -> frozenset[str]:
    """Normalize an iterable of names/tags into a frozenset."""
    return frozenset(normalize(v) for v in values)


def matches_name(perk: Perk, names: Iterable[str]) -> bool:
    """True when any entry of ``names`` refers to ``perk`` by name or id."""
    targets = {normalize(perk.name), normalize(perk.id)}
    return any(normalize(n) in targets for n in names)
