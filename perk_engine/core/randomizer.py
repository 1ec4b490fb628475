"""Constrained random build generation.

Shuffles the role's pool uniformly, then fills slots in two passes:

1. Take perks that do not conflict with anything already taken (mutex is
   a hard constraint here).
2. If slots remain, backfill from the same shuffled order ignoring mutex,
   so a small pool still yields a full build.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import numpy as np

from perk_engine import BUILD_SIZE
from perk_engine.catalog import Perk, Role, dedupe_by_name
from perk_engine.core.names import matches_name
from perk_engine.core.rules import DEFAULT_MUTEX, MutexModel

logger = logging.getLogger(__name__)


def make_rng(seed: int | np.random.Generator | None = None) -> np.random.Generator:
    """Return ``seed`` if it is already a Generator, else a new seeded one."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def random_pool(
    catalog: Iterable[Perk],
    role: Role,
    banned_names: Iterable[str],
) -> list[Perk]:
    """Role perks minus banned ones, deduped by normalized name."""
    banned = list(banned_names)
    return dedupe_by_name(
        p for p in catalog
        if p.role == role and not matches_name(p, banned)
    )


def random_build(
    catalog: Sequence[Perk],
    role: str | Role,
    banned_names: Iterable[str] = (),
    *,
    rng: int | np.random.Generator | None = None,
    total_slots: int = BUILD_SIZE,
    mutex: MutexModel = DEFAULT_MUTEX,
) -> list[Perk]:
    """Random build of up to ``total_slots`` perks for ``role``.

    Args:
        catalog: Perks to draw from (any roles; others are ignored).
        role: Role to build for.
        banned_names: Names or ids that may never be drawn.
        rng: Generator or integer seed; None draws fresh OS entropy.
        total_slots: Maximum build size.
        mutex: Mutex model enforced in the first pass.
    """
    role = Role.parse(role)
    pool = random_pool(catalog, role, banned_names)
    order = make_rng(rng).permutation(len(pool))
    shuffled = [pool[i] for i in order]

    result: list[Perk] = []
    seen: set[str] = set()

    def try_add(perk: Perk, *, enforce_mutex: bool) -> bool:
        if len(result) >= total_slots or perk.key in seen:
            return False
        if enforce_mutex and mutex.conflicts_with_any(perk, result):
            return False
        result.append(perk)
        seen.add(perk.key)
        return True

    # Pass 1: mutex-clean picks
    for perk in shuffled:
        if len(result) >= total_slots:
            break
        try_add(perk, enforce_mutex=True)

    # Pass 2: backfill, conflicts allowed
    n_clean = len(result)
    for perk in shuffled:
        if len(result) >= total_slots:
            break
        try_add(perk, enforce_mutex=False)

    if len(result) > n_clean:
        logger.info(
            "Random %s build: backfilled %d slot(s) ignoring mutex", role.value,
            len(result) - n_clean,
        )
    logger.debug("Random %s build: %s", role.value, ", ".join(p.name for p in result))
    return result[:total_slots]
