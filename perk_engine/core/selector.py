"""Greedy build selection.

Seeds the build with the user's locked perks, then repeatedly re-scores
the remaining pool against the growing build and takes the best
candidate. Mutex and anti-synergy only penalize; nothing in the pool is
hard-excluded once role and ban filtering have run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from perk_engine import BUILD_SIZE
from perk_engine.catalog import BuildContext, Perk, dedupe_by_name
from perk_engine.core.names import matches_name
from perk_engine.core.rules import DEFAULT_MUTEX, MutexModel
from perk_engine.core.scorer import DEFAULT_WEIGHTS, ScoringWeights, score

logger = logging.getLogger(__name__)


def locked_seed(
    catalog: Iterable[Perk],
    context: BuildContext,
    *,
    total_slots: int = BUILD_SIZE,
) -> list[Perk]:
    """Locked, non-banned perks of the context role in catalog order.

    Deduplicated by normalized name and truncated to ``total_slots``; the
    first locks in catalog order win.
    """
    locked = [
        p for p in catalog
        if p.role == context.role
        and matches_name(p, context.locked_names)
        and not matches_name(p, context.banned_names)
    ]
    seed = dedupe_by_name(locked)
    if len(seed) > total_slots:
        logger.warning(
            "%d locked perks exceed %d slots; dropping %s",
            len(seed), total_slots, ", ".join(p.name for p in seed[total_slots:]),
        )
    return seed[:total_slots]


def candidate_pool(
    catalog: Iterable[Perk],
    context: BuildContext,
    build: Sequence[Perk],
) -> list[Perk]:
    """Role perks not yet in ``build`` and not banned, in catalog order."""
    taken = {p.key for p in build}
    pool: list[Perk] = []
    for perk in catalog:
        if perk.role != context.role or perk.key in taken:
            continue
        if matches_name(perk, context.banned_names):
            continue
        pool.append(perk)
    return pool


def rank_candidates(
    pool: Sequence[Perk],
    build: Sequence[Perk],
    context: BuildContext,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    mutex: MutexModel = DEFAULT_MUTEX,
) -> list[tuple[Perk, float]]:
    """Score every pool perk against ``build``, best first.

    The sort is stable, so equal scores keep pool (catalog) order.
    """
    scored = [(p, score(p, build, context, weights=weights, mutex=mutex)) for p in pool]
    return sorted(scored, key=lambda x: -x[1])


def select_build_scored(
    catalog: Sequence[Perk],
    context: BuildContext,
    *,
    total_slots: int = BUILD_SIZE,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    mutex: MutexModel = DEFAULT_MUTEX,
) -> list[tuple[Perk, float | None]]:
    """Greedy selection that also reports the score each pick was taken at.

    Locked perks carry ``None``: they were pinned, not scored.
    """
    build: list[Perk] = locked_seed(catalog, context, total_slots=total_slots)
    picks: list[tuple[Perk, float | None]] = [(p, None) for p in build]

    unresolved = [
        n for n in context.locked_names
        if not any(matches_name(p, [n]) for p in catalog)
    ]
    if unresolved:
        logger.warning("Locked names not found in catalog: %s", ", ".join(unresolved))

    if len(build) >= total_slots:
        return picks[:total_slots]

    pool = candidate_pool(catalog, context, build)

    while len(build) < total_slots and pool:
        ranked = rank_candidates(pool, build, context, weights=weights, mutex=mutex)
        best, best_score = ranked[0]
        pool = [p for p in pool if p.key != best.key]
        build.append(best)
        picks.append((best, best_score))
        logger.debug("Slot %d: %s (score %.2f)", len(build), best.name, best_score)

    logger.info(
        "Selected %d/%d perks for %s (%d locked)",
        len(build), total_slots, context.role.value,
        sum(1 for _, s in picks if s is None),
    )
    return picks[:total_slots]


def select_build(
    catalog: Sequence[Perk],
    context: BuildContext,
    *,
    total_slots: int = BUILD_SIZE,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    mutex: MutexModel = DEFAULT_MUTEX,
) -> list[Perk]:
    """Recommend up to ``total_slots`` perks for ``context``.

    Never raises for a short or empty result: an exhausted pool simply
    yields fewer perks.
    """
    picks = select_build_scored(
        catalog, context, total_slots=total_slots, weights=weights, mutex=mutex,
    )
    return [p for p, _ in picks]
