"""Perk scoring: desirability of one candidate against a partial build.

Pure and side-effect free. A score is only meaningful for the build
snapshot it was computed against: synergy, anti-synergy and mutex terms
change as the build grows, so selectors re-score on every iteration.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any

from perk_engine.catalog import BuildContext, Perk
from perk_engine.core.names import matches_name, normalize_all
from perk_engine.core.rules import DEFAULT_MUTEX, MutexModel

DEFAULT_TIER_BONUS: dict[str, float] = {
    "S": 10.0,
    "A": 6.0,
    "B": 3.0,
    "C": 0.0,
    "D": -2.0,
    "E": -4.0,
    "F": -6.0,
}


@dataclass(frozen=True)
class ScoringWeights:
    """Rule weights. Defaults reproduce the published scoring table."""

    tag_match: float = 10.0
    synergy: float = 8.0
    anti_synergy: float = -12.0
    mutex_penalty: float = -100.0
    rate_min: float = 0.0
    rate_max: float = 5.0
    rate_center: float = 2.5
    rate_scale: float = 3.0
    focus_top: float = 14.0
    focus_step: float = 2.0
    tie_break: float = 0.01
    name_length_cap: int = 100
    reject_score: float = -9999.0
    tier_bonus: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_TIER_BONUS))

    @classmethod
    def from_config(cls, section: Mapping[str, Any]) -> ScoringWeights:
        """Build weights from the ``scoring`` config section.

        ``tier_bonus`` entries are merged over the default table.

        Raises:
            ValueError: on unknown keys or non-numeric values.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in section.items():
            if key not in known:
                raise ValueError(f"Unknown scoring option: {key!r}")
            if key == "tier_bonus":
                if not isinstance(value, Mapping):
                    raise ValueError("scoring.tier_bonus must be a mapping of tier -> bonus")
                table = dict(DEFAULT_TIER_BONUS)
                for tier, bonus in value.items():
                    table[str(tier).upper()] = _as_number(f"scoring.tier_bonus.{tier}", bonus)
                kwargs[key] = table
            elif key == "name_length_cap":
                kwargs[key] = int(_as_number(f"scoring.{key}", value))
            else:
                kwargs[key] = _as_number(f"scoring.{key}", value)

        weights = cls(**kwargs)
        if weights.rate_min > weights.rate_max:
            raise ValueError(
                f"scoring.rate_min ({weights.rate_min}) exceeds rate_max ({weights.rate_max})"
            )
        return weights


def _as_number(path: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{path} must be a number, got {value!r}")
    return float(value)


DEFAULT_WEIGHTS = ScoringWeights()


def is_rejected(candidate: Perk, context: BuildContext) -> bool:
    """Cross-role and banned perks are never selectable."""
    return candidate.role != context.role or matches_name(candidate, context.banned_names)


def tier_bonus(candidate: Perk, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    if not candidate.tier:
        return 0.0
    return weights.tier_bonus.get(candidate.tier.upper(), 0.0)


def rate_bonus(candidate: Perk, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Rate clamped to [rate_min, rate_max], centred on rate_center."""
    if candidate.rate is None:
        return 0.0
    clamped = max(weights.rate_min, min(weights.rate_max, candidate.rate))
    return (clamped - weights.rate_center) * weights.rate_scale


def focus_bonus(
    candidate: Perk,
    focus_key: str | None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Rank 1 earns focus_top, each later rank focus_step less, floored at 0."""
    if not focus_key:
        return 0.0
    rank = candidate.focus_rank(focus_key)
    if rank is None:
        return 0.0
    return max(0.0, weights.focus_top - (rank - 1) * weights.focus_step)


def score_breakdown(
    candidate: Perk,
    partial_build: Sequence[Perk],
    context: BuildContext,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    mutex: MutexModel = DEFAULT_MUTEX,
) -> dict[str, float] | None:
    """Per-rule contributions for ``candidate``, or None when it is rejected."""
    if is_rejected(candidate, context):
        return None

    desired = normalize_all(context.desired_tags)
    tags = weights.tag_match * len(desired & normalize_all(candidate.tags))

    build_names = normalize_all(p.name for p in partial_build)
    related = normalize_all(candidate.synergy)
    partners = normalize_all(context.locked_names) | build_names
    synergy = weights.synergy * len(partners & related)

    anti = normalize_all(candidate.anti_synergy)
    anti_synergy = weights.anti_synergy * len(build_names & anti)

    mutex_term = (
        weights.mutex_penalty if mutex.conflicts_with_any(candidate, partial_build) else 0.0
    )

    cap = weights.name_length_cap
    tie_break = (cap - min(cap, len(candidate.name))) * weights.tie_break

    return {
        "tags": float(tags),
        "synergy": synergy,
        "anti_synergy": anti_synergy,
        "mutex": mutex_term,
        "tier": tier_bonus(candidate, weights),
        "rate": rate_bonus(candidate, weights),
        "focus": focus_bonus(candidate, context.focus_key, weights),
        "tie_break": tie_break,
    }


def score(
    candidate: Perk,
    partial_build: Sequence[Perk],
    context: BuildContext,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    mutex: MutexModel = DEFAULT_MUTEX,
) -> float:
    """Desirability of ``candidate`` given the current ``partial_build``.

    Returns ``weights.reject_score`` for cross-role or banned perks.
    """
    parts = score_breakdown(candidate, partial_build, context, weights=weights, mutex=mutex)
    if parts is None:
        return weights.reject_score
    return sum(parts.values())
