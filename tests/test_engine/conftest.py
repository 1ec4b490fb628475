"""Shared fixtures for engine tests.

Provides small hand-built catalogs covering both roles, mutex tags and
near-duplicate names.
"""

from __future__ import annotations

import pytest

from perk_engine.catalog import BuildContext, FocusRank, Perk, Role


def _perk(
    name: str,
    role: Role | str = Role.SURVIVOR,
    *,
    id: str | None = None,
    tags=(),
    synergy=(),
    anti_synergy=(),
    tier: str | None = None,
    rate: float | None = None,
    focus: dict[str, int] | None = None,
) -> Perk:
    return Perk(
        id=id or name.lower().replace(" ", "_"),
        name=name,
        role=Role.parse(role),
        tags=frozenset(tags),
        synergy=tuple(synergy),
        anti_synergy=tuple(anti_synergy),
        tier=tier,
        rate=rate,
        focus_ranking=tuple(FocusRank(k, r) for k, r in (focus or {}).items()),
    )


@pytest.fixture
def make_perk():
    """Factory for Perk values with sensible defaults."""
    return _perk


# ── Catalogs ─────────────────────────────────────────────────────────────────


@pytest.fixture
def scenario_catalog():
    """Four survivors: two chase perks, two exhaustion perks."""
    return [
        _perk("Alpha", tags=["chase"], tier="S"),
        _perk("Beta", tags=["chase"], tier="B", synergy=["Alpha"]),
        _perk("Gamma", tags=["exhaustion"], tier="A"),
        _perk("Delta", tags=["exhaustion"], tier="S"),
    ]


@pytest.fixture
def mixed_catalog():
    """Both roles, near-duplicate names, one scourge hook pair."""
    return [
        _perk("Dead Hard", tags=["chase", "exhaustion"], tier="A", rate=4.2),
        _perk("Sprint Burst", tags=["exhaustion", "speed"], tier="S", rate=4.8),
        _perk("Adrenaline", tags=["endgame", "heal"], tier="A", synergy=["Dead Hard"]),
        _perk("Resilience", tags=["repair"], tier="B"),
        _perk("Déjà Vu", id="deja_vu", tags=["aura-reading"], tier="C"),
        _perk("Deja Vu", id="deja_vu_legacy", tags=["aura-reading"], tier="S"),
        _perk("Windows of Opportunity", tags=["aura-reading", "chase"], tier="A"),
        _perk("Barbecue & Chili", Role.KILLER, tags=["tracking"], tier="A"),
        _perk("Scourge Hook: Pain Resonance", Role.KILLER,
              tags=["scourge_hook", "gen_regression"], tier="S", focus={"nurse": 1}),
        _perk("Scourge Hook: Gift of Pain", Role.KILLER,
              tags=["scourge_hook", "healing"], tier="B"),
        _perk("Pop Goes the Weasel", Role.KILLER, tags=["gen_regression"], tier="A",
              synergy=["Scourge Hook: Pain Resonance"], focus={"nurse": 2}),
        _perk("Corrupt Intervention", Role.KILLER, tags=["gen_regression"], tier="B"),
    ]


@pytest.fixture
def survivor_context():
    return BuildContext.create("survivor")


@pytest.fixture
def killer_context():
    return BuildContext.create("killer")
