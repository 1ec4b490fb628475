"""Tests for perk_engine.core.scorer — candidate scoring rules."""

import pytest

from perk_engine.catalog import BuildContext, Role
from perk_engine.core.scorer import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    focus_bonus,
    rate_bonus,
    score,
    score_breakdown,
    tier_bonus,
)


class TestRejection:
    def test_cross_role_rejected(self, make_perk, survivor_context):
        perk = make_perk("Barbecue & Chili", Role.KILLER, tier="S")
        assert score(perk, [], survivor_context) == -9999

    def test_banned_by_name_rejected(self, make_perk):
        context = BuildContext.create("survivor", banned=["ÁLPHA"])
        assert score(make_perk("Alpha", tier="S"), [], context) == -9999

    def test_banned_by_id_rejected(self, make_perk):
        context = BuildContext.create("survivor", banned=["dh_001"])
        assert score(make_perk("Dead Hard", id="dh_001"), [], context) == -9999

    def test_breakdown_none_when_rejected(self, make_perk, killer_context):
        assert score_breakdown(make_perk("Dead Hard"), [], killer_context) is None

    def test_custom_reject_score(self, make_perk, killer_context):
        weights = ScoringWeights(reject_score=-1e9)
        assert score(make_perk("Dead Hard"), [], killer_context, weights=weights) == -1e9


class TestScenario:
    def test_first_iteration_scores(self, scenario_catalog):
        context = BuildContext.create("survivor", tags=["chase"])
        alpha, beta, gamma, delta = scenario_catalog
        # tag 10 + tier 10 + tie-break (100 - 5) * 0.01
        assert score(alpha, [], context) == pytest.approx(20.95)
        assert score(beta, [], context) == pytest.approx(13.96)
        assert score(gamma, [], context) == pytest.approx(6.95)
        assert score(delta, [], context) == pytest.approx(10.95)

    def test_synergy_after_first_pick(self, scenario_catalog):
        context = BuildContext.create("survivor", tags=["chase"])
        alpha, beta, _, _ = scenario_catalog
        assert score(beta, [alpha], context) == pytest.approx(21.96)

    def test_mutex_penalty_after_exhaustion_pick(self, scenario_catalog):
        context = BuildContext.create("survivor", tags=["chase"])
        alpha, beta, gamma, delta = scenario_catalog
        assert score(gamma, [alpha, beta, delta], context) == pytest.approx(6.95 - 100)


class TestComponents:
    def test_tag_match_per_desired_tag(self, make_perk):
        perk = make_perk("Dead Hard", tags=["chase", "exhaustion"])
        context = BuildContext.create("survivor", tags=["Chase", "EXHAUSTION", "heal"])
        assert score_breakdown(perk, [], context)["tags"] == 20

    def test_synergy_from_locked_names(self, make_perk):
        perk = make_perk("Adrenaline", synergy=["Dead Hard", "Resilience"])
        context = BuildContext.create("survivor", locked=["dead hard"])
        assert score_breakdown(perk, [], context)["synergy"] == 8

    def test_synergy_from_build_members(self, make_perk, survivor_context):
        perk = make_perk("Adrenaline", synergy=["Dead Hard", "Resilience"])
        build = [make_perk("Dead Hard"), make_perk("Resilience")]
        assert score_breakdown(perk, build, survivor_context)["synergy"] == 16

    def test_synergy_locked_and_built_counts_once(self, make_perk):
        perk = make_perk("Adrenaline", synergy=["Dead Hard"])
        context = BuildContext.create("survivor", locked=["Dead Hard"])
        parts = score_breakdown(perk, [make_perk("Dead Hard")], context)
        assert parts["synergy"] == 8

    def test_anti_synergy_per_build_member(self, make_perk, survivor_context):
        perk = make_perk("Dead Hard", anti_synergy=["No Mither", "Lithe"])
        build = [make_perk("No Mither"), make_perk("Lithe"), make_perk("Kindred")]
        assert score_breakdown(perk, build, survivor_context)["anti_synergy"] == -24

    def test_anti_synergy_ignores_locks_not_built(self, make_perk):
        perk = make_perk("Dead Hard", anti_synergy=["No Mither"])
        context = BuildContext.create("survivor", locked=["No Mither"])
        assert score_breakdown(perk, [], context)["anti_synergy"] == 0

    def test_mutex_penalty_applied_once(self, make_perk, survivor_context):
        perk = make_perk("Lithe", tags=["exhaustion"])
        build = [make_perk("Dead Hard", tags=["exhaustion"]),
                 make_perk("Sprint Burst", tags=["exhaustion"])]
        assert score_breakdown(perk, build, survivor_context)["mutex"] == -100

    def test_no_mutex_penalty_without_shared_tag(self, make_perk, survivor_context):
        perk = make_perk("Lithe", tags=["exhaustion"])
        build = [make_perk("Kindred", tags=["aura-reading"])]
        assert score_breakdown(perk, build, survivor_context)["mutex"] == 0

    def test_score_is_sum_of_breakdown(self, make_perk, survivor_context):
        perk = make_perk("Dead Hard", tags=["chase"], tier="A", rate=4.0,
                         synergy=["Kindred"], focus={"nurse": 3})
        context = BuildContext.create("survivor", tags=["chase"], focus_key="nurse")
        build = [make_perk("Kindred")]
        parts = score_breakdown(perk, build, context)
        assert score(perk, build, context) == pytest.approx(sum(parts.values()))

    def test_tie_break_favors_shorter_names(self, make_perk, survivor_context):
        short = score(make_perk("Lithe"), [], survivor_context)
        long = score(make_perk("Windows of Opportunity"), [], survivor_context)
        assert 0 < long < short <= 1

    def test_tie_break_floor_for_long_names(self, make_perk, survivor_context):
        perk = make_perk("x" * 150)
        assert score_breakdown(perk, [], survivor_context)["tie_break"] == 0


class TestTierBonus:
    @pytest.mark.parametrize("tier,expected", [
        ("S", 10), ("A", 6), ("B", 3), ("C", 0), ("D", -2), ("E", -4), ("F", -6),
    ])
    def test_table(self, make_perk, tier, expected):
        assert tier_bonus(make_perk("Perk", tier=tier)) == expected

    def test_lowercase_tier(self, make_perk):
        assert tier_bonus(make_perk("Perk", tier="s")) == 10

    def test_unknown_tier(self, make_perk):
        assert tier_bonus(make_perk("Perk", tier="Z")) == 0

    def test_missing_tier(self, make_perk):
        assert tier_bonus(make_perk("Perk")) == 0


class TestRateBonus:
    @pytest.mark.parametrize("rate,expected", [
        (5.0, 7.5),
        (2.5, 0.0),
        (0.0, -7.5),
        (4.0, 4.5),
        (9.0, 7.5),
        (-3.0, -7.5),
    ])
    def test_clamped_and_centred(self, make_perk, rate, expected):
        assert rate_bonus(make_perk("Perk", rate=rate)) == pytest.approx(expected)

    def test_missing_rate(self, make_perk):
        assert rate_bonus(make_perk("Perk")) == 0


class TestFocusBonus:
    @pytest.mark.parametrize("rank,expected", [
        (1, 14), (2, 12), (3, 10), (7, 2), (8, 0), (12, 0),
    ])
    def test_rank_table(self, make_perk, rank, expected):
        perk = make_perk("Perk", focus={"nurse": rank})
        assert focus_bonus(perk, "nurse") == expected

    def test_no_focus_key(self, make_perk):
        assert focus_bonus(make_perk("Perk", focus={"nurse": 1}), None) == 0

    def test_key_not_ranked(self, make_perk):
        assert focus_bonus(make_perk("Perk", focus={"nurse": 1}), "blight") == 0


class TestScoringWeightsFromConfig:
    def test_empty_section_is_default(self):
        assert ScoringWeights.from_config({}) == DEFAULT_WEIGHTS

    def test_override_weight(self):
        weights = ScoringWeights.from_config({"mutex_penalty": -500})
        assert weights.mutex_penalty == -500
        assert weights.tag_match == 10

    def test_tier_table_merged(self):
        weights = ScoringWeights.from_config({"tier_bonus": {"s": 20}})
        assert weights.tier_bonus["S"] == 20
        assert weights.tier_bonus["F"] == -6

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown scoring option"):
            ScoringWeights.from_config({"luck": 7})

    def test_non_numeric(self):
        with pytest.raises(ValueError, match="must be a number"):
            ScoringWeights.from_config({"synergy": "lots"})

    def test_rate_bounds_inverted(self):
        with pytest.raises(ValueError, match="exceeds"):
            ScoringWeights.from_config({"rate_min": 5, "rate_max": 1})
