"""
Tests for prediction scoring: tier exclusivity, stacking scorers, multipliers.
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from bolao.config import Configuration, ScoringWeights
from bolao.models import Match, Prediction
from bolao.scoring import (
    Outcome,
    classify_outcome,
    count_correct_scorers,
    is_exact_score,
    score,
)

KICKOFF = datetime(2026, 3, 1, 19, 0, tzinfo=timezone.utc)


def _config(regular: float = 1.0, **phases: float) -> Configuration:
    return Configuration(
        weights=ScoringWeights(exact_score=10, correct_result=3, correct_goals=2, correct_scorers=5),
        phase_weights={"cup": {"regular": regular, **phases}},
    )


def _match(club: int, opp: int, scorers: list[str] | None = None, phase: str = "regular", competition: str = "cup") -> Match:
    return Match(
        id="m1",
        competition_id=competition,
        opponent="Rival",
        scheduled_at=KICKOFF,
        status="finished",
        phase=phase,
        club_score=club,
        opponent_score=opp,
        scorers=scorers or [],
    )


def _pred(club: int, opp: int, scorers: list[str] | None = None) -> Prediction:
    return Prediction(user_id="u1", match_id="m1", club_score=club, opponent_score=opp, scorers=scorers or [])


class TestOutcome:
    def test_classify(self):
        assert classify_outcome(2, 1) == Outcome.WIN
        assert classify_outcome(0, 0) == Outcome.DRAW
        assert classify_outcome(1, 3) == Outcome.LOSS


class TestPrimaryCriteria:
    def test_exact_score_only(self):
        result = score(_pred(2, 1), _match(2, 1), _config())
        assert result.points == 10
        assert result.breakdown.exact_score == 10
        assert result.breakdown.correct_result == 0
        assert result.breakdown.correct_goals == 0
        assert result.breakdown.correct_scorers == 0
        assert result.labels == ["exact score"]

    def test_correct_result_blocks_goal_count(self):
        # 2-1 vs 3-1: both wins; opponent count matches but result fired first
        result = score(_pred(2, 1), _match(3, 1), _config())
        assert result.points == 3
        assert result.breakdown.correct_result == 3
        assert result.breakdown.correct_goals == 0
        assert result.breakdown.exact_score == 0

    def test_draw_not_exact(self):
        result = score(_pred(1, 1), _match(2, 2), _config())
        assert result.points == 3
        assert result.breakdown.correct_result == 3
        assert result.breakdown.correct_goals == 0

    def test_wrong_result_no_goal_match(self):
        result = score(_pred(2, 0), _match(1, 1), _config())
        assert result.points == 0
        assert result.labels == []

    def test_goal_count_one_side(self):
        # 2-0 predicted (win), 2-3 actual (loss): club count matches
        result = score(_pred(2, 0), _match(2, 3), _config())
        assert result.breakdown.correct_goals == 2
        assert result.points == 2

    def test_goal_count_both_sides_impossible_without_exact(self):
        # Both sides matching means exact score, so goal count never pays twice alone.
        result = score(_pred(1, 2), _match(1, 2), _config())
        assert result.breakdown.correct_goals == 0
        assert result.breakdown.exact_score == 10

    def test_goal_count_opponent_side(self):
        # 0-1 predicted (loss) vs 3-1 actual (win): opponent count matches
        result = score(_pred(0, 1), _match(3, 1), _config())
        assert result.breakdown.correct_goals == 2
        assert result.breakdown.correct_result == 0


class TestScorers:
    def test_scorers_stack_with_result(self):
        result = score(
            _pred(2, 1, ["a", "b", "c"]),
            _match(3, 0, ["a", "b", "x"]),
            _config(regular=1.5),
        )
        assert result.breakdown.correct_scorers == 15
        assert result.breakdown.correct_result == 4.5
        assert result.points == 19.5
        assert "2 scorer(s)" in result.labels

    def test_scorers_stack_with_exact(self):
        result = score(_pred(1, 0, ["a"]), _match(1, 0, ["a"]), _config())
        assert result.points == 15
        assert result.breakdown.exact_score == 10
        assert result.breakdown.correct_scorers == 5

    def test_scorers_without_primary(self):
        result = score(_pred(1, 0, ["a"]), _match(2, 2, ["a", "b"]), _config())
        assert result.breakdown.correct_result == 0
        assert result.points == 5

    def test_duplicate_scorers_count_once(self):
        assert count_correct_scorers(["a", "a", "b"], ["a", "a"]) == 1
        assert count_correct_scorers(None, ["a"]) == 0
        assert count_correct_scorers(["a"], []) == 0

    def test_scorers_do_not_change_primary_breakdown(self):
        config = _config(regular=2.0)
        cases = [((2, 1), (2, 1)), ((2, 1), (3, 1)), ((2, 0), (1, 1)), ((0, 1), (3, 1))]
        for (pc, po), (ac, ao) in cases:
            with_scorers = score(_pred(pc, po, ["a"]), _match(ac, ao, ["a"]), config).breakdown
            without = score(_pred(pc, po), _match(ac, ao, ["a"]), config).breakdown
            assert with_scorers.exact_score == without.exact_score
            assert with_scorers.correct_result == without.correct_result
            assert with_scorers.correct_goals == without.correct_goals


class TestMultiplier:
    def test_phase_multiplier_applies_to_every_award(self):
        result = score(_pred(2, 1, ["a"]), _match(2, 1, ["a"], phase="final"), _config(final=3.0))
        assert result.multiplier == 3.0
        assert result.breakdown.exact_score == 30
        assert result.breakdown.correct_scorers == 15

    def test_missing_phase_falls_back_to_regular(self):
        result = score(_pred(2, 1), _match(2, 1, phase="quarterfinal"), _config(regular=2.0, final=3.0))
        assert result.multiplier == 2.0
        assert result.points == 20

    def test_unknown_competition_uses_one(self):
        result = score(_pred(2, 1), _match(2, 1, competition="friendly"), _config(regular=2.0))
        assert result.multiplier == 1.0
        assert result.points == 10


def test_exact_score_property_holds_for_grid():
    config = _config()
    for c in range(4):
        for o in range(4):
            result = score(_pred(c, o), _match(c, o), config)
            assert result.breakdown.correct_result == 0
            assert result.breakdown.correct_goals == 0
            assert is_exact_score(_pred(c, o), _match(c, o))


def test_is_exact_score_needs_result():
    m = _match(1, 0)
    m.club_score = None
    assert not is_exact_score(_pred(1, 0), m)
