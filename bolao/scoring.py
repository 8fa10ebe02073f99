"""
Prediction scoring for the bolão.

Primary criteria are mutually exclusive, checked in order:
exact score > correct result > correct goal count per side.
Correct scorers always stack on top of whichever primary criterion fired.
Every award is multiplied by the competition/phase multiplier.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from bolao.config import Configuration, resolve_multiplier
from bolao.models import Match, Prediction


class Outcome(str, Enum):
    """Result from the club's perspective."""
    WIN = "win"
    DRAW = "draw"
    LOSS = "loss"


LABEL_EXACT_SCORE = "exact score"
LABEL_CORRECT_RESULT = "result"
LABEL_CORRECT_GOALS = "goals"


def classify_outcome(club_score: int, opponent_score: int) -> Outcome:
    if club_score > opponent_score:
        return Outcome.WIN
    if club_score < opponent_score:
        return Outcome.LOSS
    return Outcome.DRAW


@dataclass
class ScoreBreakdown:
    """Points per criterion (already multiplied)."""
    exact_score: float = 0.0
    correct_result: float = 0.0
    correct_goals: float = 0.0
    correct_scorers: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "exact_score": self.exact_score,
            "correct_result": self.correct_result,
            "correct_goals": self.correct_goals,
            "correct_scorers": self.correct_scorers,
        }


@dataclass
class ScoreResult:
    points: float
    breakdown: ScoreBreakdown
    multiplier: float = 1.0
    labels: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": self.points,
            "multiplier": self.multiplier,
            "breakdown": self.breakdown.to_dict(),
            "labels": list(self.labels),
        }


def is_exact_score(prediction: Prediction, match: Match) -> bool:
    return (
        match.has_result
        and prediction.club_score == match.club_score
        and prediction.opponent_score == match.opponent_score
    )


def count_correct_scorers(predicted: Iterable[str] | None, actual: Iterable[str] | None) -> int:
    """Distinct predicted ids that appear in the actual scorer set; repeats count once."""
    actual_set = set(actual or ())
    return len(set(predicted or ()) & actual_set)


def _primary_points(
    prediction: Prediction, match: Match, config: Configuration, multiplier: float
) -> tuple[ScoreBreakdown, list[str]]:
    """Exact score, else result, else goal count per side. At most one tier fires."""
    weights = config.weights
    breakdown = ScoreBreakdown()
    labels: list[str] = []
    if (
        prediction.club_score == match.club_score
        and prediction.opponent_score == match.opponent_score
    ):
        breakdown.exact_score = weights.exact_score * multiplier
        labels.append(LABEL_EXACT_SCORE)
        return breakdown, labels

    predicted = classify_outcome(prediction.club_score, prediction.opponent_score)
    actual = classify_outcome(match.club_score, match.opponent_score)
    if predicted == actual:
        breakdown.correct_result = weights.correct_result * multiplier
        labels.append(LABEL_CORRECT_RESULT)
        return breakdown, labels

    goals = 0.0
    if prediction.club_score == match.club_score:
        goals += weights.correct_goals * multiplier
    if prediction.opponent_score == match.opponent_score:
        goals += weights.correct_goals * multiplier
    if goals > 0:
        breakdown.correct_goals = goals
        labels.append(LABEL_CORRECT_GOALS)
    return breakdown, labels


def _scorer_points(prediction: Prediction, match: Match, config: Configuration, multiplier: float) -> tuple[float, int]:
    correct = count_correct_scorers(prediction.scorers, match.scorers)
    return correct * config.weights.correct_scorers * multiplier, correct


def score(prediction: Prediction, match: Match, config: Configuration) -> ScoreResult:
    """
    Points for one prediction against a match outcome.
    Callers only pass matches with both scores reported (see Match.is_scorable).
    """
    multiplier = resolve_multiplier(config, match.competition_id, match.phase)
    breakdown, labels = _primary_points(prediction, match, config, multiplier)
    scorer_points, correct = _scorer_points(prediction, match, config, multiplier)
    if correct > 0:
        breakdown.correct_scorers = scorer_points
        labels.append(f"{correct} scorer(s)")
    total = (
        breakdown.exact_score
        + breakdown.correct_result
        + breakdown.correct_goals
        + breakdown.correct_scorers
    )
    return ScoreResult(points=total, breakdown=breakdown, multiplier=multiplier, labels=labels)
