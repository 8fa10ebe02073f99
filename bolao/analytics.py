"""
Read-only views over scored predictions.
Evolution series for the ranking chart, per-participant summary, and the
participants' predictions list for one match. No persistence, no I/O.
"""
from __future__ import annotations

from typing import Any, Iterable

from bolao.config import Configuration
from bolao.models import Competition, Match, MatchStatus, Prediction, User
from bolao.ranking import RankingEntry
from bolao.scoring import score

EVOLUTION_TOP_N = 10
MIN_MATCHES_FOR_EVOLUTION = 2


def finished_matches_in_order(matches: Iterable[Match]) -> list[Match]:
    """Scorable matches sorted by kickoff, then id."""
    return sorted((m for m in matches if m.is_scorable), key=lambda m: (m.scheduled_at, m.id))


def _index_predictions(predictions: Iterable[Prediction]) -> dict[tuple[str, str], Prediction]:
    return {(p.user_id, p.match_id): p for p in predictions}


def _cumulative_series(
    user_id: str,
    ordered: list[Match],
    by_key: dict[tuple[str, str], Prediction],
    config: Configuration,
) -> list[float]:
    series: list[float] = []
    running = 0.0
    for m in ordered:
        p = by_key.get((user_id, m.id))
        if p is not None:
            running += score(p, m, config).points
        series.append(running)
    return series


def evolution_series(
    entries: list[RankingEntry],
    matches: Iterable[Match],
    predictions: Iterable[Prediction],
    config: Configuration,
    limit: int = EVOLUTION_TOP_N,
) -> dict[str, Any]:
    """
    Cumulative points per finished match for the top `limit` ranked users.
    Needs at least two finished matches; otherwise every list is empty.
    """
    ordered = finished_matches_in_order(matches)
    if len(ordered) < MIN_MATCHES_FOR_EVOLUTION:
        return {"labels": [], "match_ids": [], "series": []}
    by_key = _index_predictions(predictions)
    series = [
        {
            "user_id": e.user.id,
            "name": e.user.name,
            "points": _cumulative_series(e.user.id, ordered, by_key, config),
        }
        for e in entries[:limit]
    ]
    return {
        "labels": [m.scheduled_at.date().isoformat() for m in ordered],
        "match_ids": [m.id for m in ordered],
        "series": series,
    }


def participant_summary(
    user_id: str,
    matches: Iterable[Match],
    predictions: Iterable[Prediction],
    competitions: Iterable[Competition],
    config: Configuration,
) -> dict[str, Any]:
    """
    One participant's history: cumulative points, points per competition,
    and points per scoring criterion.
    """
    ordered = finished_matches_in_order(matches)
    by_key = _index_predictions(p for p in predictions if p.user_id == user_id)
    names = {c.id: c.name for c in competitions}
    per_competition: dict[str, float] = {}
    criteria = {"exact_score": 0.0, "correct_result": 0.0, "correct_goals": 0.0, "correct_scorers": 0.0}
    evolution: list[float] = []
    running = 0.0
    for m in ordered:
        p = by_key.get((user_id, m.id))
        if p is not None:
            result = score(p, m, config)
            running += result.points
            name = names.get(m.competition_id, m.competition_id)
            per_competition[name] = per_competition.get(name, 0.0) + result.points
            for key, value in result.breakdown.to_dict().items():
                criteria[key] += value
        evolution.append(running)
    return {
        "user_id": user_id,
        "total": running,
        "labels": [m.scheduled_at.date().isoformat() for m in ordered],
        "evolution": evolution,
        "per_competition": per_competition,
        "per_criterion": criteria,
    }


def match_predictions(
    match: Match,
    predictions: Iterable[Prediction],
    users: Iterable[User],
    config: Configuration,
    viewer_id: str | None = None,
) -> list[dict[str, Any]]:
    """
    Predictions on one match, for display.
    Upcoming: only the viewer's own. Otherwise everyone's, with points once scorable.
    Order: viewer first, then points (finished only), then name.
    """
    names = {u.id: u.name for u in users}
    rows: list[dict[str, Any]] = []
    for p in predictions:
        if p.match_id != match.id:
            continue
        if match.status == MatchStatus.UPCOMING.value and p.user_id != viewer_id:
            continue
        row: dict[str, Any] = {
            **p.to_dict(),
            "name": names.get(p.user_id, "Participant"),
            "is_viewer": p.user_id == viewer_id,
        }
        if match.is_scorable:
            row["score"] = score(p, match, config).to_dict()
        rows.append(row)

    def _order(row: dict[str, Any]) -> tuple[int, float, str]:
        points = row["score"]["points"] if "score" in row else 0.0
        return (0 if row["is_viewer"] else 1, -points, row["name"].lower())

    return sorted(rows, key=_order)
