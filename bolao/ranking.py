"""
Ranking aggregation: fold every prediction on every finished match into
per-user totals, per-competition subtotals and an exact-score counter.
Always recomputed in full from a snapshot; nothing is patched incrementally.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from bolao.config import Configuration
from bolao.models import Competition, Match, Prediction, User
from bolao.scoring import is_exact_score, score

logger = logging.getLogger(__name__)

BUCKET_HIGH = "high"
BUCKET_MEDIUM = "medium"
BUCKET_LOW = "low"
HIGH_PERCENTILE = 0.7
MEDIUM_PERCENTILE = 0.3

TOTAL_COLUMN = "total"


@dataclass
class PoolSnapshot:
    """Everything the ranking needs, read at one point in time."""
    users: list[User] = field(default_factory=list)
    competitions: list[Competition] = field(default_factory=list)
    matches: list[Match] = field(default_factory=list)
    predictions: list[Prediction] = field(default_factory=list)
    config: Configuration = field(default_factory=Configuration)


@dataclass
class RankingEntry:
    user: User
    per_competition: dict[str, float] = field(default_factory=dict)
    grand_total: float = 0.0
    exact_score_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user.id,
            "name": self.user.name,
            "per_competition": dict(self.per_competition),
            "grand_total": self.grand_total,
            "exact_score_count": self.exact_score_count,
        }


def _ranking_sort_key(entry: RankingEntry) -> tuple[float, int, str]:
    # Ties: more exact scores first, then user id.
    return (-entry.grand_total, -entry.exact_score_count, entry.user.id)


def aggregate(
    users: Iterable[User],
    matches: Iterable[Match],
    predictions: Iterable[Prediction],
    config: Configuration,
) -> list[RankingEntry]:
    """
    Ranking over all finished matches with a reported score.
    Every user appears, even with no predictions. Predictions whose user or
    match is unknown are skipped.
    """
    entries: dict[str, RankingEntry] = {}
    for user in users:
        if user.id not in entries:
            entries[user.id] = RankingEntry(user=user)

    scorable = {m.id: m for m in matches if m.is_scorable}
    for prediction in predictions:
        match = scorable.get(prediction.match_id)
        if match is None:
            continue
        entry = entries.get(prediction.user_id)
        if entry is None:
            logger.debug("Skipping orphaned prediction %s (unknown user)", prediction.id)
            continue
        result = score(prediction, match, config)
        comp = match.competition_id
        entry.per_competition[comp] = entry.per_competition.get(comp, 0.0) + result.points
        entry.grand_total += result.points
        if is_exact_score(prediction, match):
            entry.exact_score_count += 1

    return sorted(entries.values(), key=_ranking_sort_key)


def recompute_ranking(snapshot: PoolSnapshot) -> list[RankingEntry]:
    """Recompute the ranking from scratch for one snapshot."""
    return aggregate(snapshot.users, snapshot.matches, snapshot.predictions, snapshot.config)


# ---------- Presentation ----------


def score_bucket(value: float, values: Iterable[float]) -> str:
    """
    Relative position of value within values for display colouring:
    >= 0.7 of the range is high, >= 0.3 medium, else low. A flat range is medium.
    """
    vals = list(values)
    if not vals:
        return BUCKET_MEDIUM
    lo, hi = min(vals), max(vals)
    spread = hi - lo
    if spread == 0:
        return BUCKET_MEDIUM
    percentile = (value - lo) / spread
    if percentile >= HIGH_PERCENTILE:
        return BUCKET_HIGH
    if percentile >= MEDIUM_PERCENTILE:
        return BUCKET_MEDIUM
    return BUCKET_LOW


def _display_name(competition_id: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in competition_id.split("_"))


def ranking_columns(competitions: Iterable[Competition], matches: Iterable[Match]) -> list[Competition]:
    """
    Registered competitions in order, then any competition referenced by a match
    but never registered (named from its id).
    """
    columns = list(competitions)
    known = {c.id for c in columns}
    for m in matches:
        if m.competition_id and m.competition_id not in known:
            known.add(m.competition_id)
            columns.append(Competition(id=m.competition_id, name=_display_name(m.competition_id)))
    return columns


def ranking_table(entries: list[RankingEntry], columns: list[Competition]) -> list[dict[str, Any]]:
    """Rows for the ranking view: position, per-column scores with buckets, total."""
    column_values = {
        c.id: [e.per_competition.get(c.id, 0.0) for e in entries] for c in columns
    }
    totals = [e.grand_total for e in entries]
    rows: list[dict[str, Any]] = []
    for position, entry in enumerate(entries, start=1):
        cells = []
        for c in columns:
            value = entry.per_competition.get(c.id, 0.0)
            cells.append({
                "competition_id": c.id,
                "points": value,
                "bucket": score_bucket(value, column_values[c.id]),
            })
        rows.append({
            "position": position,
            "user_id": entry.user.id,
            "name": entry.user.name,
            "exact_score_count": entry.exact_score_count,
            "competitions": cells,
            TOTAL_COLUMN: entry.grand_total,
            "total_bucket": score_bucket(entry.grand_total, totals),
        })
    return rows
