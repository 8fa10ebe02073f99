"""
Ranking on demand: read one snapshot from storage, recompute everything from it.
"""
from __future__ import annotations

import sqlite3
from typing import Any

from bolao.analytics import evolution_series, match_predictions, participant_summary
from bolao.persistence.repositories import (
    CompetitionRepository,
    ConfigRepository,
    MatchRepository,
    PredictionRepository,
    UserRepository,
)
from bolao.ranking import PoolSnapshot, ranking_columns, ranking_table, recompute_ranking


class RankingService:
    """Builds PoolSnapshots and hands them to the pure ranking functions."""

    def __init__(self) -> None:
        self._user_repo = UserRepository()
        self._competition_repo = CompetitionRepository()
        self._match_repo = MatchRepository()
        self._prediction_repo = PredictionRepository()
        self._config_repo = ConfigRepository()

    def load_snapshot(self, conn: sqlite3.Connection) -> PoolSnapshot:
        return PoolSnapshot(
            users=self._user_repo.list_all(conn),
            competitions=self._competition_repo.list_all(conn),
            matches=self._match_repo.list_all(conn),
            predictions=self._prediction_repo.list_all(conn),
            config=self._config_repo.load(conn),
        )

    def ranking(self, conn: sqlite3.Connection) -> dict[str, Any]:
        snapshot = self.load_snapshot(conn)
        entries = recompute_ranking(snapshot)
        columns = ranking_columns(snapshot.competitions, snapshot.matches)
        return {
            "columns": [c.to_dict() for c in columns],
            "rows": ranking_table(entries, columns),
        }

    def evolution(self, conn: sqlite3.Connection, limit: int) -> dict[str, Any]:
        snapshot = self.load_snapshot(conn)
        entries = recompute_ranking(snapshot)
        return evolution_series(entries, snapshot.matches, snapshot.predictions, snapshot.config, limit=limit)

    def participant(self, conn: sqlite3.Connection, user_id: str) -> dict[str, Any]:
        snapshot = self.load_snapshot(conn)
        return participant_summary(
            user_id, snapshot.matches, snapshot.predictions, snapshot.competitions, snapshot.config
        )

    def match_predictions(self, conn: sqlite3.Connection, match_id: str, viewer_id: str | None) -> list[dict[str, Any]] | None:
        match = self._match_repo.get(conn, match_id)
        if match is None:
            return None
        return match_predictions(
            match,
            self._prediction_repo.list_by_match(conn, match_id),
            self._user_repo.list_all(conn),
            self._config_repo.load(conn),
            viewer_id=viewer_id,
        )
