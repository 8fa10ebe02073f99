"""
Prediction submission.
Input is validated, then the match status is re-read from storage right
before the write so a match that went live after the client loaded it
cannot take new predictions.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from bolao.config import Configuration
from bolao.models import MatchStatus, Prediction
from bolao.persistence.repositories import ConfigRepository, MatchRepository, PredictionRepository

logger = logging.getLogger(__name__)

# ---------- Exceptions ----------


class PredictionValidationError(ValueError):
    """Prediction input is malformed (bad score, too many scorers, ...)."""


class MatchUnavailableError(ValueError):
    """Match no longer accepts predictions (missing, live or finished)."""

    def __init__(self, match_id: str, status: str | None) -> None:
        self.match_id = match_id
        self.status = status
        super().__init__("Match no longer available for predictions")


def _parse_score(label: str, value: Any, max_goals: int) -> int:
    if isinstance(value, bool):
        raise PredictionValidationError(f"{label} must be a whole number")
    if isinstance(value, str):
        value = value.strip()
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        # OverflowError: infinity (JSON 1e999)
        raise PredictionValidationError(f"{label} must be a whole number") from None
    if isinstance(value, float) and value != n:
        raise PredictionValidationError(f"{label} must be a whole number")
    if n < 0:
        raise PredictionValidationError(f"{label} cannot be negative")
    if n > max_goals:
        raise PredictionValidationError(f"{label} cannot be above {max_goals}")
    return n


def validate_prediction(
    club_score: Any,
    opponent_score: Any,
    scorers: list[str] | None,
    config: Configuration,
) -> tuple[int, int, list[str]]:
    """
    Return cleaned (club_score, opponent_score, scorers) or raise PredictionValidationError.
    Blank scorer entries are dropped before counting.
    """
    club = _parse_score("Club score", club_score, config.max_goals)
    opponent = _parse_score("Opponent score", opponent_score, config.max_goals)
    cleaned = [str(s) for s in (scorers or []) if s]
    if club == 0 and cleaned:
        raise PredictionValidationError("Scorers cannot be picked when the club scores 0 goals")
    if len(cleaned) > club:
        raise PredictionValidationError(
            f"{len(cleaned)} scorer(s) picked but the predicted club score is only {club}"
        )
    return club, opponent, cleaned


class PredictionService:
    """Create or replace a user's prediction while the match is upcoming."""

    def __init__(self) -> None:
        self._match_repo = MatchRepository()
        self._prediction_repo = PredictionRepository()
        self._config_repo = ConfigRepository()

    def submit(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        match_id: str,
        club_score: Any,
        opponent_score: Any,
        scorers: list[str] | None = None,
    ) -> Prediction:
        """
        Validate and upsert the (user, match) prediction.
        Raises PredictionValidationError for bad input and MatchUnavailableError
        when the stored match status is not upcoming at write time.
        """
        config = self._config_repo.load(conn)
        club, opponent, cleaned = validate_prediction(club_score, opponent_score, scorers, config)
        # Authoritative status, read immediately before the write.
        status = self._match_repo.get_status(conn, match_id)
        if status != MatchStatus.UPCOMING.value:
            logger.info("Rejected prediction by %s on match %s (status=%s)", user_id, match_id, status)
            raise MatchUnavailableError(match_id, status)
        prediction = self._prediction_repo.upsert(
            conn,
            Prediction(
                user_id=user_id,
                match_id=match_id,
                club_score=club,
                opponent_score=opponent,
                scorers=cleaned,
                submitted_at=datetime.now(timezone.utc),
            ),
        )
        logger.info("Saved prediction %s: %s-%s", prediction.id, club, opponent)
        return prediction
