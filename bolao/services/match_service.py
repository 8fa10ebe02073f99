"""
Match lifecycle: status state machine and result entry.
upcoming → live → finished, forward only. Backward moves are admin corrections.
"""
from __future__ import annotations

import logging
import sqlite3

from bolao.models import Match, MatchStatus
from bolao.persistence.repositories import MatchRepository

logger = logging.getLogger(__name__)

# ---------- Exceptions ----------


class MatchNotFoundError(LookupError):
    """No match with the given id."""


class MatchTransitionError(ValueError):
    """Invalid match status transition (e.g. finished -> live without correction)."""


class ResultValidationError(ValueError):
    """Outcome violates score or scorer invariants."""


# ---------- Valid transitions ----------

_VALID_TRANSITIONS: dict[str, set[str]] = {
    MatchStatus.UPCOMING.value: {MatchStatus.LIVE.value, MatchStatus.FINISHED.value},  # admin may skip live
    MatchStatus.LIVE.value: {MatchStatus.FINISHED.value},
    MatchStatus.FINISHED.value: set(),
}

_ORDER = [MatchStatus.UPCOMING.value, MatchStatus.LIVE.value, MatchStatus.FINISHED.value]


def validate_result(club_score: int | None, opponent_score: int | None, scorers: list[str]) -> None:
    """Scores non-negative when set; scorer count never above the club's goals."""
    for label, value in (("club score", club_score), ("opponent score", opponent_score)):
        if value is not None and value < 0:
            raise ResultValidationError(f"{label} cannot be negative")
    goals = club_score or 0
    if goals == 0 and scorers:
        raise ResultValidationError("Scorers given but the club scored no goals")
    if len(scorers) > goals:
        raise ResultValidationError(
            f"{len(scorers)} scorer(s) given but the club scored only {goals} goal(s)"
        )


class MatchService:
    """
    Domain logic for matches: status transitions and result entry.
    Persistence is delegated to MatchRepository.
    """

    def __init__(self) -> None:
        self._match_repo = MatchRepository()

    def _get(self, conn: sqlite3.Connection, match_id: str) -> Match:
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise MatchNotFoundError(f"Match not found: {match_id}")
        return match

    def transition_status(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        new_status: str,
        correction: bool = False,
    ) -> Match:
        """
        Move a match to new_status. Forward moves follow _VALID_TRANSITIONS.
        Backward moves are only applied with correction=True and are logged as such.
        Finishing requires both scores.
        """
        try:
            new_status = MatchStatus(new_status).value
        except ValueError:
            raise MatchTransitionError(f"Unknown status: {new_status}") from None
        match = self._get(conn, match_id)
        current = match.status
        if current == new_status:
            return match
        allowed = _VALID_TRANSITIONS.get(current, set())
        if new_status not in allowed:
            if correction and _ORDER.index(new_status) < _ORDER.index(current):
                logger.warning("Admin correction on match %s: %s -> %s", match_id, current, new_status)
            else:
                raise MatchTransitionError(
                    f"Invalid transition: {current} -> {new_status}. "
                    f"Allowed from {current}: {sorted(allowed)}"
                )
        if new_status == MatchStatus.FINISHED.value and not match.has_result:
            raise MatchTransitionError("Cannot finish a match without both scores")
        if new_status == MatchStatus.UPCOMING.value and (
            match.club_score is not None or match.opponent_score is not None or match.scorers
        ):
            # Back to open predictions: the outcome must not be visible.
            self._match_repo.update_result(conn, match_id, None, None, [])
            logger.warning("Cleared outcome of match %s on correction to upcoming", match_id)
        self._match_repo.update_status(conn, match_id, new_status)
        logger.info("Match %s status %s -> %s", match_id, current, new_status)
        return self._get(conn, match_id)

    def record_result(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        club_score: int | None,
        opponent_score: int | None,
        scorers: list[str] | None = None,
    ) -> Match:
        """
        Store the outcome of a started match. While live it may be partial;
        once finished both scores are required. Upcoming matches have no outcome
        (use finish() to enter a result for a match that skipped live).
        """
        scorers = [s for s in (scorers or []) if s]
        validate_result(club_score, opponent_score, scorers)
        match = self._get(conn, match_id)
        if match.status == MatchStatus.UPCOMING.value:
            raise MatchTransitionError("Match has not started; no outcome can be recorded yet")
        if match.status == MatchStatus.FINISHED.value and (club_score is None or opponent_score is None):
            raise ResultValidationError("A finished match needs both scores")
        self._match_repo.update_result(conn, match_id, club_score, opponent_score, scorers)
        logger.info("Match %s result %s-%s scorers=%s", match_id, club_score, opponent_score, scorers)
        return self._get(conn, match_id)

    def finish(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        club_score: int,
        opponent_score: int,
        scorers: list[str] | None = None,
    ) -> Match:
        """Record the complete outcome and move the match to finished, from upcoming or live."""
        if club_score is None or opponent_score is None:
            raise ResultValidationError("A finished match needs both scores")
        scorers = [s for s in (scorers or []) if s]
        validate_result(club_score, opponent_score, scorers)
        match = self._get(conn, match_id)
        if match.status == MatchStatus.FINISHED.value:
            return self.record_result(conn, match_id, club_score, opponent_score, scorers)
        self._match_repo.update_result(conn, match_id, club_score, opponent_score, scorers)
        logger.info("Match %s result %s-%s scorers=%s", match_id, club_score, opponent_score, scorers)
        return self.transition_status(conn, match_id, MatchStatus.FINISHED.value)
