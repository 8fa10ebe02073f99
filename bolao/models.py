"""
Data models for the bolão backend.
Domain objects only. Persistence and API code live elsewhere.

Matches move upcoming → live → finished; predictions are keyed by
(user, match) and only editable while the match is upcoming.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


# ---------- Match status (state machine) ----------
class MatchStatus(str, Enum):
    """Match lifecycle: upcoming → live → finished."""
    UPCOMING = "upcoming"  # Predictions open
    LIVE = "live"          # Predictions frozen, outcome partial
    FINISHED = "finished"  # Outcome authoritative, scoring applies


# ---------- Phase ----------
class Phase(str, Enum):
    REGULAR = "regular"
    ROUND_OF_16 = "round_of_16"
    QUARTERFINAL = "quarterfinal"
    SEMIFINAL = "semifinal"
    FINAL = "final"


# Names written by the older app; normalized on read.
PHASE_ALIASES: dict[str, str] = {
    "oitavas": Phase.ROUND_OF_16.value,
    "round-of-16": Phase.ROUND_OF_16.value,
    "quartas": Phase.QUARTERFINAL.value,
    "semi": Phase.SEMIFINAL.value,
}


def normalize_phase(phase: str | None) -> str:
    """Map stored phase names to Phase values. Empty means regular; unknown names pass through."""
    if not phase:
        return Phase.REGULAR.value
    key = str(phase).strip().lower()
    return PHASE_ALIASES.get(key, key)


class HomeAway(str, Enum):
    HOME = "home"
    AWAY = "away"


class UserRole(str, Enum):
    PARTICIPANT = "participant"
    ADMIN = "admin"


# ---------- Timestamps ----------
def normalize_timestamp(value: Any) -> datetime:
    """
    Return an aware UTC datetime for any timestamp shape the storage layer hands us:
    datetime (naive = UTC), date, ISO-8601 string, or epoch seconds.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def prediction_key(user_id: str, match_id: str) -> str:
    """Deterministic composite key: one prediction per (user, match)."""
    return f"{user_id}_{match_id}"


# ---------- User ----------
@dataclass
class User:
    """
    A pool participant. Points are never stored here; they are recomputed
    from predictions and match results.
    """
    id: str
    name: str
    created_at: datetime
    email: str | None = None
    role: str = UserRole.PARTICIPANT.value
    username: str | None = None
    password_hash: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "created_at": self.created_at.isoformat(),
        }
        if self.email is not None:
            d["email"] = self.email
        if self.username is not None:
            d["username"] = self.username
        return d


# ---------- Competition ----------
@dataclass
class Competition:
    """A tournament the club plays in. Only the name changes after creation."""
    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


# ---------- Player ----------
@dataclass
class Player:
    """Club roster entry. Scorers are referenced by player id."""
    id: str
    name: str
    number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.number is not None:
            d["number"] = self.number
        return d


# ---------- Match ----------
@dataclass
class Match:
    """
    One club fixture. Scores are from the club's perspective and stay None
    until reported. Invariant: len(scorers) <= club_score.
    """
    id: str
    competition_id: str
    opponent: str
    scheduled_at: datetime
    status: str = MatchStatus.UPCOMING.value
    phase: str = Phase.REGULAR.value
    home_away: str = HomeAway.HOME.value
    club_score: int | None = None
    opponent_score: int | None = None
    scorers: list[str] = field(default_factory=list)
    location: str | None = None

    @property
    def has_result(self) -> bool:
        return self.club_score is not None and self.opponent_score is not None

    @property
    def is_scorable(self) -> bool:
        """Scoring only applies to finished matches with both scores reported."""
        return self.status == MatchStatus.FINISHED.value and self.has_result

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "competition_id": self.competition_id,
            "opponent": self.opponent,
            "scheduled_at": self.scheduled_at.isoformat(),
            "status": self.status,
            "phase": self.phase,
            "home_away": self.home_away,
            "club_score": self.club_score,
            "opponent_score": self.opponent_score,
            "scorers": list(self.scorers),
        }
        if self.location is not None:
            d["location"] = self.location
        return d


# ---------- Prediction ----------
@dataclass
class Prediction:
    """
    A user's predicted outcome for one match ("palpite").
    Invariants: scores >= 0; len(scorers) <= club_score; no scorers when club_score == 0.
    """
    user_id: str
    match_id: str
    club_score: int
    opponent_score: int
    scorers: list[str] = field(default_factory=list)
    submitted_at: datetime | None = None

    @property
    def id(self) -> str:
        return prediction_key(self.user_id, self.match_id)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "match_id": self.match_id,
            "club_score": self.club_score,
            "opponent_score": self.opponent_score,
            "scorers": list(self.scorers),
        }
        if self.submitted_at is not None:
            d["submitted_at"] = self.submitted_at.isoformat()
        return d
