"""
Repository interfaces for bolão data.
No business logic here, only read/write operations.
"""
from __future__ import annotations

import json
import logging
import re
import sqlite3
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Any

from bolao.config import Configuration, config_to_dict, migrate_config
from bolao.models import (
    Competition,
    Match,
    MatchStatus,
    Player,
    Prediction,
    User,
    UserRole,
    normalize_phase,
    normalize_timestamp,
    prediction_key,
)

logger = logging.getLogger(__name__)

CONFIG_ID = "main"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_list(s: str | None) -> list[str]:
    if not s:
        return []
    return [str(v) for v in json.loads(s)]


def slugify(name: str) -> str:
    """'Copa do Brasil' -> 'copa_do_brasil'. Used as id for auto-created competitions."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "_", ascii_name.lower()).strip("_")
    return slug or str(uuid.uuid4())


# ---------- UserRepository ----------


def _row_to_user(r: sqlite3.Row) -> User:
    return User(
        id=r["id"],
        name=r["name"],
        created_at=normalize_timestamp(r["created_at"]),
        email=r["email"],
        role=r["role"],
        username=r["username"],
        password_hash=r["password_hash"],
    )


class UserRepository:
    """CRUD for users."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        email: str | None = None,
        role: str = UserRole.PARTICIPANT.value,
        id: str | None = None,
    ) -> User:
        uid = id or str(uuid.uuid4())
        conn.execute(
            "INSERT INTO users (id, name, email, role, created_at) VALUES (?, ?, ?, ?, ?)",
            (uid, name, email, role, _now_iso()),
        )
        conn.commit()
        return self.get(conn, uid)  # type: ignore[return-value]

    def create_with_password(
        self,
        conn: sqlite3.Connection,
        username: str,
        password_hash: str,
        name: str | None = None,
        email: str | None = None,
        role: str = UserRole.PARTICIPANT.value,
    ) -> User:
        uid = str(uuid.uuid4())
        conn.execute(
            "INSERT INTO users (id, name, email, role, username, password_hash, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (uid, name or username, email, role, username, password_hash, _now_iso()),
        )
        conn.commit()
        return self.get(conn, uid)  # type: ignore[return-value]

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def get_by_username(self, conn: sqlite3.Connection, username: str) -> User | None:
        row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return _row_to_user(row) if row else None

    def list_all(self, conn: sqlite3.Connection) -> list[User]:
        rows = conn.execute("SELECT * FROM users ORDER BY created_at, id").fetchall()
        return [_row_to_user(r) for r in rows]

    def update_role(self, conn: sqlite3.Connection, user_id: str, role: str) -> None:
        conn.execute("UPDATE users SET role = ? WHERE id = ?", (role, user_id))
        conn.commit()


# ---------- CompetitionRepository ----------


class CompetitionRepository:
    """CRUD for competitions. Ids are immutable; names may change."""

    def create(self, conn: sqlite3.Connection, name: str, id: str | None = None) -> Competition:
        cid = id or slugify(name)
        conn.execute("INSERT INTO competitions (id, name) VALUES (?, ?)", (cid, name))
        conn.commit()
        return Competition(id=cid, name=name)

    def get(self, conn: sqlite3.Connection, competition_id: str) -> Competition | None:
        row = conn.execute(
            "SELECT id, name FROM competitions WHERE id = ?", (competition_id,)
        ).fetchone()
        return Competition(id=row["id"], name=row["name"]) if row else None

    def get_by_name(self, conn: sqlite3.Connection, name: str) -> Competition | None:
        row = conn.execute(
            "SELECT id, name FROM competitions WHERE lower(name) = lower(?)", (name.strip(),)
        ).fetchone()
        return Competition(id=row["id"], name=row["name"]) if row else None

    def ensure_by_name(self, conn: sqlite3.Connection, name: str) -> Competition:
        """Return the competition with this name, creating it when unknown (bulk import path)."""
        existing = self.get_by_name(conn, name)
        if existing is not None:
            return existing
        by_slug = self.get(conn, slugify(name))
        if by_slug is not None:
            return by_slug
        logger.info("Auto-creating competition %r", name)
        return self.create(conn, name.strip())

    def rename(self, conn: sqlite3.Connection, competition_id: str, name: str) -> None:
        conn.execute("UPDATE competitions SET name = ? WHERE id = ?", (name, competition_id))
        conn.commit()

    def list_all(self, conn: sqlite3.Connection) -> list[Competition]:
        rows = conn.execute("SELECT id, name FROM competitions ORDER BY rowid").fetchall()
        return [Competition(id=r["id"], name=r["name"]) for r in rows]


# ---------- PlayerRepository ----------


class PlayerRepository:
    """Club roster."""

    def create(self, conn: sqlite3.Connection, name: str, number: int | None = None, id: str | None = None) -> Player:
        pid = id or str(uuid.uuid4())
        conn.execute("INSERT INTO players (id, name, number) VALUES (?, ?, ?)", (pid, name, number))
        conn.commit()
        return Player(id=pid, name=name, number=number)

    def list_all(self, conn: sqlite3.Connection) -> list[Player]:
        # Unnumbered players last.
        rows = conn.execute(
            "SELECT id, name, number FROM players ORDER BY number IS NULL, number, name"
        ).fetchall()
        return [Player(id=r["id"], name=r["name"], number=r["number"]) for r in rows]


# ---------- MatchRepository ----------


def _row_to_match(r: sqlite3.Row) -> Match:
    return Match(
        id=r["id"],
        competition_id=r["competition_id"],
        opponent=r["opponent"],
        scheduled_at=normalize_timestamp(r["scheduled_at"]),
        status=r["status"],
        phase=normalize_phase(r["phase"]),
        home_away=r["home_away"],
        location=r["location"],
        club_score=r["club_score"],
        opponent_score=r["opponent_score"],
        scorers=_load_list(r["scorers"]),
    )


class MatchRepository:
    """CRUD for matches. Status changes go through MatchService."""

    def create(
        self,
        conn: sqlite3.Connection,
        competition_id: str,
        opponent: str,
        scheduled_at: Any,
        phase: str | None = None,
        home_away: str = "home",
        location: str | None = None,
        id: str | None = None,
    ) -> Match:
        mid = id or str(uuid.uuid4())
        conn.execute(
            "INSERT INTO matches (id, competition_id, opponent, scheduled_at, status, phase, home_away, location, scorers) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, '[]')",
            (
                mid,
                competition_id,
                opponent,
                normalize_timestamp(scheduled_at).isoformat(),
                MatchStatus.UPCOMING.value,
                normalize_phase(phase),
                home_away,
                location,
            ),
        )
        conn.commit()
        return self.get(conn, mid)  # type: ignore[return-value]

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        return _row_to_match(row) if row else None

    def get_status(self, conn: sqlite3.Connection, match_id: str) -> str | None:
        """Fresh read of the stored status only."""
        row = conn.execute("SELECT status FROM matches WHERE id = ?", (match_id,)).fetchone()
        return row["status"] if row else None

    def list_all(
        self,
        conn: sqlite3.Connection,
        status: str | None = None,
        competition_id: str | None = None,
    ) -> list[Match]:
        sql = "SELECT * FROM matches"
        clauses: list[str] = []
        args: list[Any] = []
        if status:
            clauses.append("status = ?")
            args.append(status)
        if competition_id:
            clauses.append("competition_id = ?")
            args.append(competition_id)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY scheduled_at, id"
        return [_row_to_match(r) for r in conn.execute(sql, args).fetchall()]

    def update_status(self, conn: sqlite3.Connection, match_id: str, status: str) -> None:
        conn.execute("UPDATE matches SET status = ? WHERE id = ?", (status, match_id))
        conn.commit()

    def update_result(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        club_score: int | None,
        opponent_score: int | None,
        scorers: list[str],
    ) -> None:
        conn.execute(
            "UPDATE matches SET club_score = ?, opponent_score = ?, scorers = ? WHERE id = ?",
            (club_score, opponent_score, json.dumps(list(scorers)), match_id),
        )
        conn.commit()

    def delete(self, conn: sqlite3.Connection, match_id: str) -> None:
        """Delete a match. Its predictions stay behind as orphans and are ignored by the ranking."""
        conn.execute("DELETE FROM matches WHERE id = ?", (match_id,))
        conn.commit()


# ---------- PredictionRepository ----------


def _row_to_prediction(r: sqlite3.Row) -> Prediction:
    return Prediction(
        user_id=r["user_id"],
        match_id=r["match_id"],
        club_score=r["club_score"],
        opponent_score=r["opponent_score"],
        scorers=_load_list(r["scorers"]),
        submitted_at=normalize_timestamp(r["submitted_at"]),
    )


class PredictionRepository:
    """Predictions keyed by '{user_id}_{match_id}'. Writes are upserts (last writer wins)."""

    def upsert(self, conn: sqlite3.Connection, prediction: Prediction) -> Prediction:
        submitted = prediction.submitted_at or datetime.now(timezone.utc)
        conn.execute(
            "INSERT INTO predictions (id, user_id, match_id, club_score, opponent_score, scorers, submitted_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET club_score = excluded.club_score, "
            "opponent_score = excluded.opponent_score, scorers = excluded.scorers, "
            "submitted_at = excluded.submitted_at",
            (
                prediction_key(prediction.user_id, prediction.match_id),
                prediction.user_id,
                prediction.match_id,
                prediction.club_score,
                prediction.opponent_score,
                json.dumps(list(prediction.scorers)),
                submitted.isoformat(),
            ),
        )
        conn.commit()
        return self.get(conn, prediction.user_id, prediction.match_id)  # type: ignore[return-value]

    def get(self, conn: sqlite3.Connection, user_id: str, match_id: str) -> Prediction | None:
        row = conn.execute(
            "SELECT * FROM predictions WHERE id = ?", (prediction_key(user_id, match_id),)
        ).fetchone()
        return _row_to_prediction(row) if row else None

    def list_by_user(self, conn: sqlite3.Connection, user_id: str) -> list[Prediction]:
        rows = conn.execute(
            "SELECT * FROM predictions WHERE user_id = ? ORDER BY submitted_at", (user_id,)
        ).fetchall()
        return [_row_to_prediction(r) for r in rows]

    def list_by_match(self, conn: sqlite3.Connection, match_id: str) -> list[Prediction]:
        rows = conn.execute("SELECT * FROM predictions WHERE match_id = ?", (match_id,)).fetchall()
        return [_row_to_prediction(r) for r in rows]

    def list_all(self, conn: sqlite3.Connection) -> list[Prediction]:
        return [_row_to_prediction(r) for r in conn.execute("SELECT * FROM predictions").fetchall()]


# ---------- ConfigRepository ----------


class ConfigRepository:
    """Singleton scoring configuration stored as a JSON document."""

    def load_raw(self, conn: sqlite3.Connection) -> dict[str, Any] | None:
        row = conn.execute("SELECT data FROM config WHERE id = ?", (CONFIG_ID,)).fetchone()
        return json.loads(row["data"]) if row else None

    def save_raw(self, conn: sqlite3.Connection, data: dict[str, Any]) -> None:
        conn.execute(
            "INSERT INTO config (id, data, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at",
            (CONFIG_ID, json.dumps(data), _now_iso()),
        )
        conn.commit()

    def load(self, conn: sqlite3.Connection) -> Configuration:
        """
        Current configuration. Legacy documents are migrated here and the
        synthesized table is written back so the migration runs only once.
        """
        raw = self.load_raw(conn)
        if raw is None:
            return Configuration()
        result = migrate_config(raw)
        if result.migrated:
            merged = dict(raw)
            merged["championshipPhaseWeights"] = result.config.phase_weights
            self.save_raw(conn, merged)
            logger.info("Persisted migrated scoring configuration")
        return result.config

    def save(self, conn: sqlite3.Connection, config: Configuration) -> None:
        self.save_raw(conn, config_to_dict(config))
