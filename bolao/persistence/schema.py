"""
SQLite schema for bolão entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def users_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT,
        role TEXT NOT NULL DEFAULT 'participant',
        username TEXT,
        password_hash TEXT,
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_users_username ON users(username);
    """


def competitions_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS competitions (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL
    );
    """


def players_schema() -> str:
    """Club roster. Scorers reference players by id."""
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        number INTEGER
    );
    """


def matches_schema() -> str:
    """status: upcoming | live | finished. Scores NULL until reported; scorers is a JSON list."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        competition_id TEXT NOT NULL,
        opponent TEXT NOT NULL,
        scheduled_at TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'upcoming',
        phase TEXT NOT NULL DEFAULT 'regular',
        home_away TEXT NOT NULL DEFAULT 'home',
        location TEXT,
        club_score INTEGER,
        opponent_score INTEGER,
        scorers TEXT NOT NULL DEFAULT '[]',
        FOREIGN KEY (competition_id) REFERENCES competitions(id)
    );
    CREATE INDEX IF NOT EXISTS ix_matches_competition ON matches(competition_id);
    CREATE INDEX IF NOT EXISTS ix_matches_status ON matches(status);
    """


def predictions_schema() -> str:
    """id = '{user_id}_{match_id}': one prediction per user per match."""
    return """
    CREATE TABLE IF NOT EXISTS predictions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        match_id TEXT NOT NULL,
        club_score INTEGER NOT NULL,
        opponent_score INTEGER NOT NULL,
        scorers TEXT NOT NULL DEFAULT '[]',
        submitted_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_predictions_match ON predictions(match_id);
    CREATE INDEX IF NOT EXISTS ix_predictions_user ON predictions(user_id);
    """


def config_schema() -> str:
    """Singleton scoring configuration, stored as one JSON document (id = 'main')."""
    return """
    CREATE TABLE IF NOT EXISTS config (
        id TEXT PRIMARY KEY,
        data TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """


def all_schema_sql() -> str:
    return "\n".join([
        users_schema(),
        competitions_schema(),
        players_schema(),
        matches_schema(),
        predictions_schema(),
        config_schema(),
    ])
