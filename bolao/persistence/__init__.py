"""
Persistence layer for bolão data.
Read/write interfaces only; scoring lives in bolao.scoring.
"""
from .db import get_connection, init_db
from .repositories import (
    UserRepository,
    CompetitionRepository,
    PlayerRepository,
    MatchRepository,
    PredictionRepository,
    ConfigRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "UserRepository",
    "CompetitionRepository",
    "PlayerRepository",
    "MatchRepository",
    "PredictionRepository",
    "ConfigRepository",
]
