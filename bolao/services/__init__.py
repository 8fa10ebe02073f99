"""
Service layer: match state machine, prediction submission, ranking recompute.
Services orchestrate persistence; scoring itself stays pure in bolao.scoring.
"""
from .match_service import (
    MatchService,
    MatchNotFoundError,
    MatchTransitionError,
    ResultValidationError,
)
from .prediction_service import (
    PredictionService,
    PredictionValidationError,
    MatchUnavailableError,
)
from .ranking_service import RankingService

__all__ = [
    "MatchService",
    "MatchNotFoundError",
    "MatchTransitionError",
    "ResultValidationError",
    "PredictionService",
    "PredictionValidationError",
    "MatchUnavailableError",
    "RankingService",
]
