"""
REST API for the bolão backend.
Thin wrappers around domain logic and persistence.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Generator

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from bolao.auth import authenticate, create_access_token, decode_token, hash_password
from bolao.config import config_from_dict
from bolao.models import HomeAway, MatchStatus, Phase, User, UserRole
from bolao.persistence import (
    CompetitionRepository,
    ConfigRepository,
    MatchRepository,
    PlayerRepository,
    PredictionRepository,
    UserRepository,
    get_connection,
    init_db,
)
from bolao.persistence.db import get_db_path
from bolao.services import (
    MatchNotFoundError,
    MatchService,
    MatchTransitionError,
    MatchUnavailableError,
    PredictionService,
    PredictionValidationError,
    RankingService,
    ResultValidationError,
)
from bolao.settings import get_settings, setup_logging

logger = logging.getLogger(__name__)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(get_settings())
    init_db(db_path=get_db_path())
    logger.info("Database ready at %s", get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Bolão API",
    description="Prediction pool: matches, predictions, scoring and ranking",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

security = HTTPBearer(auto_error=False)


# ---------- Request/Response models ----------


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    name: str | None = Field(None, max_length=200)
    email: str | None = Field(None, max_length=200)


class LoginRequest(BaseModel):
    username: str
    password: str


class RoleRequest(BaseModel):
    role: UserRole


class CompetitionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    id: str | None = Field(None, description="Key; derived from the name when omitted")


class PlayerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    number: int | None = Field(None, ge=0)


class CreateMatchRequest(BaseModel):
    competition_id: str | None = None
    competition_name: str | None = Field(None, description="Auto-creates the competition when unknown")
    opponent: str = Field(..., min_length=1, max_length=200)
    scheduled_at: datetime
    phase: Phase = Phase.REGULAR
    home_away: HomeAway = HomeAway.HOME
    location: str | None = None


class StatusRequest(BaseModel):
    status: MatchStatus
    correction: bool = Field(False, description="Allow a backward move as an admin correction")
    # Final score when finishing straight from upcoming
    club_score: int | None = None
    opponent_score: int | None = None
    scorers: list[str] = Field(default_factory=list)


class ResultRequest(BaseModel):
    club_score: int | None = None
    opponent_score: int | None = None
    scorers: list[str] = Field(default_factory=list)


class PredictionRequest(BaseModel):
    # Loose types on purpose: validation messages come from PredictionService.
    club_score: Any
    opponent_score: Any
    scorers: list[str] = Field(default_factory=list)


class WeightsModel(BaseModel):
    exactScore: float = Field(..., gt=0)
    correctResult: float = Field(..., gt=0)
    correctGoals: float = Field(..., gt=0)
    correctScorers: float = Field(..., gt=0)


class ConfigRequest(BaseModel):
    maxGoals: int = Field(..., ge=1, le=99)
    weights: WeightsModel
    championshipPhaseWeights: dict[str, dict[str, float]]


# ---------- Auth dependencies ----------


def _get_current_user_id(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str | None:
    """Return user_id from JWT or None if no/invalid token."""
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


def _require_user(user_id: str | None = Depends(_get_current_user_id)) -> User:
    if not user_id:
        raise HTTPException(status_code=401, detail="Login required")
    with db_conn() as conn:
        user = UserRepository().get(conn, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def _require_admin(user: User = Depends(_require_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin only")
    return user


# ---------- Endpoints: auth ----------


@app.post("/signup")
def signup(req: SignupRequest) -> dict[str, Any]:
    """Create account. Usernames listed in BOLAO_ADMIN_USERNAMES become admins."""
    with db_conn() as conn:
        user_repo = UserRepository()
        if user_repo.get_by_username(conn, req.username):
            raise HTTPException(status_code=400, detail="Username already taken")
        role = UserRole.ADMIN.value if req.username in get_settings().admin_usernames else UserRole.PARTICIPANT.value
        user = user_repo.create_with_password(
            conn,
            req.username,
            hash_password(req.password),
            name=req.name,
            email=req.email,
            role=role,
        )
        token = create_access_token(user)
        return {"user_id": user.id, "username": user.username, "role": user.role, "token": token}


@app.post("/login")
def login(req: LoginRequest) -> dict[str, Any]:
    """Returns JWT token."""
    with db_conn() as conn:
        user = authenticate(conn, req.username, req.password)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid username or password")
        token = create_access_token(user)
        return {"user_id": user.id, "username": user.username, "role": user.role, "token": token}


@app.patch("/users/{user_id}/role")
def set_user_role(user_id: str, req: RoleRequest, admin: User = Depends(_require_admin)) -> dict[str, Any]:
    """Promote or demote a participant. Admins cannot demote themselves."""
    if user_id == admin.id and req.role != UserRole.ADMIN:
        raise HTTPException(status_code=400, detail="Admins cannot demote themselves")
    with db_conn() as conn:
        repo = UserRepository()
        if repo.get(conn, user_id) is None:
            raise HTTPException(status_code=404, detail="User not found")
        repo.update_role(conn, user_id, req.role.value)
        logger.info("User %s role set to %s by %s", user_id, req.role.value, admin.id)
        return repo.get(conn, user_id).to_dict()


# ---------- Endpoints: competitions & players ----------


@app.get("/competitions")
def list_competitions() -> dict[str, Any]:
    with db_conn() as conn:
        return {"competitions": [c.to_dict() for c in CompetitionRepository().list_all(conn)]}


@app.post("/competitions")
def create_competition(req: CompetitionRequest, _: User = Depends(_require_admin)) -> dict[str, Any]:
    with db_conn() as conn:
        repo = CompetitionRepository()
        if req.id and repo.get(conn, req.id):
            raise HTTPException(status_code=400, detail=f"Competition already exists: {req.id}")
        if repo.get_by_name(conn, req.name):
            raise HTTPException(status_code=400, detail=f"Competition already exists: {req.name}")
        return repo.create(conn, req.name, id=req.id).to_dict()


@app.patch("/competitions/{competition_id}")
def rename_competition(
    competition_id: str, req: CompetitionRequest, _: User = Depends(_require_admin)
) -> dict[str, Any]:
    with db_conn() as conn:
        repo = CompetitionRepository()
        if repo.get(conn, competition_id) is None:
            raise HTTPException(status_code=404, detail="Competition not found")
        repo.rename(conn, competition_id, req.name)
        return repo.get(conn, competition_id).to_dict()


@app.get("/players")
def list_players() -> dict[str, Any]:
    with db_conn() as conn:
        return {"players": [p.to_dict() for p in PlayerRepository().list_all(conn)]}


@app.post("/players")
def create_player(req: PlayerRequest, _: User = Depends(_require_admin)) -> dict[str, Any]:
    with db_conn() as conn:
        return PlayerRepository().create(conn, req.name, number=req.number).to_dict()


# ---------- Endpoints: matches ----------


@app.get("/matches")
def list_matches(
    status: MatchStatus | None = None,
    competition_id: str | None = None,
) -> dict[str, Any]:
    with db_conn() as conn:
        matches = MatchRepository().list_all(
            conn, status=status.value if status else None, competition_id=competition_id
        )
        return {"matches": [m.to_dict() for m in matches]}


@app.get("/matches/{match_id}")
def get_match(match_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        match = MatchRepository().get(conn, match_id)
        if match is None:
            raise HTTPException(status_code=404, detail="Match not found")
        return match.to_dict()


@app.post("/matches")
def create_match(req: CreateMatchRequest, _: User = Depends(_require_admin)) -> dict[str, Any]:
    with db_conn() as conn:
        comp_repo = CompetitionRepository()
        if req.competition_id:
            competition = comp_repo.get(conn, req.competition_id)
            if competition is None:
                raise HTTPException(status_code=400, detail=f"Competition not found: {req.competition_id}")
        elif req.competition_name:
            competition = comp_repo.ensure_by_name(conn, req.competition_name)
        else:
            raise HTTPException(status_code=400, detail="competition_id or competition_name required")
        match = MatchRepository().create(
            conn,
            competition.id,
            req.opponent,
            req.scheduled_at,
            phase=req.phase.value,
            home_away=req.home_away.value,
            location=req.location,
        )
        return match.to_dict()


@app.post("/matches/{match_id}/status")
def set_match_status(match_id: str, req: StatusRequest, _: User = Depends(_require_admin)) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            service = MatchService()
            if req.status == MatchStatus.FINISHED and (req.club_score is not None or req.opponent_score is not None):
                match = service.finish(conn, match_id, req.club_score, req.opponent_score, req.scorers)
            else:
                match = service.transition_status(conn, match_id, req.status.value, correction=req.correction)
        except MatchNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (MatchTransitionError, ResultValidationError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        return match.to_dict()


@app.put("/matches/{match_id}/result")
def set_match_result(match_id: str, req: ResultRequest, _: User = Depends(_require_admin)) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            match = MatchService().record_result(
                conn, match_id, req.club_score, req.opponent_score, req.scorers
            )
        except MatchNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except MatchTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ResultValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return match.to_dict()


@app.delete("/matches/{match_id}")
def delete_match(match_id: str, _: User = Depends(_require_admin)) -> dict[str, Any]:
    with db_conn() as conn:
        repo = MatchRepository()
        if repo.get(conn, match_id) is None:
            raise HTTPException(status_code=404, detail="Match not found")
        repo.delete(conn, match_id)
        return {"deleted": match_id}


# ---------- Endpoints: predictions ----------


@app.put("/matches/{match_id}/prediction")
def submit_prediction(
    match_id: str, req: PredictionRequest, user: User = Depends(_require_user)
) -> dict[str, Any]:
    """Create or replace the caller's prediction. 409 once the match is live or finished."""
    with db_conn() as conn:
        try:
            prediction = PredictionService().submit(
                conn, user.id, match_id, req.club_score, req.opponent_score, req.scorers
            )
        except PredictionValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except MatchUnavailableError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return prediction.to_dict()


@app.get("/me/predictions")
def my_predictions(user: User = Depends(_require_user)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"predictions": [p.to_dict() for p in PredictionRepository().list_by_user(conn, user.id)]}


@app.get("/matches/{match_id}/predictions")
def get_match_predictions(
    match_id: str, viewer_id: str | None = Depends(_get_current_user_id)
) -> dict[str, Any]:
    """Participants' predictions; others' stay hidden until the match starts."""
    with db_conn() as conn:
        rows = RankingService().match_predictions(conn, match_id, viewer_id)
        if rows is None:
            raise HTTPException(status_code=404, detail="Match not found")
        return {"match_id": match_id, "predictions": rows}


# ---------- Endpoints: configuration ----------


@app.get("/config")
def get_config() -> dict[str, Any]:
    with db_conn() as conn:
        return ConfigRepository().load(conn).to_dict()


@app.put("/config")
def put_config(req: ConfigRequest, _: User = Depends(_require_admin)) -> dict[str, Any]:
    config = config_from_dict(req.model_dump())
    with db_conn() as conn:
        ConfigRepository().save(conn, config)
        logger.info("Scoring configuration updated")
        return ConfigRepository().load(conn).to_dict()


# ---------- Endpoints: ranking ----------


@app.get("/ranking")
def get_ranking() -> dict[str, Any]:
    with db_conn() as conn:
        return RankingService().ranking(conn)


@app.get("/ranking/evolution")
def get_ranking_evolution(limit: int = Query(default=10, ge=1, le=100)) -> dict[str, Any]:
    with db_conn() as conn:
        return RankingService().evolution(conn, limit)


@app.get("/users/{user_id}/summary")
def get_user_summary(user_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        user = UserRepository().get(conn, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        summary = RankingService().participant(conn, user_id)
        summary["name"] = user.name
        return summary


# ---------- Run with: uvicorn bolao.api:app --reload ----------
