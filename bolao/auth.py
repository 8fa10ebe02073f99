"""
Account auth for pool participants: pbkdf2 password hashes and bearer JWTs.
Tokens carry the user id as `sub` and the role at issue time; the API still
re-reads the role from storage on every admin request.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from bolao.models import User
from bolao.persistence.repositories import UserRepository
from bolao.settings import get_settings

logger = logging.getLogger(__name__)

# pbkdf2_sha256 avoids passlib's bcrypt backend self-test
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ALGORITHM = "HS256"
MAX_PASSWORD_BYTES = 72


def _clip(password: str) -> str:
    """Passwords count at most 72 UTF-8 bytes, as the accounts imported from the old app did."""
    raw = password.encode("utf-8")
    if len(raw) <= MAX_PASSWORD_BYTES:
        return password
    return raw[:MAX_PASSWORD_BYTES].decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(_clip(password))


def verify_password(plain: str, hashed: str | None) -> bool:
    # Accounts created by an admin script have no password.
    if not hashed:
        return False
    return pwd_context.verify(_clip(plain), hashed)


def create_access_token(user: User) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.token_expire_minutes)
    claims = {"sub": user.id, "role": user.role, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> str | None:
    """User id from a valid token, None when expired, tampered or malformed."""
    try:
        payload = jwt.decode(token, get_settings().jwt_secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


def authenticate(conn: sqlite3.Connection, username: str, password: str) -> User | None:
    user = UserRepository().get_by_username(conn, username)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %r", username)
        return None
    return user
