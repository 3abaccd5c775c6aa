import time
from typing import NamedTuple, Optional

import jwt
from fastapi import Request
from passlib.context import CryptContext

from .config import get_settings
from .errors import UnauthenticatedError

# New hashes are pbkdf2_sha256; bcrypt hashes still verify.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


class CurrentUser(NamedTuple):
    user_id: int
    role: str


def create_access_token(user_id: int, role: str, expires_delta: Optional[int] = None) -> str:
    settings = get_settings()
    now = int(time.time())
    exp = now + (expires_delta or settings.jwt_expires_in)
    payload = {"userId": user_id, "role": role, "iat": now, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, get_settings().jwt_secret, algorithms=[ALGORITHM])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


async def authenticate_user(request: Request) -> CurrentUser:
    """Require a valid bearer token and expose its identity on request.state.user."""
    header = request.headers.get("authorization") or ""
    token = header[len("bearer "):].strip() if header.lower().startswith("bearer ") else ""
    if not token:
        raise UnauthenticatedError("authentication invalid")
    try:
        payload = decode_access_token(token)
        user = CurrentUser(user_id=int(payload["userId"]), role=str(payload["role"]))
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise UnauthenticatedError("authentication invalid")
    request.state.user = user
    return user
