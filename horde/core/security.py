import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header, HTTPException, status

from horde.core.config import settings
from horde.db import users as users_db


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


VERIFY_EMAIL_PURPOSE = "verify_email"


def create_verification_token(pending_id: str, expires_minutes: int) -> str:
    """Token mailed to a pending signup. Only `verify_email` accepts it."""
    return create_access_token(
        data={"sub": pending_id, "purpose": VERIFY_EMAIL_PURPOSE},
        expires_minutes=expires_minutes,
    )


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def generate_token(nbytes: int = 32) -> str:
    return secrets.token_hex(nbytes)


def generate_auth_code(user_id: str, token: str) -> str:
    """Short one-time code handed to the client after an OAuth sign-in."""
    seed = f"{user_id}:{token}:{secrets.token_hex(8)}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:20]


def user_id_from_token(token: str) -> str:
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    # Purpose-bound tokens (email verification, OAuth state) never authenticate requests
    if not user_id or payload.get("purpose"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Extract user_id from JWT token"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")

    token = authorization.replace("Bearer ", "", 1)
    return user_id_from_token(token)


def get_current_user(user_id: str = Depends(get_current_user_id)) -> dict:
    user = users_db.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_roles(*roles):
    """Dependency factory rejecting users that hold none of `roles`."""
    allowed = {getattr(role, "value", role) for role in roles}

    def checker(user: dict = Depends(get_current_user)) -> dict:
        if not allowed.intersection(user.get("roles", [])):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return checker
