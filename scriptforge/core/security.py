"""Helpers for verifying identity provider JWTs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt

from .config import get_settings

DEV_ALGORITHM = "HS256"


def create_access_token(data: Dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Sign a token with the shared HMAC key; used for local development and tests."""

    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    if settings.auth_jwt_issuer:
        to_encode.setdefault("iss", settings.auth_jwt_issuer)
    if settings.auth_jwt_audience:
        to_encode.setdefault("aud", settings.auth_jwt_audience)
    return jwt.encode(to_encode, settings.auth_jwt_key, algorithm=DEV_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a bearer token and return its claims.

    Raises ``jose.JWTError`` when the signature, expiry, issuer or audience
    do not check out.
    """

    settings = get_settings()
    options = {"verify_aud": settings.auth_jwt_audience is not None}
    return jwt.decode(
        token,
        settings.auth_jwt_key,
        algorithms=settings.auth_jwt_algorithms,
        audience=settings.auth_jwt_audience,
        issuer=settings.auth_jwt_issuer,
        options=options,
    )
