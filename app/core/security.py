"""Verification of bearer tokens issued by the identity provider.

The storefront never authenticates users itself. ``create_access_token``
exists so development scripts and tests can mint tokens with the same shape
and signature the provider uses.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, List, Union
from uuid import uuid4

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.config import settings

ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = 60
_RESERVED_CLAIMS = {"sub", "exp", "type", "jti", "iat"}


class TokenClaims(BaseModel):
    """Claims the storefront relies on; anything else the provider adds is kept."""

    sub: str = Field(..., min_length=1, max_length=128)
    type: str = "access"
    scopes: List[str] = Field(default_factory=list)
    is_admin: bool = False

    model_config = ConfigDict(extra="allow")

    @property
    def admin(self) -> bool:
        return self.is_admin or "admin" in self.scopes


def _verification_keys() -> list[str]:
    # clave actual primero, luego las anteriores durante la rotación
    keys: list[str] = []
    for key in [settings.SECRET_KEY, *settings.SECRET_KEY_FALLBACKS]:
        if key and key not in keys:
            keys.append(key)
    return keys


def _check_algorithm(token: str) -> None:
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise JWTError("Invalid token header") from exc
    if header.get("alg") != ALGORITHM:
        raise JWTError("Token signed with unexpected algorithm")


def create_access_token(
    subject: Union[str, int],
    expires_minutes: int | None = None,
    extra: dict[str, Any] | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        key: value for key, value in (extra or {}).items() if key not in _RESERVED_CLAIMS
    }
    payload.update(
        sub=str(subject),
        type="access",
        exp=now + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES),
        iat=int(now.timestamp()),
        jti=uuid4().hex,
    )
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """Verify signature, expiry and claim shape; every failure is a ``JWTError``."""
    _check_algorithm(token)
    payload: dict[str, Any] | None = None
    last_error: JWTError | None = None
    for key in _verification_keys():
        try:
            payload = jwt.decode(token, key, algorithms=[ALGORITHM])
            break
        except JWTError as exc:
            last_error = exc
    if payload is None:
        raise last_error or JWTError("No verification key configured")

    try:
        claims = TokenClaims.model_validate(payload)
    except ValidationError as exc:
        raise JWTError("Invalid token claims") from exc
    if claims.type != "access":
        raise JWTError("Invalid token type")
    return claims
