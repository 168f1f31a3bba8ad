# app/api/deps.py
from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes
from jose import JWTError

from app.core.config import settings
from app.core.security import decode_access_token


OAUTH_SCOPES = {
    "admin": "Acceso total de administrador.",
    "cart:write": "Permiso para gestionar el carrito propio.",
    "orders:write": "Permiso para crear ordenes.",
}


# El proveedor de identidad emite los tokens; aquí solo se verifican.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/token",
    scopes=OAUTH_SCOPES,
)


@dataclass(frozen=True)
class Principal:
    """Authenticated owner as asserted by the identity provider."""

    user_id: str
    is_admin: bool = False
    scopes: frozenset[str] = field(default_factory=frozenset)


def _principal_from_token(token: str) -> Principal:
    claims = decode_access_token(token)
    return Principal(user_id=claims.sub, is_admin=claims.admin, scopes=frozenset(claims.scopes))


async def get_current_principal(
    security_scopes: SecurityScopes,
    token: str = Depends(oauth2_scheme),
) -> Principal:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": f'Bearer scope="{security_scopes.scope_str}"'},
    )

    try:
        principal = _principal_from_token(token)
    except JWTError:
        raise cred_exc

    if security_scopes.scopes and not principal.is_admin:
        for scope in security_scopes.scopes:
            if scope == "admin" or (principal.scopes and scope not in principal.scopes):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not enough permissions",
                    headers={"WWW-Authenticate": f'Bearer scope="{security_scopes.scope_str}"'},
                )
    return principal


def get_current_owner(principal: Principal = Security(get_current_principal)) -> Principal:
    return principal


def get_current_admin(principal: Principal = Security(get_current_principal, scopes=["admin"])) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return principal


def get_idempotency_key(
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key", max_length=128),
) -> str | None:
    return idempotency_key
