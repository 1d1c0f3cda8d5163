from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWKClient

from app.core.config import settings


class AuthTokenError(Exception):
    """Raised when a bearer token cannot be verified."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail or code
        super().__init__(self.detail)


@dataclass(frozen=True, slots=True)
class AuthContext:
    subject_id: str
    scopes: frozenset[str] = field(default_factory=frozenset)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes


@lru_cache(maxsize=4)
def _jwks_client(url: str) -> PyJWKClient:
    return PyJWKClient(url, cache_keys=True)


def _signing_key(token: str) -> tuple[Any, list[str]]:
    # Asymmetric keys come from the JWKS endpoint, shared secrets only sign HS* tokens.
    if settings.jwt_jwks_url:
        try:
            key = _jwks_client(settings.jwt_jwks_url).get_signing_key_from_jwt(token).key
        except (jwt.PyJWKClientError, jwt.InvalidTokenError) as exc:
            raise AuthTokenError("signing_key_unavailable", str(exc)) from exc
        return key, [alg for alg in settings.jwt_algorithms if not alg.startswith("HS")]
    if settings.jwt_secret:
        return settings.jwt_secret, [alg for alg in settings.jwt_algorithms if alg.startswith("HS")]
    raise AuthTokenError("auth_not_configured")


def verify_access_token(token: str) -> AuthContext:
    if not token:
        raise AuthTokenError("token_missing")

    key, algorithms = _signing_key(token)
    options = {"require": ["sub", "exp"], "verify_aud": settings.jwt_audience is not None}
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthTokenError("token_expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthTokenError("invalid_token", str(exc)) from exc

    return AuthContext(subject_id=str(claims["sub"]), scopes=_scopes(claims))


def _scopes(claims: dict[str, Any]) -> frozenset[str]:
    raw = claims.get("scope")
    if isinstance(raw, str):
        return frozenset(part for part in raw.split() if part)
    raw = claims.get("scopes")
    if isinstance(raw, list):
        return frozenset(str(part) for part in raw)
    return frozenset()
