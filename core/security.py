from __future__ import annotations

import time
from typing import Any

from jose import JWTError, jwt

from core.config import Settings, settings
from core.errors import AuthenticationError

PROFILE_CLAIMS = ("email", "first_name", "last_name", "profile_image_url")


def create_access_token(
    sub: str,
    minutes: int | None = None,
    claims: dict[str, Any] | None = None,
    cfg: Settings = settings,
) -> str:
    """Mint a token the way the identity provider does (used by tests and local dev)."""
    now = int(time.time())
    ttl = cfg.ACCESS_TOKEN_EXPIRE_MIN if minutes is None else minutes
    payload: dict[str, Any] = {"sub": sub, "iat": now, "exp": now + ttl * 60}
    payload.update(claims or {})
    return jwt.encode(payload, cfg.SECRET_KEY, algorithm=cfg.TOKEN_ALGORITHM)


def decode_token(tok: str, cfg: Settings = settings) -> dict[str, Any]:
    try:
        payload = jwt.decode(tok, cfg.SECRET_KEY, algorithms=[cfg.TOKEN_ALGORITHM])
    except JWTError as e:
        raise AuthenticationError("invalid or expired token") from e
    if not payload.get("sub"):
        raise AuthenticationError("token has no subject")
    return payload
