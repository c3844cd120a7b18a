"""Utilities for issuing and validating session tokens."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import get_settings
from ..domain.contracts import Caller


def issue_session_token(caller: Caller) -> tuple[str, int]:
    """Create a signed JWT representing an authenticated session.

    Parameters
    ----------
    caller:
        Session identity; its user, tenant, group level and capabilities are
        embedded as claims.

    Returns
    -------
    tuple[str, int]
        A tuple containing the encoded JWT string and its TTL (in seconds).
    """

    settings = get_settings()
    now = int(time.time())
    expires_in = settings.jwt_ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": caller.user_uuid,
        "domain_uuid": caller.domain_uuid,
        "group_level": caller.group_level,
        "permissions": sorted(caller.permissions),
        "iat": now,
        "exp": now + expires_in,
    }
    if caller.username:
        payload["username"] = caller.username

    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    return token, expires_in


def decode_session_token(token: str) -> Caller:
    """Decode and verify a session JWT returning the caller it represents.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, signed by another
        issuer, or missing required claims.
    """

    settings = get_settings()
    claims = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iss"]},
    )
    domain_uuid = claims.get("domain_uuid")
    if not domain_uuid:
        raise jwt.MissingRequiredClaimError("domain_uuid")
    try:
        group_level = int(claims.get("group_level") or 0)
    except (TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError("group_level must be numeric") from exc
    return Caller(
        user_uuid=claims["sub"],
        domain_uuid=domain_uuid,
        username=claims.get("username") or None,
        group_level=group_level,
        permissions=frozenset(claims.get("permissions") or ()),
    )
