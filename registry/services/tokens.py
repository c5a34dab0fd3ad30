"""
Session token issuance and verification.

Tokens are simplejwt access tokens: HS256-signed JWTs carrying the
identity claims (``id``, ``isAdmin`` and optionally ``email``/``phone``)
plus the registered ``exp``/``iat``/``jti``/``token_type`` claims.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from registry.exceptions import TokenInvalid

REGISTERED_CLAIMS = frozenset({'exp', 'iat', 'jti', 'token_type'})


def claims_for_user(user) -> Dict[str, Any]:
    claims: Dict[str, Any] = {'id': user.id, 'isAdmin': bool(user.is_admin)}
    if user.email:
        claims['email'] = user.email
    if user.phone:
        claims['phone'] = user.phone
    return claims


def issue(claims: Dict[str, Any], ttl: Optional[timedelta] = None) -> str:
    """Sign ``claims`` into a bearer token valid for ``ttl`` (default 2h)."""
    if 'id' not in claims:
        raise ValueError('claims must carry an id')
    token = AccessToken()
    if ttl is not None:
        token.set_exp(lifetime=ttl)
    for key, value in claims.items():
        if key in REGISTERED_CLAIMS:
            raise ValueError(f'{key} is a reserved claim')
        token[key] = value
    token['isAdmin'] = bool(claims.get('isAdmin', False))
    return str(token)


def decode(raw_token) -> AccessToken:
    if isinstance(raw_token, bytes):
        raw_token = raw_token.decode('utf-8', errors='replace')
    try:
        return AccessToken(raw_token)
    except TokenError as exc:
        raise TokenInvalid(str(exc)) from exc


def verify(raw_token) -> Dict[str, Any]:
    """Return the identity claims of a valid token or raise ``TokenInvalid``."""
    token = decode(raw_token)
    return {k: v for k, v in token.payload.items() if k not in REGISTERED_CLAIMS}
