"""
Bearer token authentication for the registry API.

Requests carry ``Authorization: Bearer <token>``.  A missing header or
a different scheme leaves the request anonymous, so the permission
check rejects it with 401.  A presented token that fails verification
is rejected with 401 right here.  On success ``request.user`` is a
:class:`registry.identity.SessionIdentity` built from the claims and
``request.auth`` is the validated token.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTStatelessUserAuthentication

from registry.exceptions import TokenInvalid, Unauthorized
from registry.services import tokens


class BearerTokenAuthentication(JWTStatelessUserAuthentication):
    """Stateless JWT authentication delegating verification to the token service."""

    www_authenticate_realm = 'registry'

    def get_validated_token(self, raw_token):
        try:
            return tokens.decode(raw_token)
        except TokenInvalid as exc:
            raise Unauthorized() from exc
