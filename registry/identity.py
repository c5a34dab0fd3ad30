"""
Request identity built from bearer token claims.

``SessionIdentity`` is what ``request.user`` holds on authenticated API
requests.  It is assembled from the verified token alone; the database
is only consulted when a token is issued, never when one is presented.
"""
from __future__ import annotations

from rest_framework_simplejwt.models import TokenUser


class SessionIdentity(TokenUser):
    """Claim-backed user: ``id``, ``isAdmin`` and optional contact fields."""

    @property
    def is_admin(self) -> bool:
        return bool(self.token.get('isAdmin', False))

    @property
    def email(self) -> str | None:
        return self.token.get('email')

    @property
    def phone(self) -> str | None:
        return self.token.get('phone')

    @property
    def claims(self) -> dict:
        return dict(self.token.payload)

    def __str__(self) -> str:
        return f"SessionIdentity {self.id} ({'admin' if self.is_admin else 'member'})"
