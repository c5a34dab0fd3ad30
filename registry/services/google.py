"""
Google ID token verification.

The browser obtains an ID token from Google Identity Services and posts
it to ``/api/auth/google``.  We check its signature against Google's
published certificates and its audience against ``GOOGLE_CLIENT_ID``.
"""
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from registry.exceptions import IncompleteAssertion, InvalidAssertion


@dataclass
class GoogleIdentity:
    google_id: str
    email: str
    name: Optional[str] = None


class _TimeoutRequest(google_requests.Request):
    """Transport that bounds the certificate fetch by GOOGLE_VERIFY_TIMEOUT."""

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(url, method=method, body=body, headers=headers,
                                timeout=timeout or settings.GOOGLE_VERIFY_TIMEOUT, **kwargs)


# one pooled session for every verification
_transport = _TimeoutRequest(session=requests.Session())


def verify_id_token(assertion: str) -> dict:
    """Return the verified claims of a Google ID token."""
    if not settings.GOOGLE_CLIENT_ID:
        raise InvalidAssertion('Google sign-in not enabled on server')
    try:
        return google_id_token.verify_oauth2_token(
            assertion, _transport, audience=settings.GOOGLE_CLIENT_ID
        )
    except (ValueError, google_exceptions.GoogleAuthError) as exc:
        raise InvalidAssertion() from exc


def identity_from_assertion(assertion: str) -> GoogleIdentity:
    payload = verify_id_token(assertion)
    google_id = payload.get('sub')
    email = payload.get('email')
    if not google_id or not email:
        raise IncompleteAssertion()
    return GoogleIdentity(google_id=str(google_id), email=email, name=payload.get('name'))
