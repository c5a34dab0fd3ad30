"""
Permission classes for claim-based access control.

Authorization trusts the token signature as its only integrity
boundary: the ``isAdmin`` claim decides, nothing is re-read from the
database.
"""
from django.conf import settings
from rest_framework.permissions import BasePermission, IsAuthenticated

from registry.exceptions import Forbidden


class IsAdministrator(BasePermission):
    """Allow access only to tokens carrying a truthy ``isAdmin`` claim."""
    message = Forbidden.default_detail
    code = Forbidden.default_code

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))


class InstitutionCreatePolicy(BasePermission):
    """Gate for explicit institution creation, driven by ``INSTITUTION_CREATE_POLICY``.

    ``open`` admits anyone, ``authenticated`` requires a valid token and
    ``admin`` requires the administrator claim.
    """
    message = Forbidden.default_detail
    code = Forbidden.default_code

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        policy = getattr(settings, "INSTITUTION_CREATE_POLICY", "open")
        if policy == "open":
            return True
        if policy == "authenticated":
            return IsAuthenticated().has_permission(request, view)
        return IsAdministrator().has_permission(request, view)
