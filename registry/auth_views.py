"""
Authentication views.

Three credential proofs are exchanged here for a bearer token: a Google
ID token, a name plus phone number, and a username plus password for
administrators.  The administrator bootstrap and the grant endpoints
live here as well since they share the same identity services.

Credential endpoints skip authentication entirely so that a stale
``Authorization`` header left behind by a client never blocks a fresh
sign-in.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from registry.exceptions import InvalidCredentials
from registry.permissions import IsAdministrator
from registry.serializers.auth import (
    AdminGrantSerializer,
    GoogleLoginSerializer,
    LoginSerializer,
    PhoneLoginSerializer,
)
from registry.services import identity, tokens
from registry.services.audit import actor_id_of, log_action

logger = logging.getLogger(__name__)


def _client_ip(request):
    return request.META.get('REMOTE_ADDR')


def _token_response(user, method, request):
    claims = tokens.claims_for_user(user)
    log_action(actor_id=user.id, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'method': method, 'ip': _client_ip(request)})
    return Response({'token': tokens.issue(claims), 'isAdmin': claims['isAdmin']})


# ---------------------------------------------------------------------
# Google sign-in
# ---------------------------------------------------------------------
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def google_login_view(request):
    s = GoogleLoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = identity.resolve_by_external_assertion(s.validated_data['idToken'])
    return _token_response(user, 'google', request)

google_login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# Name + phone sign-in
# ---------------------------------------------------------------------
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def phone_login_view(request):
    s = PhoneLoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = identity.resolve_by_phone(s.validated_data['name'], s.validated_data['phone'])
    return _token_response(user, 'phone', request)

phone_login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# Administrator username/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    try:
        user = identity.resolve_by_password(username, s.validated_data['password'])
    except InvalidCredentials:
        # only the username is recorded for failed attempts
        log_action(actor_id=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': _client_ip(request)})
        raise
    return _token_response(user, 'password', request)

login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# Administrator bootstrap
# ---------------------------------------------------------------------
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_status_view(request):
    """Whether any password administrator exists yet."""
    return Response({'exists': identity.administrators_exist()})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def first_admin_view(request):
    """Create the first administrator; closed once one exists."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = identity.create_first_administrator(s.validated_data['username'], s.validated_data['password'])
    return Response({'message': 'Admin created', 'username': user.username}, status=status.HTTP_201_CREATED)

first_admin_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# Administrator grants
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdministrator])
def admins_view(request):
    """Grant administrator rights.

    With ``email`` or ``phone`` the holder of that contact is promoted,
    or an invitation is recorded for the first sign-in using it.  With
    ``username`` and ``password`` a new password administrator is
    created instead.
    """
    s = AdminGrantSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    actor = actor_id_of(request.user)
    if vd.get('username'):
        user = identity.create_password_administrator(vd['username'], vd['password'], actor_id=actor)
        return Response({'message': 'Admin created', 'username': user.username}, status=status.HTTP_201_CREATED)
    user, created = identity.promote_administrator(
        email=vd.get('email'), phone=vd.get('phone'), name=vd.get('name'), actor_id=actor,
    )
    return Response({'message': 'Admin invited' if created else 'Admin granted', 'id': user.id},
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdministrator])
def admin_create_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = identity.create_password_administrator(
        s.validated_data['username'], s.validated_data['password'], actor_id=actor_id_of(request.user),
    )
    return Response({'message': 'Admin created', 'username': user.username}, status=status.HTTP_201_CREATED)
