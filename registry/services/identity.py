"""
Identity resolution for the three credential proofs.

Each ``resolve_*`` function turns a proof into a durable ``User`` row,
creating it on first sight and refreshing it afterwards.  Lookups and
inserts run inside a transaction; when two first-seen requests race on
the same unique key, the losing insert hits the database constraint,
the lookup is retried once and the winner's row is used.
"""
from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional, Tuple

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction

from registry.exceptions import AdminsAlreadyExist, Conflict, InvalidCredentials, InvalidInput
from registry.models import FirstAdminClaim, User
from registry.services import google
from registry.services.audit import log_action
from registry.validators import clean_text, validate_phone

logger = logging.getLogger(__name__)


def _generated_username(method: str) -> str:
    # ':' never appears in usernames chosen through the password path
    return f"{method}:{uuid.uuid4().hex}"


def _display_name(name) -> str:
    return clean_text(name)[:150]


def _user_with(**key) -> Optional[User]:
    return User.objects.filter(**key).first()


def _insert(user: User, refetch: Callable[[], Optional[User]]) -> Tuple[User, bool]:
    """Insert ``user``; on a uniqueness violation return the row that won instead."""
    try:
        with transaction.atomic():
            user.save(force_insert=True)
        return user, True
    except IntegrityError:
        existing = refetch()
        if existing is None:
            raise Conflict('An account already uses one of these details')
        logger.info('lost insert race, reusing user %s', existing.pk)
        return existing, False


def _save(user: User, fields: list[str]) -> None:
    try:
        with transaction.atomic():
            user.save(update_fields=fields)
    except IntegrityError:
        raise Conflict('An account already uses one of these details')


# ---------------------------------------------------------------------
# Google ID token
# ---------------------------------------------------------------------
def resolve_by_external_assertion(assertion_token: str) -> User:
    """Verify a Google ID token and upsert the user it identifies.

    A user is found by Google id first.  Failing that, an invited
    administrator placeholder holding the same email (and no Google id
    yet) is claimed by linking the Google id to it.  Otherwise a new
    member is created.  Email and name are refreshed on every sign-in.
    """
    ident = google.identity_from_assertion(assertion_token)
    name = _display_name(ident.name)
    with transaction.atomic():
        user = _user_with(google_id=ident.google_id)
        if user is None:
            user = _user_with(email=ident.email, google_id__isnull=True)
            if user is not None:
                user.google_id = ident.google_id
                logger.info('linked google id to existing user %s', user.pk)
        if user is None:
            candidate = User(
                username=_generated_username(User.METHOD_GOOGLE),
                google_id=ident.google_id,
                email=ident.email,
                first_name=name,
                credential_method=User.METHOD_GOOGLE,
            )
            candidate.set_unusable_password()
            user, created = _insert(candidate, lambda: _user_with(google_id=ident.google_id))
            if created:
                logger.info('created google user %s', user.pk)
                return user
        user.email = ident.email
        if name:
            user.first_name = name
        _save(user, ['google_id', 'email', 'first_name'])
    return user


# ---------------------------------------------------------------------
# Name + phone
# ---------------------------------------------------------------------
def resolve_by_phone(name, phone) -> User:
    phone = validate_phone(phone)
    name = _display_name(name)
    if not name:
        raise InvalidInput('Missing fields')
    with transaction.atomic():
        user = _user_with(phone=phone)
        if user is None:
            candidate = User(
                username=_generated_username(User.METHOD_PHONE),
                phone=phone,
                first_name=name,
                credential_method=User.METHOD_PHONE,
            )
            candidate.set_unusable_password()
            user, created = _insert(candidate, lambda: _user_with(phone=phone))
            if created:
                logger.info('created phone user %s', user.pk)
                return user
        user.first_name = name
        _save(user, ['first_name'])
    return user


# ---------------------------------------------------------------------
# Username + password (legacy administrators)
# ---------------------------------------------------------------------
def resolve_by_password(username, password) -> User:
    username = (username or '').strip()
    user = User.objects.filter(username=username, credential_method=User.METHOD_PASSWORD).first()
    if user is None or not user.is_active:
        # hash anyway so unknown usernames cost the same as wrong passwords
        User().set_password(password or '')
        raise InvalidCredentials()
    if not user.check_password(password or ''):
        raise InvalidCredentials()
    return user


def administrators_exist() -> bool:
    return User.objects.filter(credential_method=User.METHOD_PASSWORD).exists()


def _bootstrap_closed() -> bool:
    return administrators_exist() or FirstAdminClaim.objects.exists()


def _username_taken(username: str) -> bool:
    return User.objects.filter(username=username).exists()


def _clean_credentials(username, password) -> str:
    username = (username or '').strip()
    if not username or not password:
        raise InvalidInput('Missing fields')
    if ':' in username or len(username) > 150:
        raise InvalidInput('Username may not contain ":" or exceed 150 characters')
    return username


def _password_admin(username: str, password: str) -> User:
    user = User(username=username, role=User.ROLE_ADMIN, credential_method=User.METHOD_PASSWORD)
    try:
        validate_password(password, user=user)
    except ValidationError as e:
        raise InvalidInput(' '.join(e.messages))
    user.set_password(password)
    return user


def create_first_administrator(username, password) -> User:
    """Create the first password administrator; only ever succeeds once.

    The emptiness check and the insert of the ``FirstAdminClaim`` row
    happen in one transaction, and the claim's fixed primary key makes
    a concurrent second bootstrap fail at the database.
    """
    username = _clean_credentials(username, password)
    with transaction.atomic():
        if _bootstrap_closed():
            raise AdminsAlreadyExist()
        if _username_taken(username):
            raise Conflict('Username already exists')
        user = _password_admin(username, password)
        try:
            with transaction.atomic():
                claim = FirstAdminClaim.objects.create(key=FirstAdminClaim.KEY)
        except IntegrityError:
            raise AdminsAlreadyExist()
        try:
            with transaction.atomic():
                user.save(force_insert=True)
        except IntegrityError:
            raise Conflict('Username already exists')
        claim.user = user
        claim.save(update_fields=['user'])
        log_action(actor_id=None, action='first_admin', object_type='user', object_id=user.pk,
                   detail={'username': username})
    logger.warning('first administrator %r created; bootstrap is now closed', username)
    return user


def create_password_administrator(username, password, *, actor_id: Optional[int] = None) -> User:
    username = _clean_credentials(username, password)
    with transaction.atomic():
        if _username_taken(username):
            raise Conflict('Username already exists')
        user = _password_admin(username, password)
        try:
            with transaction.atomic():
                user.save(force_insert=True)
        except IntegrityError:
            raise Conflict('Username already exists')
        log_action(actor_id=actor_id, action='admin_create', object_type='user', object_id=user.pk,
                   detail={'username': username})
    return user


def promote_administrator(*, email=None, phone=None, name=None,
                          actor_id: Optional[int] = None) -> Tuple[User, bool]:
    """Make the user holding ``email`` (preferred) or ``phone`` an administrator.

    When nobody holds the key yet, an invited placeholder is created; the
    first Google or phone sign-in with that key then claims it.  Returns
    ``(user, created)``.
    """
    email = (email or '').strip() or None
    phone = validate_phone(phone) if phone else None
    if not email and not phone:
        raise InvalidInput('Provide email or phone')
    if email:
        try:
            validate_email(email)
        except ValidationError:
            raise InvalidInput('Email format invalid')
    with transaction.atomic():
        user = (User.objects.filter(email=email).first() if email
                else User.objects.filter(phone=phone).first())
        if user is not None:
            user.role = User.ROLE_ADMIN
            _save(user, ['role'])
            created = False
        else:
            user = User(
                username=_generated_username(User.METHOD_INVITE),
                email=email,
                phone=phone,
                first_name=_display_name(name),
                role=User.ROLE_ADMIN,
                credential_method=User.METHOD_INVITE,
            )
            user.set_unusable_password()
            try:
                with transaction.atomic():
                    user.save(force_insert=True)
            except IntegrityError:
                raise Conflict('An account already uses one of these details')
            created = True
        log_action(actor_id=actor_id, action='admin_grant', object_type='user', object_id=user.pk,
                   detail={'email': email, 'phone': phone, 'created': created})
    return user, created
