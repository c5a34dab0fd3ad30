"""
Database models for the blood-donor registry.

The registry keeps a single identity table for every way a person can
sign in (Google, phone, username/password, or an administrator invite),
the institutions that collect donors, the donors themselves and an
append-only audit trail of security-relevant actions.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

MIN_DONOR_AGE = 17

BLOOD_GROUP_CHOICES = [
    ('A+', 'A+'),
    ('A-', 'A-'),
    ('B+', 'B+'),
    ('B-', 'B-'),
    ('AB+', 'AB+'),
    ('AB-', 'AB-'),
    ('O+', 'O+'),
    ('O-', 'O-'),
]


class User(AbstractUser):
    """A person known to the registry.

    ``credential_method`` records how the identity was established.
    Users created through the username/password path are the legacy
    administrators; every other user is keyed by at least one of
    ``google_id``, ``email`` or ``phone``.  The display name lives in
    ``first_name``.
    """
    METHOD_PASSWORD = 'password'
    METHOD_GOOGLE = 'google'
    METHOD_PHONE = 'phone'
    METHOD_INVITE = 'invite'
    METHOD_CHOICES = [
        (METHOD_PASSWORD, 'Username and password'),
        (METHOD_GOOGLE, 'Google sign-in'),
        (METHOD_PHONE, 'Name and phone'),
        (METHOD_INVITE, 'Administrator invite'),
    ]

    ROLE_MEMBER = 'member'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_MEMBER, 'Member'),
        (ROLE_ADMIN, 'Administrator'),
    ]

    email = models.EmailField(unique=True, null=True, blank=True)
    google_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    phone = models.CharField(max_length=16, unique=True, null=True, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    credential_method = models.CharField(
        max_length=16, choices=METHOD_CHOICES, default=METHOD_PASSWORD, db_index=True
    )

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(credential_method='password')
                    | Q(google_id__isnull=False)
                    | Q(email__isnull=False)
                    | Q(phone__isnull=False)
                ),
                name='registry_user_has_identity_key',
            ),
        ]

    def save(self, *args, **kwargs):
        # uniqueness applies to real values only
        self.email = self.email or None
        self.google_id = self.google_id or None
        self.phone = self.phone or None
        super().save(*args, **kwargs)

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN or self.is_superuser

    @property
    def display_name(self) -> str:
        return self.first_name or self.username

    def __str__(self) -> str:
        return f"{self.display_name} ({self.credential_method}, {self.role})"


class FirstAdminClaim(models.Model):
    """Marker row written once, together with the first administrator.

    The fixed primary key means a second bootstrap attempt fails at the
    storage layer even when two requests pass the emptiness check at the
    same time.
    """
    KEY = 'first-admin'

    key = models.CharField(max_length=32, primary_key=True, default=KEY)
    user = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='+')
    claimed_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.key} by {self.user_id} @ {self.claimed_at:%F %T}"


class Institution(models.Model):
    """A hospital, college or community centre collecting donors."""
    name = models.CharField(max_length=255, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return self.name


class Donor(models.Model):
    """A registered donor, owned by exactly one institution.

    Donors are never updated; they are created and later deleted,
    individually or together with their institution.
    """
    institution = models.ForeignKey(Institution, on_delete=models.CASCADE, related_name='donors')
    name = models.CharField(max_length=255)
    age = models.PositiveSmallIntegerField(validators=[MinValueValidator(MIN_DONOR_AGE)])
    blood_group = models.CharField(max_length=3, choices=BLOOD_GROUP_CHOICES, db_index=True)
    contact = models.CharField(max_length=64)
    address = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['institution', 'id'], name='registry_donor_inst_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(age__gte=MIN_DONOR_AGE), name='registry_donor_min_age'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.blood_group})"


class AuditEvent(models.Model):
    """Append-only record of who did what.

    ``actor_id`` comes from the bearer token claims, so recording an
    action never needs to load the actor from the database.
    """
    actor_id = models.BigIntegerField(blank=True, null=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=255, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='registry_audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='registry_audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.actor_id}@{self.created_at:%F %T}"
