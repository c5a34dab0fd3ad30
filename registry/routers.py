"""
URL mappings for the registry API.

Trailing slashes are deliberately omitted; ``APPEND_SLASH`` is off.
"""
from django.urls import path, include

from .auth_views import (
    admin_create_view,
    admin_status_view,
    admins_view,
    first_admin_view,
    google_login_view,
    login_view,
    phone_login_view,
)
from .views import health
from .views.donors import donor_detail, donors
from .views.institutions import create_institution, delete_donor_at, delete_institution


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/google', google_login_view),
    path('api/auth/manual', phone_login_view),
    path('api/login', login_view),
    # Administrators
    path('api/first-admin', first_admin_view),
    path('api/admins/status', admin_status_view),
    path('api/admins/create', admin_create_view),
    path('api/admins', admins_view),
    # Donors
    path('api/donors', donors),
    path('api/donors/<int:pk>', donor_detail),
    # Institutions
    path('api/institutions', create_institution),
    path('api/institutions/<str:name>', delete_institution),
    path('api/institutions/<str:name>/donors/<str:index>', delete_donor_at),
]
