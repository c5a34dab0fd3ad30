import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from registry.models import User
from registry.services import tokens

STRONG_PASSWORD = 'S3cure-pass!'


@pytest.fixture(autouse=True)
def _reset_throttles():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


def bearer_client(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {tokens.issue(tokens.claims_for_user(user))}')
    return client


@pytest.fixture
def member(db):
    return User.objects.create(
        username='phone:member', phone='+14155550100', first_name='Mia',
        credential_method=User.METHOD_PHONE,
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='owner', password=STRONG_PASSWORD, role=User.ROLE_ADMIN)


@pytest.fixture
def anon_client():
    return APIClient()


@pytest.fixture
def member_client(member):
    return bearer_client(member)


@pytest.fixture
def admin_client(admin_user):
    return bearer_client(admin_user)
