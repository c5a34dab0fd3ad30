"""
HTTP-level tests for the registry API.

Covers the credential endpoints, the bearer token gate, role gating on
administrator operations and the donor/institution surface.
"""
import pytest
from rest_framework.test import APIClient

from registry.exceptions import InvalidAssertion
from registry.models import AuditEvent, Donor, Institution, User
from registry.services import donors as donor_service
from registry.services import google

from .conftest import STRONG_PASSWORD, bearer_client

pytestmark = pytest.mark.django_db


def donor_body(**overrides):
    body = {'institution': 'City Hospital', 'name': 'Dana', 'age': 30, 'bloodGroup': 'A+',
            'contact': '+15550001111', 'address': '1 Elm St'}
    body.update(overrides)
    return body


def seed_ward(*names):
    return [donor_service.register_donor('Ward', {
        'name': n, 'age': 40, 'bloodGroup': 'O+', 'contact': '555', 'address': 'x'}).id for n in names]


# ---------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------
def test_missing_token_is_401(anon_client):
    r = anon_client.get('/api/donors')
    assert r.status_code == 401
    assert r.data['ok'] is False
    assert r.data['error']['code'] == 'unauthorized'
    assert r['WWW-Authenticate'].startswith('Bearer')


@pytest.mark.parametrize('header', ['Bearer nope', 'Bearer a.b.c', 'Bearer'])
def test_bad_token_is_401(header):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=header)
    assert client.get('/api/donors').status_code == 401


def test_other_scheme_is_treated_as_anonymous():
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Token abc')
    assert client.get('/api/donors').status_code == 401


def test_member_reads_and_registers(member_client):
    r = member_client.post('/api/donors', donor_body(bloodGroup='o+'), format='json')
    assert r.status_code == 201, r.data
    assert r.data['donor']['bloodGroup'] == 'O+'
    r = member_client.get('/api/donors')
    assert r.status_code == 200
    assert [d['name'] for d in r.data['City Hospital']] == ['Dana']


@pytest.mark.parametrize('method,path', [
    ('delete', '/api/institutions/Ward'),
    ('delete', '/api/institutions/Ward/donors/0'),
    ('delete', '/api/donors/1'),
    ('post', '/api/admins'),
    ('post', '/api/admins/create'),
])
def test_member_is_forbidden_on_admin_operations(member_client, method, path):
    seed_ward('A')
    r = getattr(member_client, method)(path, {'email': 'x@example.org'}, format='json')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'forbidden'
    assert Donor.objects.count() == 1


def test_role_comes_from_the_token_not_the_database(member, member_client):
    member.role = User.ROLE_ADMIN
    member.save()
    seed_ward('A')
    assert member_client.delete('/api/institutions/Ward').status_code == 403
    assert bearer_client(member).delete('/api/institutions/Ward').status_code == 200


# ---------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------
def test_phone_sign_in_token_is_usable(anon_client):
    r = anon_client.post('/api/auth/manual', {'name': 'Ravi', 'phone': '+14155551234'}, format='json')
    assert r.status_code == 200
    assert r.data['isAdmin'] is False
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['token']}")
    assert client.get('/api/donors').status_code == 200


@pytest.mark.parametrize('body', [
    {'name': 'Ravi', 'phone': 'abc123'},
    {'name': 'Ravi', 'phone': '123'},
    {'name': '', 'phone': '+14155551234'},
    {'phone': '+14155551234'},
])
def test_phone_sign_in_validation(anon_client, body):
    r = anon_client.post('/api/auth/manual', body, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid_input'


def test_google_sign_in(anon_client, monkeypatch):
    monkeypatch.setattr(google, 'verify_id_token',
                        lambda assertion: {'sub': 'g-1', 'email': 'g@example.org', 'name': 'Gia'})
    r = anon_client.post('/api/auth/google', {'idToken': 'header.payload.sig'}, format='json')
    assert r.status_code == 200
    assert r.data['isAdmin'] is False
    assert User.objects.get(google_id='g-1').email == 'g@example.org'


def test_google_sign_in_failures(anon_client, monkeypatch):
    assert anon_client.post('/api/auth/google', {}, format='json').status_code == 400

    def reject(assertion):
        raise InvalidAssertion()
    monkeypatch.setattr(google, 'verify_id_token', reject)
    r = anon_client.post('/api/auth/google', {'idToken': 'bad'}, format='json')
    assert r.status_code == 401

    monkeypatch.setattr(google, 'verify_id_token', lambda assertion: {'sub': 'g-2'})
    assert anon_client.post('/api/auth/google', {'idToken': 'x'}, format='json').status_code == 400


def test_bootstrap_flow(anon_client):
    assert anon_client.get('/api/admins/status').data == {'exists': False}
    r = anon_client.post('/api/first-admin', {'username': 'owner', 'password': STRONG_PASSWORD}, format='json')
    assert r.status_code == 201
    assert anon_client.get('/api/admins/status').data == {'exists': True}

    r = anon_client.post('/api/first-admin', {'username': 'other', 'password': STRONG_PASSWORD}, format='json')
    assert r.status_code == 403
    assert r.data['error']['message'] == 'Admins already exist'

    r = anon_client.post('/api/login', {'username': 'owner', 'password': STRONG_PASSWORD}, format='json')
    assert r.status_code == 200
    assert r.data['isAdmin'] is True
    admin = APIClient()
    admin.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['token']}")
    seed_ward('A')
    assert admin.delete('/api/institutions/Ward').status_code == 200


def test_bootstrap_input_errors(anon_client):
    assert anon_client.post('/api/first-admin', {'username': 'owner'}, format='json').status_code == 400
    r = anon_client.post('/api/first-admin', {'username': 'owner', 'password': 'password'}, format='json')
    assert r.status_code == 400
    assert anon_client.get('/api/admins/status').data == {'exists': False}


def test_login_failures(anon_client, admin_user):
    r = anon_client.post('/api/login', {'username': 'owner', 'password': 'wrong'}, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'invalid_credentials'
    assert anon_client.post('/api/login', {'username': 'owner'}, format='json').status_code == 400
    failed = AuditEvent.objects.get(action='login', detail__result='fail')
    assert failed.detail['username'] == 'owner'


def test_stale_header_does_not_block_login(admin_user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Bearer expired.token.value')
    r = client.post('/api/login', {'username': 'owner', 'password': STRONG_PASSWORD}, format='json')
    assert r.status_code == 200


def test_credential_endpoints_are_throttled(anon_client):
    body = {'username': 'ghost', 'password': 'nope'}
    codes = [anon_client.post('/api/login', body, format='json').status_code for _ in range(11)]
    assert codes[:10] == [401] * 10
    assert codes[10] == 429


# ---------------------------------------------------------------------
# Administrator grants
# ---------------------------------------------------------------------
def test_grant_by_email_invites(admin_client):
    r = admin_client.post('/api/admins', {'email': 'new@example.org', 'name': 'Nia'}, format='json')
    assert r.status_code == 201
    invited = User.objects.get(email='new@example.org')
    assert invited.is_admin and invited.credential_method == User.METHOD_INVITE


def test_grant_promotes_existing_member(admin_client, member):
    r = admin_client.post('/api/admins', {'phone': member.phone}, format='json')
    assert r.status_code == 200
    member.refresh_from_db()
    assert member.is_admin


def test_grant_password_admin(admin_client):
    body = {'username': 'ops', 'password': STRONG_PASSWORD}
    assert admin_client.post('/api/admins', body, format='json').status_code == 201
    assert admin_client.post('/api/admins', body, format='json').status_code == 409
    assert admin_client.post('/api/admins/create', body, format='json').status_code == 409
    body['username'] = 'ops2'
    assert admin_client.post('/api/admins/create', body, format='json').status_code == 201


def test_grant_needs_a_key(admin_client):
    r = admin_client.post('/api/admins', {'name': 'Nobody'}, format='json')
    assert r.status_code == 400


# ---------------------------------------------------------------------
# Donors and institutions
# ---------------------------------------------------------------------
@pytest.mark.parametrize('overrides', [
    {'age': 16}, {'age': 'old'}, {'bloodGroup': 'Z+'}, {'name': ''}, {'institution': ''},
])
def test_donor_validation(member_client, overrides):
    r = member_client.post('/api/donors', donor_body(**overrides), format='json')
    assert r.status_code == 400
    assert not Institution.objects.exists()


def test_donor_age_17_is_accepted(member_client):
    assert member_client.post('/api/donors', donor_body(age=17), format='json').status_code == 201


def test_donor_list_filters(member_client):
    member_client.post('/api/donors', donor_body(name='Olga', bloodGroup='O-'), format='json')
    member_client.post('/api/donors', donor_body(institution='South', name='Sam', bloodGroup='B+'),
                       format='json')
    r = member_client.get('/api/donors', {'bloodGroup': 'B+'})
    assert list(r.data) == ['South']
    assert member_client.get('/api/donors', {'q': 'olg'}).data['City Hospital'][0]['name'] == 'Olga'
    assert member_client.get('/api/donors', {'bloodGroup': 'Q'}).status_code == 400


def test_institution_creation_is_open_by_default(anon_client):
    assert anon_client.post('/api/institutions', {'name': 'Depot'}, format='json').status_code == 201
    assert anon_client.post('/api/institutions', {'name': 'Depot'}, format='json').status_code == 409
    assert anon_client.post('/api/institutions', {}, format='json').status_code == 400


def test_institution_creation_policy(settings, anon_client, member_client, admin_client):
    settings.INSTITUTION_CREATE_POLICY = 'admin'
    assert anon_client.post('/api/institutions', {'name': 'A'}, format='json').status_code == 401
    assert member_client.post('/api/institutions', {'name': 'A'}, format='json').status_code == 403
    assert admin_client.post('/api/institutions', {'name': 'A'}, format='json').status_code == 201
    settings.INSTITUTION_CREATE_POLICY = 'authenticated'
    assert anon_client.post('/api/institutions', {'name': 'B'}, format='json').status_code == 401
    assert member_client.post('/api/institutions', {'name': 'B'}, format='json').status_code == 201


def test_delete_institution_cascades(admin_client):
    seed_ward('A', 'B')
    r = admin_client.delete('/api/institutions/Ward')
    assert r.status_code == 200
    assert r.data['donorsRemoved'] == 2
    assert not Donor.objects.exists()
    assert admin_client.delete('/api/institutions/Ward').status_code == 404


def test_delete_institution_with_spaces_in_name(admin_client):
    donor_service.create_institution('City Hospital')
    assert admin_client.delete('/api/institutions/City%20Hospital').status_code == 200



def test_names_with_ampersand_round_trip(member_client, admin_client):
    r = member_client.post('/api/donors', donor_body(institution='A & B Hospital', name='Tom & Jerry',
                                                    address='5th & Main'), format='json')
    assert r.status_code == 201
    listed = member_client.get('/api/donors').data
    assert list(listed) == ['A & B Hospital']
    assert listed['A & B Hospital'][0]['name'] == 'Tom & Jerry'
    assert listed['A & B Hospital'][0]['address'] == '5th & Main'
    assert admin_client.delete('/api/institutions/A%20%26%20B%20Hospital/donors/0').status_code == 200
    assert admin_client.delete('/api/institutions/A%20%26%20B%20Hospital').status_code == 200


def test_institution_with_markup_can_be_deleted_by_the_name_sent(anon_client, admin_client):
    r = anon_client.post('/api/institutions', {'name': 'Clinic <North>'}, format='json')
    assert r.data['name'] == 'Clinic'
    assert admin_client.delete('/api/institutions/Clinic%20%3CNorth%3E').status_code == 200


def test_slash_in_institution_name_is_rejected(anon_client, member_client):
    r = anon_client.post('/api/institutions', {'name': "St. Mary / Children's"}, format='json')
    assert r.status_code == 400
    r = member_client.post('/api/donors', donor_body(institution='North/South'), format='json')
    assert r.status_code == 400
    assert not Institution.objects.exists()


def test_positional_delete(admin_client):
    ids = seed_ward('P0', 'P1', 'P2')
    r = admin_client.delete('/api/institutions/Ward/donors/1')
    assert r.status_code == 200
    assert r.data['id'] == ids[1]
    assert admin_client.delete('/api/institutions/Ward/donors/abc').status_code == 400
    assert admin_client.delete('/api/institutions/Ward/donors/2').status_code == 404
    assert admin_client.delete('/api/institutions/Nowhere/donors/0').status_code == 404
    assert list(Donor.objects.values_list('id', flat=True)) == [ids[0], ids[2]]


def test_delete_donor_by_id(admin_client):
    (donor_id,) = seed_ward('A')
    assert admin_client.delete(f'/api/donors/{donor_id}').status_code == 200
    assert admin_client.delete(f'/api/donors/{donor_id}').status_code == 404


def test_healthz(anon_client):
    r = anon_client.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}
