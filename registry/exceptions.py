"""
Error taxonomy for the registry API and the project-wide DRF handler.

Every domain error is an ``APIException`` carrying its HTTP status, so
services can raise them directly and views never translate by hand.
"""
import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class InvalidInput(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid_input'


class Unauthorized(exceptions.AuthenticationFailed):
    default_detail = 'Unauthorized'
    default_code = 'unauthorized'


class TokenInvalid(exceptions.APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Token is invalid or expired.'
    default_code = 'token_invalid'


class InvalidAssertion(exceptions.APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid ID token'
    default_code = 'invalid_assertion'


class IncompleteAssertion(InvalidAssertion):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid token payload'
    default_code = 'incomplete_assertion'


class InvalidCredentials(exceptions.APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid credentials'
    default_code = 'invalid_credentials'


class Forbidden(exceptions.PermissionDenied):
    default_detail = 'Forbidden'
    default_code = 'forbidden'


class AdminsAlreadyExist(Forbidden):
    default_detail = 'Admins already exist'
    default_code = 'admins_already_exist'


class NotFound(exceptions.NotFound):
    default_detail = 'Not found'
    default_code = 'not_found'


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Already exists'
    default_code = 'conflict'


class StoreFailure(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Database error'
    default_code = 'store_failure'


def api_exception_handler(exc, context):
    # imported here: rest_framework.views loads the authentication classes, which import this module
    from rest_framework.views import exception_handler as drf_exception_handler

    if isinstance(exc, DatabaseError):
        request = context.get('request')
        logger.exception('store failure on %s', getattr(request, 'path', '?'))
        exc = StoreFailure()
    elif isinstance(exc, exceptions.NotAuthenticated):
        # anonymous and bad-token requests share one error code
        auth_header = getattr(exc, 'auth_header', None)
        exc = Unauthorized()
        exc.auth_header = auth_header
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error', exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Server error'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    # normalize response
    codes = exc.get_codes() if isinstance(exc, exceptions.APIException) else None
    code = codes if isinstance(codes, str) else getattr(exc, 'default_code', 'api_error')
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    if isinstance(exc, exceptions.ValidationError):
        code = 'invalid_input'
    return Response({'ok': False, 'error': {'code': code, 'message': detail}},
                    status=resp.status_code, headers=_passthrough_headers(resp))


def _passthrough_headers(resp):
    return {k: resp[k] for k in ('WWW-Authenticate', 'Retry-After') if resp.has_header(k)}
