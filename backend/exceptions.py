"""
Error taxonomy shared by every app.

Services raise these exceptions directly; DRF turns them into responses
through ``api_exception_handler`` which produces the
``{"success": false, "error": {"code", "message"}}`` envelope.
"""
import logging

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.db.models import ProtectedError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class NotFound(exceptions.NotFound):
    default_detail = 'Resource not found.'
    default_code = 'not_found'


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Request conflicts with the current state of the resource.'
    default_code = 'conflict'


class CapacityExceeded(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Classroom is at maximum capacity.'
    default_code = 'capacity_exceeded'


class TransientError(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Temporary storage conflict, please retry.'
    default_code = 'transient_error'


ValidationError = exceptions.ValidationError


def _as_api_exception(exc):
    if isinstance(exc, (Http404, ObjectDoesNotExist)):
        return NotFound(str(exc) or None)
    if isinstance(exc, PermissionDenied):
        return exceptions.PermissionDenied()
    if isinstance(exc, ProtectedError):
        return Conflict(exc.args[0] if exc.args else None)
    return exc


def api_exception_handler(exc, context):
    """Render every API error as ``{"success": false, "error": {...}}``."""
    exc = _as_api_exception(exc)
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else 'view')
        return Response(
            {'success': False, 'error': {'code': 'server_error', 'message': 'Internal server error.'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        code = 'validation_error'
    else:
        code = getattr(exc, 'default_code', 'error')

    logger.info("API error %s (%s): %s", response.status_code, code, exc.detail)
    response.data = {
        'success': False,
        'error': {
            'code': code,
            'message': exc.detail,
        },
    }
    return response
