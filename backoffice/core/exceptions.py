"""Error taxonomy for workflow operations and the API error boundary"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class WorkflowError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be processed.'
    default_code = 'workflow_error'


class RequestNotFound(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Request not found.'
    default_code = 'request_not_found'


class RequestAlreadyDecided(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This request has already been decided.'
    default_code = 'already_decided'


class InsufficientStock(WorkflowError):
    default_detail = 'Insufficient stock for this request.'
    default_code = 'insufficient_stock'


class PartyNotApproved(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Party not found or not approved.'
    default_code = 'party_not_approved'


class DuplicateSku(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A product with this SKU already exists.'
    default_code = 'duplicate_sku'


class EntryAlreadyDecided(WorkflowError):
    default_detail = 'This entry has already been decided.'
    default_code = 'entry_already_decided'


def api_exception_handler(exc, context):
    """
    Normalize error bodies to {'error': ..., 'code': ...}.

    Exceptions DRF does not know about are logged with their traceback and
    surfaced as a generic 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        view_name = view.__class__.__name__ if view else 'unknown view'
        logger.error(f"Unhandled error in {view_name}: {str(exc)}", exc_info=exc)
        return Response(
            {'error': 'An unexpected error occurred. Please try again later.'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, ValidationError):
        response.data = {
            'error': 'Invalid input.',
            'code': 'invalid',
            'details': response.data,
        }
    elif isinstance(exc, APIException):
        detail = exc.detail
        code = getattr(detail, 'code', None) or exc.default_code
        response.data = {'error': str(detail), 'code': code}
    elif isinstance(response.data, dict) and 'detail' in response.data:
        # Http404 and PermissionDenied from Django
        response.data = {'error': str(response.data['detail']), 'code': 'error'}
    return response
