# core/exceptions.py
import logging

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(ValueError):
    """Business rule violation raised by a service; rendered as 400."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class PaymentStateError(ServiceError):
    pass


class InsufficientBalanceError(ServiceError):
    pass


class WithdrawalStateError(ServiceError):
    pass


class AccountInactiveError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


def api_exception_handler(exc, context):
    """
    Render every API error as {'error': ...}.

    Validation errors carry the field messages under 'details'; anything
    DRF does not know about is logged with its traceback and returned as a
    generic 500.
    """
    if isinstance(exc, ServiceError):
        return Response({'error': str(exc)}, status=exc.status_code)

    if isinstance(exc, ObjectDoesNotExist):
        exc = exceptions.NotFound()

    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, exceptions.ValidationError):
            response.data = {
                'error': 'Invalid request data',
                'details': response.data,
            }
        elif isinstance(response.data, dict) and 'detail' in response.data:
            response.data = {'error': response.data['detail']}
        return response

    view = context.get('view')
    logger.error(
        f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
        exc_info=exc,
    )
    return Response({
        'error': 'Internal server error',
        'detail': str(exc) if settings.DEBUG else None,
    }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
