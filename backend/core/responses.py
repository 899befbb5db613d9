"""Error responses for the domain exceptions raised by document actions"""
import logging

from rest_framework import status
from rest_framework.response import Response

from .exceptions import UnknownStatus, InvalidStatusTransition, DocumentNotEditable, InsufficientStock

logger = logging.getLogger(__name__)

STATUS_ERRORS = (UnknownStatus, InvalidStatusTransition, DocumentNotEditable, InsufficientStock, ValueError)


def error_response(exc):
    """Map a domain exception to ``{'error': ...}`` with the matching HTTP status"""
    if isinstance(exc, UnknownStatus):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (InvalidStatusTransition, DocumentNotEditable)):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, InsufficientStock):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
        logger.warning(str(exc))
        return Response({
            'error': str(exc),
            'product': exc.product.pk,
            'location': exc.location.pk,
            'available': str(exc.available),
            'requested': str(exc.requested),
        }, status=code)
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning(f"Rejected document action: {exc}")
    return Response({'error': str(exc)}, status=code)
