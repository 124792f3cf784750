"""
Error taxonomy and the JSON error envelope.

Every error leaving the API has the shape {"error": "<message>"}.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

__all__ = [
    'Conflict', 'AdminAlreadyExists', 'NotFound', 'PermissionDenied', 'ValidationError',
    'json_error_handler', 'flatten_errors',
]


class Conflict(APIException):
    """The request is valid but clashes with existing data (e.g. a party that still has transactions)"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request conflicts with existing data.'
    default_code = 'conflict'


class AdminAlreadyExists(Conflict):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Admin already exists. Only one admin is allowed in the system.'
    default_code = 'admin_exists'


def flatten_errors(data, prefix=''):
    """Collapse DRF error structures (dicts, lists, ErrorDetail) into one readable string"""
    if isinstance(data, dict):
        if 'detail' in data and len(data) == 1:
            return flatten_errors(data['detail'], prefix)
        parts = []
        for key, value in data.items():
            label = '' if key in ('non_field_errors', 'detail') else str(key)
            if prefix and label:
                label = f"{prefix}.{label}"
            elif prefix:
                label = prefix
            parts.append(flatten_errors(value, label))
        return '; '.join(p for p in parts if p)
    if isinstance(data, (list, tuple)):
        parts = []
        for index, value in enumerate(data):
            if isinstance(value, (dict, list, tuple)):
                parts.append(flatten_errors(value, f"{prefix}[{index}]" if prefix else str(index)))
            else:
                parts.append(flatten_errors(value, prefix))
        return '; '.join(p for p in parts if p)
    message = str(data)
    return f"{prefix}: {message}" if prefix else message


def json_error_handler(exc, context):
    """DRF exception handler producing the {error: message} envelope"""
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}", exc_info=exc)
        return Response({'error': str(exc) or exc.__class__.__name__},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if response.status_code >= 500:
        logger.error(f"Server error: {exc}")
    elif response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        logger.warning(f"Rejected request ({response.status_code}): {exc}")

    response.data = {'error': flatten_errors(response.data)}
    return response
