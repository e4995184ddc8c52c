"""
DRF exception handler that renders scouting domain errors.

Responses follow the ``{'error': ..., 'code': ..., 'details': ...}`` shape;
anything that is not a ScoutingError goes through DRF's default handler.
"""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from scouting.exceptions import ScoutingError

logger = logging.getLogger(__name__)


def scouting_exception_handler(exc, context):
    if isinstance(exc, ScoutingError):
        view = context.get('view')
        logger.warning(
            f"{exc.code} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        return Response(
            {'error': exc.message, 'code': exc.code, 'details': exc.details},
            status=exc.http_status
        )
    return exception_handler(exc, context)
