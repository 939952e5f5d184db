import logging

from bson.errors import InvalidId
from pymongo.errors import PyMongoError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import InvalidBloodType, StoreUnavailable

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    DRF exception handler that maps core errors to client/dependency failures.

    InvalidBloodType -> 400, malformed ObjectId -> 400,
    StoreUnavailable / raw driver errors -> 503.
    """
    if isinstance(exc, InvalidBloodType):
        return Response(
            {"error": str(exc), "code": "INVALID_BLOOD_TYPE"},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, InvalidId):
        return Response(
            {"error": "Invalid identifier", "code": "INVALID_ID"},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, (StoreUnavailable, PyMongoError)):
        view = context.get('view')
        logger.error("Store unavailable in %s: %s", type(view).__name__, exc)
        return Response(
            {"error": "Service temporarily unavailable", "code": "STORE_UNAVAILABLE"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    return exception_handler(exc, context)
