"""
Bearer token validation for write endpoints.

Tokens are issued by the auth service. This module only checks that:
1. the JWT signature and expiry are valid
2. the user it names still exists
"""
from functools import wraps

import jwt
from bson.errors import InvalidId
from django.conf import settings
from rest_framework import status
from rest_framework.response import Response

from .stores import get_user_store


def _unauthorized(message, code):
    return Response({"error": message, "code": code}, status=status.HTTP_401_UNAUTHORIZED)


def authenticate_request(view_func):
    """
    Decorator to validate the JWT and resolve the user it belongs to.

    Usage:
        @authenticate_request
        def post(self, request):
            user_id = request.user_id
            user = request.user_data
    """
    @wraps(view_func)
    def wrapper(self, request, *args, **kwargs):
        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '):
            return _unauthorized("Authorization token required", "AUTH_REQUIRED")

        token = auth_header.split(' ', 1)[1].strip()

        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=settings.JWT_ALGORITHMS)
        except jwt.ExpiredSignatureError:
            return _unauthorized("Token has expired", "TOKEN_EXPIRED")
        except jwt.InvalidTokenError:
            return _unauthorized("Invalid token", "INVALID_TOKEN")

        user_id = payload.get('id')
        if not user_id:
            return _unauthorized("Invalid token payload", "INVALID_PAYLOAD")

        try:
            user = get_user_store().get(user_id)
        except (InvalidId, TypeError):
            return _unauthorized("Invalid user identifier", "INVALID_USER_ID")

        if not user:
            return _unauthorized("User no longer exists", "USER_NOT_FOUND")

        request.user_id = str(user['_id'])
        request.user_role = user.get('role')
        request.user_data = user

        return view_func(self, request, *args, **kwargs)

    return wrapper
