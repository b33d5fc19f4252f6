from django.conf import settings
from rest_framework import status
from rest_framework.response import Response


def flatten_errors(detail):
    """
    Collapse DRF's nested ``{field: [messages]}`` error structure into the
    flat ``[{"error": message}, ...]`` list returned to clients, keeping
    every distinct violation in field order.
    """
    errors = []
    for message in _messages(detail):
        if {"error": message} not in errors:
            errors.append({"error": message})
    return errors


def _messages(detail):
    messages = []
    if isinstance(detail, dict):
        for value in detail.values():
            messages.extend(_messages(value))
    elif isinstance(detail, (list, tuple)):
        for value in detail:
            messages.extend(_messages(value))
    else:
        messages.append(str(detail))
    return messages


def validation_error_response(serializer):
    return Response({"errors": flatten_errors(serializer.errors)}, status=status.HTTP_400_BAD_REQUEST)


def refresh_cookie_name():
    return getattr(settings, "REFRESH_COOKIE_NAME", "refreshToken")


def _refresh_cookie_salt():
    return getattr(settings, "REFRESH_COOKIE_SALT", "socialgraph.refresh")


def set_refresh_cookie(response, refresh_value, max_age):
    """Attach the refresh session value as a signed, httpOnly cookie."""
    response.set_signed_cookie(
        refresh_cookie_name(),
        refresh_value,
        salt=_refresh_cookie_salt(),
        max_age=int(max_age.total_seconds()),
        httponly=True,
        secure=getattr(settings, "REFRESH_COOKIE_SECURE", True),
        samesite="None",
    )
    return response


def clear_refresh_cookie(response):
    response.delete_cookie(refresh_cookie_name(), samesite="None")
    return response


def read_refresh_cookie(request):
    """
    Return the refresh value from the signed cookie, or None when the cookie
    is missing or its signature does not verify.
    """
    return request.get_signed_cookie(refresh_cookie_name(), default=None, salt=_refresh_cookie_salt())
