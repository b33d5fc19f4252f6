import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from socialgraph.exceptions import BEARER_CHALLENGE, Conflict
from socialgraph.utils import flatten_errors

logger = logging.getLogger(__name__)


def exception_handler(exc, context):
    """
    Render every error as ``{"message": "..."}``.

    Serializer batches are rendered by the views themselves (see
    ``utils.validation_error_response``); a ValidationError reaching this
    handler is flattened into the same ``{"errors": [...]}`` shape.
    """
    response = drf_exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "unknown view")
        return Response(
            {"message": f"Internal Server Error: {exc}"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        response.data = {"errors": flatten_errors(exc.detail)}
        return response

    if response.status_code == status.HTTP_401_UNAUTHORIZED and "WWW-Authenticate" not in response:
        response["WWW-Authenticate"] = BEARER_CHALLENGE

    if isinstance(exc, Conflict):
        logger.warning("Conflict: %s", exc.detail)

    detail = response.data.get("detail", exc) if isinstance(response.data, dict) else exc
    response.data = {"message": str(detail)}
    return response
