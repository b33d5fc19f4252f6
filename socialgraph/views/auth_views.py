import logging

from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from socialgraph.authentication import LocalCredentialCheck
from socialgraph.exceptions import IdentityNotFound, Unauthorized
from socialgraph.models import Identity
from socialgraph.serializers import SigninSerializer, SignupSerializer
from socialgraph.sessions import SessionStore
from socialgraph.tokens import issue_access_token, refresh_ttl
from socialgraph.utils import (
    clear_refresh_cookie,
    read_refresh_cookie,
    set_refresh_cookie,
    validation_error_response,
)

logger = logging.getLogger(__name__)


def credentials_response(identity):
    """Open a new refresh session for ``identity`` and hand out both credentials."""
    refresh_value = SessionStore().create_session(identity)
    token = issue_access_token(identity.pk)

    response = Response({"success": True, "token": token}, status=status.HTTP_200_OK)
    return set_refresh_cookie(response, refresh_value, refresh_ttl())


class SignupAPIView(APIView):
    """
    POST /api/users/signup

    Creates an identity and signs it in on this device: returns an access
    token and sets the ``refreshToken`` cookie.

    Invalid forms get every problem back at once:
    { "errors": [ {"error": "..."}, ... ] }
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)

        try:
            with transaction.atomic():
                identity = serializer.save()
        except IntegrityError:
            # lost a race with a concurrent signup using the same email or username
            return Response(
                {"errors": [{"error": "The E-Mail or Username is already in use"}]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        logger.info("Signed up identity %s", identity.pk)
        return credentials_response(identity)


class SigninAPIView(APIView):
    """
    POST /api/users/signin

    { "email": "alice@example.com", "password": "secret" }

    Wrong credentials answer 401 and leave no session or cookie behind.
    """
    authentication_classes = []
    permission_classes = []
    credential_check = LocalCredentialCheck()

    def post(self, request):
        serializer = SigninSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)

        identity = self.credential_check.verify(
            request,
            serializer.validated_data["email"],
            serializer.validated_data["password"],
        )
        return credentials_response(identity)


class RefreshTokenAPIView(APIView):
    """
    POST /api/users/refreshToken

    Authenticated by the signed refresh cookie alone. Rotates the refresh
    session (the presented value stops working) and returns a new access
    token with the new cookie.
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        refresh_value = read_refresh_cookie(request)
        if not refresh_value:
            raise Unauthorized("Unauthorized: Refresh token does not exist or is invalid")

        identity, new_refresh_value, token = SessionStore().refresh(refresh_value)

        response = Response({"success": True, "token": token}, status=status.HTTP_200_OK)
        return set_refresh_cookie(response, new_refresh_value, refresh_ttl())


class LogoutAPIView(APIView):
    """
    GET /api/users/logout

    Ends the refresh session named by the cookie and clears the cookie.
    Logging out with a cookie that no longer names a session still succeeds.
    """

    def get(self, request):
        identity = request.user
        if not Identity.objects.filter(pk=identity.pk).exists():
            raise IdentityNotFound()

        SessionStore().revoke(identity, read_refresh_cookie(request))

        response = Response({"success": True}, status=status.HTTP_200_OK)
        return clear_refresh_cookie(response)
