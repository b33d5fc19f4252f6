import logging

from django.conf import settings
from django.contrib.auth import authenticate
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from socialgraph.exceptions import BEARER_CHALLENGE, InvalidCredentials, Unauthorized
from socialgraph.models import Identity
from socialgraph.sessions import SessionStore
from socialgraph.tokens import ACCESS, TokenIssuer
from socialgraph.utils import read_refresh_cookie

logger = logging.getLogger(__name__)


class LocalCredentialCheck:
    """Email and password, checked against the stored password hash."""

    def verify(self, request, email, password):
        identity = authenticate(request, email=email, password=password)
        if identity is None:
            logger.info("Failed sign-in for %s", email)
            raise InvalidCredentials()
        return identity


class BearerCredentialCheck(BaseAuthentication):
    """
    Request gate for every protected endpoint.

    Requires both:
        - ``Authorization: Bearer <access token>`` that verifies and names
          an existing, active identity;
        - the signed ``refreshToken`` cookie, present with a valid signature.

    The cookie value is not looked up in the session store unless
    ``VALIDATE_SESSION_ON_EVERY_REQUEST`` is set, so by default an access
    token issued to a device that has since logged out keeps working until
    it expires. Only the refresh and logout endpoints consult the store.
    """
    keyword = b"bearer"

    def __init__(self, issuer=None):
        self.issuer = issuer or TokenIssuer()

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword:
            return None

        if len(auth) != 2:
            raise Unauthorized("Unauthorized: Invalid bearer header")

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise Unauthorized("Unauthorized: Invalid bearer header")

        identity_id = self.issuer.verify(token, ACCESS)

        refresh_value = read_refresh_cookie(request)
        if not refresh_value:
            raise Unauthorized()

        identity = Identity.objects.resolve(identity_id)
        if identity is None or not identity.is_active:
            raise Unauthorized("Unauthorized: User not found")

        if getattr(settings, "VALIDATE_SESSION_ON_EVERY_REQUEST", False):
            if not SessionStore(self.issuer).is_active(identity, refresh_value):
                raise Unauthorized("Unauthorized: Session is no longer active")

        return (identity, token)

    def authenticate_header(self, request):
        return BEARER_CHALLENGE
