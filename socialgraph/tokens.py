import re
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from socialgraph.exceptions import Expired, InvalidSignature, Malformed

ACCESS = "access"
REFRESH = "refresh"

_SECONDS = re.compile(r"^\d+$")
_PRODUCT = re.compile(r"^\d+(\s*\*\s*\d+)+$")
_UNITS = re.compile(r"^(\d+[smhdw])+$")
_UNIT = re.compile(r"(\d+)([smhdw])")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def _seconds(seconds, value):
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        raise ImproperlyConfigured(f"Duration out of range: {value!r}")


def parse_duration(value) -> timedelta:
    """
    Turn a configured token lifetime into a timedelta.

    Accepted forms: an int or timedelta, a string of whole seconds
    ("900"), a product of whole numbers ("60*15"), or unit literals
    ("15m", "7d", "1h30m"). Anything else is a configuration error. The
    value is only ever pattern-matched.
    """
    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, int) and not isinstance(value, bool):
        duration = _seconds(value, value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if _SECONDS.match(text):
            seconds = int(text)
        elif _PRODUCT.match(text):
            seconds = 1
            for factor in text.split("*"):
                seconds *= int(factor)
        elif _UNITS.match(text):
            seconds = sum(int(n) * _UNIT_SECONDS[unit] for n, unit in _UNIT.findall(text))
        else:
            raise ImproperlyConfigured(f"Invalid duration literal: {value!r}")
        duration = _seconds(seconds, value)
    else:
        raise ImproperlyConfigured(f"Invalid duration value: {value!r}")

    if duration <= timedelta(0):
        raise ImproperlyConfigured(f"Duration must be positive: {value!r}")
    return duration


def access_ttl() -> timedelta:
    return parse_duration(getattr(settings, "ACCESS_TOKEN_TTL", "60*15"))


def refresh_ttl() -> timedelta:
    return parse_duration(getattr(settings, "REFRESH_TOKEN_TTL", "60*60*24*30"))


class TokenIssuer:
    """
    Signs and verifies self-contained JWTs from a shared secret.

    The issuer keeps no state and does not care which lifetime it is given;
    callers pass ``access_ttl()`` or ``refresh_ttl()``. Each token carries a
    random ``jti`` so two tokens minted in the same second for the same
    identity are still different values, and a ``typ`` claim so an access
    token can never be replayed as a refresh token or the other way round.
    """

    def __init__(self, secret=None, algorithm=None):
        self._secret = secret
        self._algorithm = algorithm

    @property
    def secret(self):
        return self._secret or getattr(settings, "JWT_SECRET", settings.SECRET_KEY)

    @property
    def algorithm(self):
        return self._algorithm or getattr(settings, "JWT_ALGORITHM", "HS256")

    def issue(self, identity_id, ttl, token_type=ACCESS) -> str:
        now = timezone.now()
        claims = {
            "sub": str(identity_id),
            "iat": now,
            "exp": now + ttl,
            "typ": token_type,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token, token_type=ACCESS) -> str:
        """
        Return the subject identity id of a valid token.

        Raises:
            Malformed: not a decodable JWT, missing subject, or wrong ``typ``.
            InvalidSignature: the signature does not match the secret.
            Expired: the token is past its ``exp``.
        """
        if not token or not isinstance(token, str):
            raise Malformed()

        # Structure first, so tampering and garbage are told apart.
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            raise Malformed()

        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise Expired()
        except JWTClaimsError:
            raise Malformed()
        except JWTError:
            raise InvalidSignature()

        subject = claims.get("sub")
        if not subject or claims.get("typ") != token_type:
            raise Malformed()
        return subject


def issue_access_token(identity_id) -> str:
    return TokenIssuer().issue(identity_id, access_ttl(), ACCESS)
