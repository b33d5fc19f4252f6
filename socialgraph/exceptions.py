
from rest_framework import exceptions, status

BEARER_CHALLENGE = 'Bearer realm="api"'


# Unauthorized (401)

class Unauthorized(exceptions.APIException):
    """
    Credential failure. Not an AuthenticationFailed subclass so that views
    without an authenticator still answer 401 rather than 403.
    """
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"
    default_code = "unauthorized"


class InvalidCredentials(Unauthorized):
    default_detail = "Unauthorized: Invalid email or password"
    default_code = "invalid_credentials"


class TokenError(Unauthorized):
    default_detail = "Unauthorized: Invalid token"
    default_code = "token_error"


class Expired(TokenError):
    default_detail = "Unauthorized: Token expired"
    default_code = "token_expired"


class Malformed(TokenError):
    default_detail = "Unauthorized: Token is malformed"
    default_code = "token_malformed"


class InvalidSignature(TokenError):
    default_detail = "Unauthorized: Token signature is invalid"
    default_code = "token_invalid_signature"


class SessionNotFound(Unauthorized):
    default_detail = "Unauthorized: Refresh token mismatch"
    default_code = "session_not_found"


# NotFound (404)

class IdentityNotFound(exceptions.NotFound):
    default_detail = "User not found"
    default_code = "identity_not_found"


class RequestNotFound(exceptions.NotFound):
    default_detail = "Follow request not found"
    default_code = "request_not_found"


# Validation (400)

class Validation(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"
    default_code = "invalid"


class SelfFollow(Validation):
    default_detail = "You cannot follow yourself"
    default_code = "self_follow"


class AlreadyFollowing(Validation):
    default_detail = "You are already following this user"
    default_code = "already_following"


class RequestAlreadyPending(Validation):
    default_detail = "A follow request to this user is already pending"
    default_code = "request_already_pending"


class NotFollowing(Validation):
    default_detail = "You are not following this user"
    default_code = "not_following"


class InvalidState(Validation):
    default_detail = "Follow request has already been resolved"
    default_code = "invalid_state"


class InvalidStatus(Validation):
    default_detail = "Invalid status value"
    default_code = "invalid_status"


# Internal (500)

class Conflict(exceptions.APIException):
    """
    Raised when a version-conditioned update finds the row changed underneath
    it. Nothing is retried server side; the client may repeat the request.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal Server Error: concurrent update, please retry"
    default_code = "conflict"
