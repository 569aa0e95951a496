"""
Error kinds raised by the token service.

AuthError subclasses are the closed set the API layer turns into responses
(see api/errors.py). RecordNotFound and the TokenError family are internal:
the services translate them before they reach a caller.
"""


class AuthError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "AUTH_ERROR"
    status = 400
    default_message = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EmailTaken(AuthError):
    code = "EMAIL_TAKEN"
    status = 409
    default_message = "User with this email already exists"


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    status = 401
    default_message = "Invalid email or password"


class InvalidToken(AuthError):
    code = "INVALID_TOKEN"
    status = 401
    default_message = "Invalid or expired refresh token"


class StoreUnavailable(AuthError):
    code = "STORE_UNAVAILABLE"
    status = 503
    default_message = "Storage is temporarily unavailable"


class RecordNotFound(LookupError):
    """No store row matched; raised by TokenStore.delete_by_token."""


class TokenError(Exception):
    """Base for token verification failures."""


class TokenMalformed(TokenError):
    pass


class TokenSignatureInvalid(TokenError):
    pass


class TokenExpired(TokenError):
    pass
