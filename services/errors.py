"""
Exception hierarchy for the token lifecycle.

Everything the gate turns into a plain 401 derives from TokenInvalidError or
CodecError. StoreUnavailableError stands outside TokenError and maps to 503.
TokenExpiredError is kept apart because the client reacts to it
differently (present the refresh token instead of logging in again).
"""


class TokenError(Exception):
    """Base class for all token lifecycle failures."""


class CodecError(TokenError):
    """Raised by TokenCodec.verify."""


class MalformedTokenError(CodecError):
    """Token cannot be decoded into the expected claim structure."""


class BadSignatureError(CodecError):
    """Signature or signing algorithm does not match."""


class TokenInvalidError(TokenError):
    """Token failed validation."""


class TokenUserInvalidError(TokenInvalidError):
    """Token subject no longer exists or does not match the stored record."""


class TokenRevokedError(TokenUserInvalidError):
    """No live record for the token (revoked, rotated or never issued)."""


class TokenExpiredError(TokenError):
    """Signature is fine but the token is past its expiry."""


class StoreUnavailableError(Exception):
    """Persistence layer failed; the engine does not retry. Maps to 503, never 401."""


class AuthenticationError(Exception):
    """Base class for Authenticator failures."""


class InvalidCredentialsError(AuthenticationError):
    pass


class UserExistsError(AuthenticationError):
    pass
