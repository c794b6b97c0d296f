from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import request, g, abort, current_app

from api.errors import error_response
from services.errors import TokenError, TokenExpiredError
from utils.security import ACCESS

HEADER_AUTHORIZATION = "Authorization"
HEADER_REFRESH_AUTHORIZATION = "Refresh-Authorization"
HEADER_CHALLENGE = "WWW-Authenticate"
CHALLENGE_EXPIRED_ACCESS_TOKEN = 'Bearer realm="{realm}",error="access_token_expired"'


@dataclass(frozen=True)
class AuthContext:
    subject: str
    access_token: str


def bearer_token() -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, if any."""
    auth = request.headers.get(HEADER_AUTHORIZATION, "")
    if not auth.startswith("Bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def get_token_service():
    return current_app.extensions["token_service"]


def jwt_required(allow_expired: bool = False, allow_revoked: bool = False, kind: str = ACCESS):
    """
    Guard a view with a bearer token.

    An expired token gets a 401 with a WWW-Authenticate challenge telling the
    client to use its refresh token. Every other failure is the same bare 401.
    On success g.auth holds the AuthContext.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if not token:
                abort(401, description="Missing authorization")

            try:
                subject, _ = get_token_service().validate(
                    token,
                    allow_expired,
                    expected_kind=kind,
                    allow_revoked=allow_revoked,
                )
            except TokenExpiredError:
                challenge = CHALLENGE_EXPIRED_ACCESS_TOKEN.format(realm=current_app.config["APP_NAME"])
                return error_response(
                    "TOKEN_EXPIRED", "Access token expired", 401,
                    headers={HEADER_CHALLENGE: challenge},
                )
            except TokenError:
                abort(401, description="Invalid token")

            g.auth = AuthContext(subject=subject, access_token=token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
