"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT signing/verification via PyJWT (TokenCodec)
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from services.errors import BadSignatureError, MalformedTokenError

ACCESS = "access"
REFRESH = "refresh"
TOKEN_KINDS = (ACCESS, REFRESH)

REQUIRED_CLAIMS = ["sub", "kind", "iat", "exp", "jti"]

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TokenClaims:
    """Typed payload carried inside a signed token. Timestamps are epoch seconds."""

    subject: str
    kind: str
    issued_at: int
    expires_at: int
    jti: str

    def to_payload(self) -> dict:
        return {
            "sub": self.subject,
            "kind": self.kind,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "jti": self.jti,
        }


class TokenCodec:
    """
    Encodes TokenClaims into a signed JWT and back.

    Only the signature and the claim structure are checked here. Expiry and
    subject existence belong to TokenService, so that the logout path can reuse
    the same decode with expired tokens.
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("TokenCodec requires a non-empty secret")
        if not algorithm.startswith("HS"):
            raise ValueError(f"Unsupported signing algorithm: {algorithm}")
        self.secret = secret
        self.algorithm = algorithm

    def sign(self, claims: TokenClaims) -> str:
        if claims.kind not in TOKEN_KINDS:
            raise ValueError(f"Unknown token kind: {claims.kind}")
        if claims.expires_at <= claims.issued_at:
            raise ValueError("expires_at must be after issued_at")
        return jwt.encode(claims.to_payload(), self.secret, algorithm=self.algorithm)

    def issue(self, subject: str, kind: str, ttl: timedelta, now: float) -> Tuple[str, TokenClaims]:
        issued_at = int(now)
        claims = TokenClaims(
            subject=str(subject),
            kind=kind,
            issued_at=issued_at,
            expires_at=issued_at + int(ttl.total_seconds()),
            jti=generate_jti(),
        )
        return self.sign(claims), claims

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and check the signature of a token.
        Raises BadSignatureError or MalformedTokenError.
        """
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("Empty token")
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        # InvalidSignatureError is a DecodeError subclass, so it goes first
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            raise BadSignatureError(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError(str(exc)) from exc

        return self._claims_from_payload(decoded)

    @staticmethod
    def _claims_from_payload(decoded: dict) -> TokenClaims:
        sub = decoded.get("sub")
        kind = decoded.get("kind")
        iat = decoded.get("iat")
        exp = decoded.get("exp")
        jti = decoded.get("jti")

        if not isinstance(sub, str) or not sub:
            raise MalformedTokenError("Invalid claim <sub>")
        if kind not in TOKEN_KINDS:
            raise MalformedTokenError("Invalid claim <kind>")
        # bool is an int subclass; reject it explicitly
        for name, value in (("iat", iat), ("exp", exp)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise MalformedTokenError(f"Invalid claim <{name}>")
        if exp <= iat:
            raise MalformedTokenError("Invalid claim <exp>")
        if not isinstance(jti, str) or not jti:
            raise MalformedTokenError("Invalid claim <jti>")

        return TokenClaims(subject=sub, kind=kind, issued_at=iat, expires_at=exp, jti=jti)
