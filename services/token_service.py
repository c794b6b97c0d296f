"""
Token lifecycle: issue, validate, rotate and revoke access/refresh pairs.

- Refresh token is issued and stored first, the access token references it.
- Validation checks the signature, kind, expiry, subject and the live store
  record, in that order.
- Revoking a refresh token removes all of its access tokens before the
  refresh token itself.
- Rotation revokes the presented refresh token before issuing the new pair;
  only the caller whose revoke actually removed the record gets a new pair.

The service keeps no state of its own; the store is the only synchronization
point, so one instance can serve concurrent requests.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

from models.access_token import AccessToken
from models.refresh_token import RefreshToken
from services.errors import (
    CodecError,
    StoreUnavailableError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
    TokenUserInvalidError,
)
from services.ports import Authenticator, TokenStore
from utils.security import ACCESS, REFRESH, TokenCodec

logger = logging.getLogger(__name__)


def _to_datetime(epoch: int) -> datetime:
    return datetime.fromtimestamp(epoch, tz=timezone.utc)


class TokenService:
    def __init__(
        self,
        store: TokenStore,
        authenticator: Authenticator,
        codec: TokenCodec,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        clock: Optional[Callable[[], float]] = None,
    ):
        if access_ttl.total_seconds() < 1 or refresh_ttl.total_seconds() < 1:
            raise ValueError("Token lifetimes must be at least one second")
        self.store = store
        self.authenticator = authenticator
        self.codec = codec
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock or time.time

    # Issuance

    def issue_pair(self, subject: str, user_agent: str | None) -> Tuple[AccessToken, RefreshToken]:
        """
        Generate and persist a refresh token, then an access token bound to it.
        A store failure aborts the whole call; a refresh token saved before
        the failure is never handed out and simply expires.
        """
        refresh = self._generate_refresh_token(subject, user_agent)
        try:
            access = self._generate_access_token(subject, refresh.id, user_agent)
        except StoreUnavailableError:
            logger.warning("Access token save failed, refresh token %s left orphaned", refresh.id)
            raise
        logger.info("Issued token pair for subject %s (refresh %s)", subject, refresh.id)
        return access, refresh

    def _generate_refresh_token(self, subject: str, user_agent: str | None) -> RefreshToken:
        token, claims = self.codec.issue(subject, REFRESH, self.refresh_ttl, self.clock())
        record = RefreshToken(
            user_id=claims.subject,
            user_agent=user_agent,
            token_string=token,
            expires_at=_to_datetime(claims.expires_at),
        )
        self.store.save_refresh(record)
        return record

    def _generate_access_token(self, subject: str, refresh_token_id: str, user_agent: str | None) -> AccessToken:
        token, claims = self.codec.issue(subject, ACCESS, self.access_ttl, self.clock())
        record = AccessToken(
            user_id=claims.subject,
            refresh_token_id=refresh_token_id,
            user_agent=user_agent,
            token_string=token,
            expires_at=_to_datetime(claims.expires_at),
        )
        self.store.save_access(record)
        return record

    # Validation

    def validate(
        self,
        token: str,
        allow_expired: bool = False,
        *,
        expected_kind: str | None = None,
        allow_revoked: bool = False,
    ) -> Tuple[str, str]:
        """
        Return (subject, kind) for a usable token.

        Raises TokenExpiredError when the signature is good but the token is
        past expiry (now >= exp) and allow_expired is False. Every other
        failure is a TokenInvalidError subclass. allow_revoked skips the store
        lookup and is meant only for logout, where revoking twice is harmless.
        """
        try:
            claims = self.codec.verify(token)
        except CodecError as exc:
            logger.debug("Token rejected by codec: %s", exc)
            raise TokenInvalidError("Token invalid") from exc

        if expected_kind is not None and claims.kind != expected_kind:
            logger.debug("Expected %s token, got %s", expected_kind, claims.kind)
            raise TokenInvalidError("Token invalid")

        if not allow_expired and self.clock() >= claims.expires_at:
            raise TokenExpiredError("Token expired")

        if not self.authenticator.principal_exists(claims.subject):
            logger.debug("Token subject %s no longer exists", claims.subject)
            raise TokenUserInvalidError("Token user invalid")

        if not allow_revoked:
            if claims.kind == ACCESS:
                record = self.store.find_access_by_token(token)
            else:
                record = self.store.find_refresh_by_token(token)
            if record is None:
                raise TokenRevokedError("Token not found")
            if record.user_id != claims.subject:
                logger.warning("Stored %s token %s does not match its subject", claims.kind, record.id)
                raise TokenUserInvalidError("Token user invalid")

        return claims.subject, claims.kind

    # Revocation

    def revoke_access(self, token: str, cascade_to_refresh: bool = False) -> None:
        """
        Remove an access token. With cascade_to_refresh the parent refresh
        token and all of its access tokens go too. Unknown tokens are a no-op.
        """
        record = self.store.find_access_by_token(token)
        if record is None:
            return

        if cascade_to_refresh:
            parent = self.store.find_refresh_by_id(record.refresh_token_id)
            if parent is not None:
                self.revoke_refresh(parent.token_string)
                return

        self.store.delete_access_by_token(token)
        logger.info("Revoked access token %s", record.id)

    def revoke_refresh(self, token: str) -> bool:
        """
        Remove a refresh token and every access token derived from it.
        Returns True if this call did the removal, False if it was already gone.
        """
        record = self.store.find_refresh_by_token(token)
        if record is None:
            return False

        deleted = self.store.delete_refresh_cascade(record.id)
        if deleted:
            logger.info("Revoked refresh token %s for subject %s", record.id, record.user_id)
        return deleted

    # Rotation

    def rotate(self, refresh_token: str, user_agent: str | None) -> Tuple[AccessToken, RefreshToken]:
        """
        Exchange a live refresh token for a new pair. The old refresh token
        (and its access tokens) is gone before the new pair exists.
        """
        subject, _ = self.validate(refresh_token, False, expected_kind=REFRESH)

        if not self.revoke_refresh(refresh_token):
            # a concurrent rotation removed it between validate and revoke
            raise TokenRevokedError("Token not found")

        access, refresh = self.issue_pair(subject, user_agent)
        logger.info("Rotated refresh token for subject %s", subject)
        return access, refresh
