"""Capabilities the token lifecycle consumes from the outside world."""

from __future__ import annotations

from typing import List, Optional, Protocol

from models.access_token import AccessToken
from models.refresh_token import RefreshToken


class Authenticator(Protocol):
    """Password check and principal lookup, owned by the user subsystem."""

    def check_credentials(self, identifier: str, secret: str) -> str:
        """Return the subject id for valid credentials, raise InvalidCredentialsError otherwise."""

    def principal_exists(self, subject: str) -> bool:
        """Return True while the subject is a live user."""


class TokenStore(Protocol):
    """Durable record of issued tokens keyed by token string."""

    def save_refresh(self, record: RefreshToken) -> None:
        ...

    def save_access(self, record: AccessToken) -> None:
        ...

    def find_refresh_by_token(self, token: str) -> Optional[RefreshToken]:
        ...

    def find_refresh_by_id(self, refresh_id: str) -> Optional[RefreshToken]:
        ...

    def find_access_by_token(self, token: str) -> Optional[AccessToken]:
        ...

    def access_tokens_for_refresh(self, refresh_id: str) -> List[AccessToken]:
        ...

    def delete_access_by_token(self, token: str) -> bool:
        """Idempotent; return True if a row was removed."""

    def delete_refresh_cascade(self, refresh_id: str) -> bool:
        """
        Idempotent; delete every access token of the refresh token, then the
        refresh token itself, in one transaction. Return True if this call
        removed the refresh token.
        """
