"""Password-based Authenticator backed by DBStorage and argon2."""
from __future__ import annotations

import logging

from models.db_storage import DBStorage
from services.errors import InvalidCredentialsError, UserExistsError
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class PasswordAuthenticator:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def register(self, email: str, password: str, f_name: str | None = None, l_name: str | None = None) -> str:
        if self.storage.get_user_by_email(email):
            raise UserExistsError("Email already registered")
        user = self.storage.create_user(
            email=email,
            password_hash=hash_password(password),
            f_name=f_name,
            l_name=l_name,
        )
        logger.info("Registered user %s", user.id)
        return user.id

    def check_credentials(self, identifier: str, secret: str) -> str:
        user = self.storage.get_user_by_email(identifier)
        # same error for unknown email and wrong password
        if not user or not verify_password(secret, user.password_hash):
            raise InvalidCredentialsError("Invalid credentials")
        return user.id

    def principal_exists(self, subject: str) -> bool:
        return self.storage.get_user(subject) is not None
