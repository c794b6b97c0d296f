#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the token service models.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- to_dict() that formats timestamps and removes SA internals

Notes:
- Server-side defaults (func.now()) set timestamps consistently by the DB.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP.
- The id is assigned in __init__ so a refresh token can be referenced by its
  access token before either row is flushed.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at, updated_at
    - to_dict() with __class__ and timestamp formatting
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        DB defaults fill created_at/updated_at on insert unless passed explicitly.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id}) {self.__dict__}"

    def to_dict(self) -> dict:
        """
        Return a dictionary of fields suitable for logging or API responses:
        - Adds __class__
        - Formats datetime fields to TIME_FMT
        - Removes SQLAlchemy internal state and secrets (password_hash, token_string)
        """
        d = {k: v for k, v in self.__dict__.items() if k != "_sa_instance_state"}
        for key, value in list(d.items()):
            if isinstance(value, datetime):
                d[key] = value.strftime(TIME_FMT)
        for secret in ("password_hash", "token_string"):
            d.pop(secret, None)
        d["__class__"] = self.__class__.__name__
        return d
