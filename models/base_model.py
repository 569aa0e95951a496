#!/usr/bin/env python3
"""
Shared SQLAlchemy base for the token service.

- UUID primary key (String(36)) with defaults
- created_at timestamp, written as naive UTC like every other instant we store
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

from utils.timeutils import utcnow

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)


class BaseModel(TimestampMixin):
    """
    Base mixin for entities with a store-assigned id.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if caller passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()
