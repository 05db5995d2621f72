# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable
from pydantic import BaseModel, Field, ConfigDict


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_entity_id() -> str:
    """Generate a new opaque entity identifier."""
    return str(uuid.uuid4())


class BaseEntity(BaseModel):
    """
    Base entity with common fields for all persisted records.

    Entities are immutable; changes produce a new instance via ``model_copy``.
    """

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        frozen=True,
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_entity_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")
    schema_version: int = Field(default=1, description="Schema version for migrations")
