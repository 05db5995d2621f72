# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the relief coordination platform.
"""

from enum import Enum
from typing import Dict


class RequestStatus(str, Enum):
    """Emergency request lifecycle status."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestUrgency(str, Enum):
    """How urgent the requester considers the request."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DisasterType(str, Enum):
    """Kind of disaster the request relates to."""
    FLOOD = "flood"
    EARTHQUAKE = "earthquake"
    LANDSLIDE = "landslide"
    TSUNAMI = "tsunami"
    WILDFIRE = "wildfire"
    CYCLONE = "cyclone"
    DROUGHT = "drought"
    OTHER = "other"


class ActorRole(str, Enum):
    """Roles an authenticated actor can hold."""
    REQUESTER = "requester"
    RESPONDER = "responder"
    ORGANIZATION = "organization"

    @classmethod
    def from_claim(cls, value: str) -> "ActorRole":
        """
        Resolve a role claim, accepting the legacy role names.

        Raises:
            ValueError: If the claim names no known role
        """
        if value is None:
            raise ValueError("Missing role claim")
        if isinstance(value, cls):
            return value

        normalized = str(value).strip().lower()
        normalized = ROLE_ALIASES.get(normalized, normalized)
        return cls(normalized)


# Legacy role names issued by older clients
ROLE_ALIASES: Dict[str, str] = {
    "victim": ActorRole.REQUESTER.value,
    "volunteer": ActorRole.RESPONDER.value,
    "admin": ActorRole.ORGANIZATION.value,
    "coordinator": ActorRole.ORGANIZATION.value,
}
