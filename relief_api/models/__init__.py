# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the relief coordination platform.
"""

# Base models
from .base import BaseEntity, Clock, utc_now, generate_entity_id

# Enumerations
from .enums import (
    RequestStatus,
    RequestUrgency,
    DisasterType,
    ActorRole,
    ROLE_ALIASES
)

# Core entities
from .entities import (
    Coordinates,
    EmergencyRequest,
    ActorContext,
    DELETABLE_STATUSES
)

# Request models
from .requests import (
    CreateEmergencyRequest,
    ChangeStatusRequest,
    RequestListQuery,
    RequestPath
)

# Response models
from .responses import (
    HalLink,
    EmergencyRequestResponse,
    RequestCollectionResponse,
    RequestStatisticsResponse,
    ProblemResponse,
    HealthCheckResponse
)

__all__ = [
    # Base models
    "BaseEntity",
    "Clock",
    "utc_now",
    "generate_entity_id",

    # Enumerations
    "RequestStatus",
    "RequestUrgency",
    "DisasterType",
    "ActorRole",
    "ROLE_ALIASES",

    # Core entities
    "Coordinates",
    "EmergencyRequest",
    "ActorContext",
    "DELETABLE_STATUSES",

    # Request models
    "CreateEmergencyRequest",
    "ChangeStatusRequest",
    "RequestListQuery",
    "RequestPath",

    # Response models
    "HalLink",
    "EmergencyRequestResponse",
    "RequestCollectionResponse",
    "RequestStatisticsResponse",
    "ProblemResponse",
    "HealthCheckResponse"
]
