# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the relief coordination platform.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity
from .enums import RequestStatus, RequestUrgency, DisasterType, ActorRole


# Statuses reached only after passing through "assigned"
POST_ASSIGNMENT_STATUSES = frozenset({
    RequestStatus.ASSIGNED,
    RequestStatus.IN_PROGRESS,
    RequestStatus.COMPLETED,
})

DELETABLE_STATUSES = frozenset({
    RequestStatus.PENDING,
    RequestStatus.COMPLETED,
    RequestStatus.CANCELLED,
})


class Coordinates(BaseModel):
    """Geographic point attached to a request for map display."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class EmergencyRequest(BaseEntity):
    """An assistance request moving through the relief lifecycle."""

    requester_id: str = Field(..., min_length=1, description="Actor who created the request")
    type: DisasterType = Field(..., description="Disaster type")
    description: str = Field(..., min_length=1, max_length=2000, description="What help is needed")
    location: str = Field(..., min_length=1, description="Human readable location")
    coordinates: Optional[Coordinates] = Field(None, description="Map coordinates")
    address: Optional[str] = Field(None, description="Human readable address")
    urgency: RequestUrgency = Field(default=RequestUrgency.MEDIUM, description="Urgency level")
    contact_info: Optional[str] = Field(None, description="How to reach the requester")
    status: RequestStatus = Field(default=RequestStatus.PENDING, description="Lifecycle status")
    assigned_responder_id: Optional[str] = Field(None, description="Responder fulfilling the request")
    assigned_at: Optional[datetime] = Field(None, description="First assignment timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")
    completed_by: Optional[ActorRole] = Field(None, description="Role that triggered completion")
    deletable: bool = Field(default=True, description="Whether a non-owner may remove the request")

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        """Validate request description."""
        if not v.strip():
            raise ValueError('Request description cannot be empty')
        return v.strip()

    @model_validator(mode='after')
    def validate_lifecycle_fields(self):
        """Validate status-dependent bookkeeping fields."""
        if self.status in POST_ASSIGNMENT_STATUSES and self.assigned_at is None:
            raise ValueError(f'assigned_at is required when status is {self.status.value}')

        if self.status == RequestStatus.PENDING and self.assigned_at is not None:
            raise ValueError('assigned_at must be empty while the request is pending')

        is_completed = self.status == RequestStatus.COMPLETED
        if is_completed and (self.completed_at is None or self.completed_by is None):
            raise ValueError('completed_at and completed_by are required when status is completed')

        if not is_completed and (self.completed_at is not None or self.completed_by is not None):
            raise ValueError('completed_at and completed_by are only allowed when status is completed')

        if self.deletable != (self.status in DELETABLE_STATUSES):
            raise ValueError(f'deletable does not match status {self.status.value}')

        return self

    def is_available(self) -> bool:
        """Check if a responder may still claim the request."""
        return self.status == RequestStatus.PENDING and self.assigned_responder_id is None

    def is_owned_by(self, user_id: str) -> bool:
        """Check if the given actor created the request."""
        return self.requester_id == user_id

    def is_assigned_to(self, user_id: str) -> bool:
        """Check if the given actor is the assigned responder."""
        return self.assigned_responder_id is not None and self.assigned_responder_id == user_id


class ActorContext(BaseModel):
    """Authenticated caller identity for request processing."""

    user_id: str = Field(..., min_length=1, description="Authenticated user ID")
    role: ActorRole = Field(..., description="Actor role")
    email: Optional[str] = Field(None, description="User email")
    name: Optional[str] = Field(None, description="User display name")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    session_id: Optional[str] = Field(None, description="Session identifier")

    def has_role(self, *roles: ActorRole) -> bool:
        """Check if the actor holds any of the given roles."""
        return self.role in roles
