# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from .entities import Coordinates
from .enums import RequestStatus, RequestUrgency, DisasterType, ActorRole


DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000


class CreateEmergencyRequest(BaseModel):
    """Payload for creating an emergency request."""

    type: DisasterType = Field(..., description="Disaster type")
    description: str = Field(..., description="What help is needed")
    urgency: RequestUrgency = Field(default=RequestUrgency.MEDIUM, description="Urgency level")
    location: Optional[str] = Field(None, max_length=500, description="Human readable location")
    coordinates: Optional[Coordinates] = Field(None, description="Map coordinates")
    address: Optional[str] = Field(None, max_length=500, description="Human readable address")
    contact_info: Optional[str] = Field(
        None, max_length=200, alias="contactInfo", description="Contact details"
    )

    model_config = {"populate_by_name": True}

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        """Validate description length after trimming."""
        v = v.strip()
        if len(v) < DESCRIPTION_MIN_LENGTH:
            raise ValueError(f'Description must be at least {DESCRIPTION_MIN_LENGTH} characters')
        if len(v) > DESCRIPTION_MAX_LENGTH:
            raise ValueError(f'Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters')
        return v

    @field_validator('location', 'address', 'contact_info')
    @classmethod
    def blank_to_none(cls, v):
        """Treat blank strings as absent."""
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode='after')
    def validate_location(self):
        """Require a location, or coordinates together with an address."""
        if not self.location and (self.coordinates is None or not self.address):
            raise ValueError('Either location or coordinates with address is required')
        return self


class ChangeStatusRequest(BaseModel):
    """Payload for a status change."""

    status: RequestStatus = Field(..., description="Target status")
    completed_by: Optional[ActorRole] = Field(
        None, alias="completedBy", description="Role credited with completion"
    )

    model_config = {"populate_by_name": True}

    @field_validator('completed_by', mode='before')
    @classmethod
    def resolve_role_alias(cls, v):
        """Accept legacy role names for completed_by."""
        if v is None:
            return v
        return ActorRole.from_claim(v)


class RequestListQuery(BaseModel):
    """Query parameters for request listings."""

    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")
    status: Optional[RequestStatus] = Field(None, description="Filter by status")
    urgency: Optional[RequestUrgency] = Field(None, description="Filter by urgency")
    type: Optional[DisasterType] = Field(None, description="Filter by disaster type")


class RequestPath(BaseModel):
    """Path parameters addressing a single request."""

    request_id: str = Field(..., description="Request identifier")
