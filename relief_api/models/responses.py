# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class CoordinatesResponse(BaseModel):
    """Coordinates as returned to clients."""

    latitude: float
    longitude: float


class EmergencyRequestResponse(BaseModel):
    """Emergency request response model."""

    id: str = Field(..., description="Request ID")
    requesterId: str = Field(..., description="Requester user ID")
    type: str = Field(..., description="Disaster type")
    description: str = Field(..., description="Request description")
    location: str = Field(..., description="Location")
    coordinates: Optional[CoordinatesResponse] = Field(None, description="Map coordinates")
    address: Optional[str] = Field(None, description="Address")
    urgency: str = Field(..., description="Urgency level")
    contactInfo: Optional[str] = Field(None, description="Contact details")
    status: str = Field(..., description="Lifecycle status")
    assignedResponderId: Optional[str] = Field(None, description="Assigned responder ID")
    assignedAt: Optional[datetime] = Field(None, description="Assignment timestamp")
    completedAt: Optional[datetime] = Field(None, description="Completion timestamp")
    completedBy: Optional[str] = Field(None, description="Role credited with completion")
    deletable: bool = Field(..., description="Whether an organization may delete it")
    createdAt: datetime = Field(..., description="Creation timestamp")
    updatedAt: datetime = Field(..., description="Last update timestamp")
    version: int = Field(..., description="Record version")
    links: Dict[str, HalLink] = Field(default_factory=dict, alias="_links", description="HAL links")


class RequestCollectionResponse(BaseModel):
    """Paginated HAL collection of emergency requests."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Total number of pages")
    links: Dict[str, HalLink] = Field(default_factory=dict, alias="_links", description="HAL links")
    embedded: Dict[str, List[EmergencyRequestResponse]] = Field(
        default_factory=dict, alias="_embedded", description="Embedded requests"
    )


class RequestStatisticsResponse(BaseModel):
    """Counts of requests by lifecycle status."""

    total: int = Field(..., description="Total requests")
    active: int = Field(..., description="Pending, assigned or in progress")
    by_status: Dict[str, int] = Field(default_factory=dict, description="Counts per status")


class ProblemResponse(BaseModel):
    """RFC 7807 problem document."""

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human readable explanation")
    instance: str = Field(..., description="Request path")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Field errors")


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(..., description="Check timestamp")
    dependencies: Dict[str, Any] = Field(default_factory=dict, description="Dependency checks")
