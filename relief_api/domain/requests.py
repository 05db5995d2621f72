# SPDX-License-Identifier: Apache-2.0

"""
Emergency request domain logic.

This module contains pure functions for validating new requests, building
request records, filtering listings, and summarising request counts.
"""

from typing import List, Dict, Any, Optional, Mapping
from dataclasses import dataclass, field
from pydantic import ValidationError

from ..models.base import Clock, utc_now, generate_entity_id
from ..models.entities import EmergencyRequest
from ..models.enums import RequestStatus, RequestUrgency, DisasterType
from ..models.requests import CreateEmergencyRequest
from .lifecycle import INITIAL_STATUS, is_deletable


ACTIVE_STATUSES = frozenset({
    RequestStatus.PENDING,
    RequestStatus.ASSIGNED,
    RequestStatus.IN_PROGRESS,
})


@dataclass
class RequestFilters:
    """Filters for emergency request queries."""
    requester_id: Optional[str] = None
    assigned_responder_id: Optional[str] = None
    unassigned_only: bool = False
    status: Optional[RequestStatus] = None
    urgency: Optional[RequestUrgency] = None
    type: Optional[DisasterType] = None

    def matches(self, request: EmergencyRequest) -> bool:
        """Check if a request satisfies every filter."""
        if self.requester_id is not None and request.requester_id != self.requester_id:
            return False
        if self.assigned_responder_id is not None and request.assigned_responder_id != self.assigned_responder_id:
            return False
        if self.unassigned_only and request.assigned_responder_id is not None:
            return False
        if self.status is not None and request.status != self.status:
            return False
        if self.urgency is not None and request.urgency != self.urgency:
            return False
        if self.type is not None and request.type != self.type:
            return False
        return True

    def to_mongo_query(self) -> Dict[str, Any]:
        """Build the equivalent MongoDB filter document."""
        query: Dict[str, Any] = {}
        if self.requester_id is not None:
            query["requesterId"] = self.requester_id
        if self.assigned_responder_id is not None:
            query["assignedResponderId"] = self.assigned_responder_id
        if self.unassigned_only:
            query["assignedResponderId"] = None
        if self.status is not None:
            query["status"] = self.status.value
        if self.urgency is not None:
            query["urgency"] = self.urgency.value
        if self.type is not None:
            query["type"] = self.type.value
        return query


@dataclass
class ValidationResult:
    """Result of request payload validation."""
    is_valid: bool
    payload: Optional[CreateEmergencyRequest] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)


def validate_create_payload(data: Any) -> ValidationResult:
    """
    Validate a raw create-request payload.

    Args:
        data: Decoded JSON body

    Returns:
        ValidationResult with the parsed payload or field errors
    """
    if not isinstance(data, dict):
        return ValidationResult(
            is_valid=False,
            errors=[{"field": "body", "message": "Request body must be a JSON object", "type": "type_error"}]
        )

    try:
        payload = CreateEmergencyRequest.model_validate(data)
    except ValidationError as e:
        return ValidationResult(is_valid=False, errors=format_validation_errors(e))

    return ValidationResult(is_valid=True, payload=payload)


def format_validation_errors(error: ValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into field/message pairs."""
    formatted = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        formatted.append({
            "field": location or "body",
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "value_error"),
            "input": err.get("input"),
        })
    return formatted


def build_emergency_request(
    requester_id: str,
    payload: CreateEmergencyRequest,
    clock: Clock = utc_now
) -> EmergencyRequest:
    """
    Build a new pending request from a validated payload.

    Args:
        requester_id: Creating actor
        payload: Validated create payload
        clock: Source of the creation timestamp

    Returns:
        EmergencyRequest at version 1
    """
    now = clock()
    location = payload.location or payload.address
    address = payload.address or payload.location

    return EmergencyRequest(
        id=generate_entity_id(),
        requester_id=requester_id,
        type=payload.type,
        description=payload.description,
        location=location,
        coordinates=payload.coordinates,
        address=address,
        urgency=payload.urgency,
        contact_info=payload.contact_info,
        status=INITIAL_STATUS,
        deletable=is_deletable(INITIAL_STATUS),
        created_at=now,
        updated_at=now,
        version=1
    )


def my_requests_filter(requester_id: str) -> RequestFilters:
    return RequestFilters(requester_id=requester_id)


def available_requests_filter() -> RequestFilters:
    return RequestFilters(status=RequestStatus.PENDING, unassigned_only=True)


def compute_request_statistics(status_counts: Mapping[str, int]) -> Dict[str, Any]:
    """
    Summarise per-status request counts.

    Args:
        status_counts: Request count keyed by status value; missing statuses count as zero

    Returns:
        Dictionary with total, active and by_status counts
    """
    by_status = {status.value: int(status_counts.get(status.value, 0)) for status in RequestStatus}

    return {
        "total": sum(by_status.values()),
        "active": sum(by_status[s.value] for s in ACTIVE_STATUSES),
        "by_status": by_status,
    }
