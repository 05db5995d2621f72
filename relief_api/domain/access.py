# SPDX-License-Identifier: Apache-2.0

"""
Access guard for emergency request operations.

This module holds the single authorization decision table for request
operations: who may create, claim, move, view, list, and delete a request.
Decisions are pure functions of the actor and the current record snapshot;
structural legality of a status change is checked separately by the
lifecycle engine.
"""

from typing import Dict, FrozenSet, List, Optional, Union
from dataclasses import dataclass, field

from ..models.entities import EmergencyRequest, ActorContext
from ..models.enums import RequestStatus, ActorRole
from .errors import ErrorKind, OperationError
from . import lifecycle


# Statuses each role may propose through a general status change
STATUS_CHANGE_POLICY: Dict[ActorRole, FrozenSet[RequestStatus]] = {
    ActorRole.REQUESTER: frozenset({RequestStatus.CANCELLED, RequestStatus.COMPLETED}),
    ActorRole.RESPONDER: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED}),
    ActorRole.ORGANIZATION: frozenset({RequestStatus.ASSIGNED, RequestStatus.CANCELLED}),
}

# Affordance name offered for each target status
STATUS_ACTIONS: Dict[RequestStatus, str] = {
    RequestStatus.ASSIGNED: "assign",
    RequestStatus.IN_PROGRESS: "start",
    RequestStatus.COMPLETED: "complete",
    RequestStatus.CANCELLED: "cancel",
}


@dataclass
class AccessDecision:
    """Result of an access check."""
    allowed: bool
    reason: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    details: Dict[str, object] = field(default_factory=dict)

    def to_error(self) -> Optional[OperationError]:
        """Convert a refusal into a typed operation error."""
        if self.allowed:
            return None
        return OperationError(self.error_kind or ErrorKind.FORBIDDEN, self.reason or "Forbidden", dict(self.details))


ALLOWED = AccessDecision(allowed=True)


def _deny(reason: str, kind: ErrorKind = ErrorKind.FORBIDDEN, **details) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason, error_kind=kind, details=details)


def can_create(actor: ActorContext) -> AccessDecision:
    """Only requesters may create emergency requests."""
    if not actor.has_role(ActorRole.REQUESTER):
        return _deny("Only requesters can create emergency requests", role=actor.role.value)
    return ALLOWED


def can_accept(actor: ActorContext, request: EmergencyRequest) -> AccessDecision:
    """
    Check if a responder may claim a request.

    Args:
        actor: Actor attempting to claim
        request: Current request snapshot

    Returns:
        Forbidden for non-responders, RequestUnavailable when already claimed
        or no longer pending
    """
    if not actor.has_role(ActorRole.RESPONDER):
        return _deny("Only responders can accept requests", role=actor.role.value)

    if request.status != RequestStatus.PENDING or request.assigned_responder_id is not None:
        return _deny(
            "Request is no longer available",
            ErrorKind.REQUEST_UNAVAILABLE,
            currentStatus=request.status.value,
            assigned=request.assigned_responder_id is not None
        )

    return ALLOWED


def can_change_status(actor: ActorContext, request: EmergencyRequest,
                      target_status: Union[RequestStatus, str]) -> AccessDecision:
    """
    Check if an actor may propose a status change.

    Requesters act on their own requests, responders on requests assigned to
    them, and organizations on any request. Whether the change is reachable
    from the current status is not checked here.

    An organization may set a request to assigned without naming a responder.
    No responder can then accept or work it, so it can only be cancelled.

    Args:
        actor: Actor proposing the change
        request: Current request snapshot
        target_status: Proposed status

    Returns:
        AccessDecision; refusals are Forbidden
    """
    try:
        target = RequestStatus(target_status)
    except ValueError:
        return _deny(f"Unknown status: {target_status}")

    permitted = STATUS_CHANGE_POLICY.get(actor.role, frozenset())
    if target not in permitted:
        return _deny(
            f"Role {actor.role.value} cannot set status to {target.value}",
            role=actor.role.value,
            targetStatus=target.value
        )

    if actor.role == ActorRole.REQUESTER and not request.is_owned_by(actor.user_id):
        return _deny("Requesters can only change the status of their own requests")

    if actor.role == ActorRole.RESPONDER and not request.is_assigned_to(actor.user_id):
        return _deny("Responders can only change the status of requests assigned to them")

    return ALLOWED


def can_delete(actor: ActorContext, request: EmergencyRequest) -> AccessDecision:
    """
    Check if an actor may remove a request.

    The original requester may always delete their own request. Organizations
    may delete only deletable requests. Responders never may.

    Args:
        actor: Actor attempting the delete
        request: Current request snapshot

    Returns:
        AccessDecision; refusals carry the current status and deletable flag
    """
    if request.is_owned_by(actor.user_id):
        return ALLOWED

    if actor.role == ActorRole.ORGANIZATION and request.deletable:
        return ALLOWED

    if actor.role == ActorRole.ORGANIZATION:
        reason = f"Request cannot be deleted while {request.status.value}"
    elif actor.role == ActorRole.RESPONDER:
        reason = "Responders cannot delete requests"
    else:
        reason = "Only the original requester can delete this request"

    return _deny(reason, currentStatus=request.status.value, deletable=request.deletable)


def can_view(actor: ActorContext, request: EmergencyRequest) -> AccessDecision:
    """Check if an actor may read a single request."""
    if actor.role == ActorRole.ORGANIZATION:
        return ALLOWED

    if request.is_owned_by(actor.user_id) or request.is_assigned_to(actor.user_id):
        return ALLOWED

    if actor.role == ActorRole.RESPONDER and request.is_available():
        return ALLOWED

    return _deny("Not authorized to view this request")


def can_list_all(actor: ActorContext) -> AccessDecision:
    """Only organizations may list every request or read statistics."""
    if not actor.has_role(ActorRole.ORGANIZATION):
        return _deny("Access denied", role=actor.role.value)
    return ALLOWED


def available_actions(actor: ActorContext, request: EmergencyRequest) -> List[str]:
    """
    List the actions the actor could successfully perform right now.

    An action is offered only when both the access guard and the lifecycle
    engine would accept it.

    Args:
        actor: Actor viewing the request
        request: Current request snapshot

    Returns:
        Action names among accept, assign, start, complete, cancel, delete
    """
    actions = []

    if can_accept(actor, request).allowed:
        actions.append("accept")

    for target in lifecycle.get_allowed_transitions(request.status):
        if can_change_status(actor, request, target).allowed:
            actions.append(STATUS_ACTIONS[target])

    if can_delete(actor, request).allowed:
        actions.append("delete")

    return actions
