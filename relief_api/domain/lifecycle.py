# SPDX-License-Identifier: Apache-2.0

"""
Request lifecycle engine.

This module owns the status state machine for emergency requests. It decides
whether a status change is structurally legal and computes the complete next
record, including the derived bookkeeping fields. All functions are pure: the
current time comes from an injected clock and nothing is persisted here.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Union

from ..models.base import Clock, utc_now
from ..models.entities import EmergencyRequest, DELETABLE_STATUSES
from ..models.enums import RequestStatus, ActorRole
from .errors import OperationError, invalid_transition, validation_error


VALID_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ASSIGNED, RequestStatus.CANCELLED}),
    RequestStatus.ASSIGNED: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED}),
    RequestStatus.COMPLETED: frozenset(),  # Terminal state
    RequestStatus.CANCELLED: frozenset(),  # Terminal state
}

INITIAL_STATUS = RequestStatus.PENDING

TERMINAL_STATUSES: FrozenSet[RequestStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

# Lifecycle order, used to present allowed transitions deterministically
STATUS_ORDER: List[RequestStatus] = list(RequestStatus)


@dataclass(frozen=True)
class TransitionResult:
    """Result of a proposed status transition."""
    success: bool
    request: Optional[EmergencyRequest] = None
    error: Optional[OperationError] = None


def get_allowed_transitions(current_status: Union[RequestStatus, str]) -> List[RequestStatus]:
    """
    Get the statuses reachable in one step from the current status.

    Args:
        current_status: Current request status

    Returns:
        Reachable statuses in lifecycle order (empty for terminal or unknown states)
    """
    try:
        current = RequestStatus(current_status)
    except ValueError:
        return []

    targets = VALID_TRANSITIONS[current]
    return [status for status in STATUS_ORDER if status in targets]


def is_valid_transition(current_status: Union[RequestStatus, str],
                        target_status: Union[RequestStatus, str]) -> bool:
    """Check if target_status is an outgoing edge of current_status."""
    try:
        current = RequestStatus(current_status)
        target = RequestStatus(target_status)
    except ValueError:
        return False

    return target in VALID_TRANSITIONS[current]


def is_terminal(status: Union[RequestStatus, str]) -> bool:
    """Check if no transition leaves the status."""
    return RequestStatus(status) in TERMINAL_STATUSES


def is_deletable(status: Union[RequestStatus, str]) -> bool:
    """Derive deletion eligibility; a total function of status."""
    return RequestStatus(status) in DELETABLE_STATUSES


def propose_transition(
    request: EmergencyRequest,
    target_status: Union[RequestStatus, str],
    acting_role: Union[ActorRole, str],
    completed_by_override: Optional[Union[ActorRole, str]] = None,
    clock: Clock = utc_now
) -> TransitionResult:
    """
    Validate a status change and compute the resulting record.

    Args:
        request: Current request snapshot
        target_status: Desired status
        acting_role: Role of the actor triggering the change
        completed_by_override: Role to credit with completion instead of acting_role;
            legacy role names are accepted
        clock: Source of "now" for timestamp fields

    Returns:
        TransitionResult with the next record, an InvalidTransition error, or a
        ValidationError when the credited role is unknown
    """
    current = request.status

    try:
        target = RequestStatus(target_status)
    except ValueError:
        return TransitionResult(
            success=False,
            error=invalid_transition(
                f"Unknown status: {target_status}",
                currentStatus=current.value,
                targetStatus=str(target_status),
                allowedTransitions=[s.value for s in get_allowed_transitions(current)]
            )
        )

    if not is_valid_transition(current, target):
        if is_terminal(current):
            message = f"Request is {current.value} and can no longer change status"
        else:
            message = f"Invalid status transition from {current.value} to {target.value}"
        return TransitionResult(
            success=False,
            error=invalid_transition(
                message,
                currentStatus=current.value,
                targetStatus=target.value,
                allowedTransitions=[s.value for s in get_allowed_transitions(current)]
            )
        )

    now = clock()
    updates = {
        "status": target,
        "deletable": is_deletable(target),
        "updated_at": now,
    }

    # First write wins: a retried or duplicated assignment keeps the original timestamp
    if target == RequestStatus.ASSIGNED and request.assigned_at is None:
        updates["assigned_at"] = now

    if target == RequestStatus.COMPLETED and request.completed_at is None:
        credited = completed_by_override if completed_by_override is not None else acting_role
        try:
            credited_role = ActorRole.from_claim(credited)
        except ValueError:
            return TransitionResult(
                success=False,
                error=validation_error(
                    f"Unknown role for completion: {credited}",
                    [{"field": "completed_by", "message": f"Unknown role: {credited}", "type": "value_error"}]
                )
            )
        updates["completed_at"] = now
        updates["completed_by"] = credited_role

    return TransitionResult(success=True, request=request.model_copy(update=updates))
