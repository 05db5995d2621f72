# SPDX-License-Identifier: Apache-2.0

"""
Typed error results shared by the domain and workflow layers.

Expected refusals are returned as values, never raised. The transport layer
maps each ErrorKind to a stable HTTP status and problem type.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Error taxonomy for request operations."""
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    REQUEST_UNAVAILABLE = "request_unavailable"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class OperationError:
    """A refused operation with a human-readable reason."""
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    validation_errors: List[Dict[str, Any]] = field(default_factory=list)


def validation_error(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> OperationError:
    return OperationError(ErrorKind.VALIDATION_ERROR, message, validation_errors=list(errors or []))


def not_found(request_id: str) -> OperationError:
    return OperationError(
        ErrorKind.NOT_FOUND,
        f"Request {request_id} not found",
        details={"requestId": request_id}
    )


def forbidden(message: str, **details: Any) -> OperationError:
    return OperationError(ErrorKind.FORBIDDEN, message, details=details)


def request_unavailable(message: str = "Request is no longer available", **details: Any) -> OperationError:
    return OperationError(ErrorKind.REQUEST_UNAVAILABLE, message, details=details)


def invalid_transition(message: str, **details: Any) -> OperationError:
    return OperationError(ErrorKind.INVALID_TRANSITION, message, details=details)
