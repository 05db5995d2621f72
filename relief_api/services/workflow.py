# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Emergency request workflow service.

Orchestrates each caller-facing operation: load the current record, ask the
access guard, ask the lifecycle engine, and persist the result through the
request store with a version check. Expected refusals come back as typed
WorkflowResult values; only infrastructure failures raise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain import access, lifecycle
from ..domain import requests as request_domain
from ..domain.errors import OperationError, not_found, request_unavailable, validation_error
from ..domain.requests import RequestFilters
from ..models.base import Clock, utc_now
from ..models.entities import EmergencyRequest, ActorContext
from ..models.enums import ActorRole, RequestStatus
from .request_store import (
    RequestStore, PaginationResult, RequestNotFoundError, ConcurrentModificationError
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class WorkflowResult:
    """Result of a request workflow operation."""
    success: bool
    request: Optional[EmergencyRequest] = None
    page: Optional[PaginationResult] = None
    statistics: Optional[Dict[str, Any]] = None
    error: Optional[OperationError] = None

    @classmethod
    def failed(cls, error: OperationError) -> "WorkflowResult":
        return cls(success=False, error=error)


class RequestWorkflowService:
    """Runs request operations through the access guard and lifecycle engine."""

    def __init__(self, store: RequestStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    def create_request(self, actor: ActorContext, payload: Any) -> WorkflowResult:
        """
        Create a pending request owned by the actor.

        Args:
            actor: Authenticated caller
            payload: Decoded JSON body

        Returns:
            WorkflowResult with the stored request, or Forbidden/ValidationError
        """
        with tracer.start_as_current_span("request.create", attributes=self._actor_attributes(actor)) as span:
            decision = access.can_create(actor)
            if not decision.allowed:
                return self._refuse(span, "create", actor, decision.to_error())

            validation = request_domain.validate_create_payload(payload)
            if not validation.is_valid:
                return self._refuse(
                    span, "create", actor,
                    validation_error("Request validation failed", validation.errors)
                )

            created = self.store.create(
                request_domain.build_emergency_request(actor.user_id, validation.payload, self.clock)
            )

            span.set_attributes({"request.id": created.id, "request.status.to": created.status.value})
            logger.info(
                "Emergency request created",
                extra={"extra_fields": {
                    "request_id": created.id,
                    "user_id": actor.user_id,
                    "type": created.type.value,
                    "urgency": created.urgency.value
                }}
            )
            return WorkflowResult(success=True, request=created)

    def accept_request(self, actor: ActorContext, request_id: str) -> WorkflowResult:
        """
        Claim a pending, unassigned request for the calling responder.

        Concurrent claims resolve through the store's version check; the
        losers get RequestUnavailable.
        """
        with tracer.start_as_current_span(
            "request.accept",
            attributes={**self._actor_attributes(actor), "request.id": request_id}
        ) as span:
            current = self.store.get(request_id)
            if current is None:
                return self._refuse(span, "accept", actor, not_found(request_id))

            span.set_attribute("request.status.from", current.status.value)

            decision = access.can_accept(actor, current)
            if not decision.allowed:
                return self._refuse(span, "accept", actor, decision.to_error())

            transition = lifecycle.propose_transition(
                current, RequestStatus.ASSIGNED, actor.role, clock=self.clock
            )
            if not transition.success:
                return self._refuse(span, "accept", actor, transition.error)

            proposed = transition.request.model_copy(update={"assigned_responder_id": actor.user_id})

            try:
                saved = self.store.save(proposed, expected_version=current.version)
            except ConcurrentModificationError:
                return self._refuse(
                    span, "accept", actor,
                    request_unavailable(requestId=request_id)
                )
            except RequestNotFoundError:
                return self._refuse(span, "accept", actor, not_found(request_id))

            span.set_attribute("request.status.to", saved.status.value)
            logger.info(
                "Emergency request accepted",
                extra={"extra_fields": {
                    "request_id": request_id,
                    "responder_id": actor.user_id,
                    "version": saved.version
                }}
            )
            return WorkflowResult(success=True, request=saved)

    def change_status(
        self,
        actor: ActorContext,
        request_id: str,
        target_status: Union[RequestStatus, str],
        completed_by: Optional[ActorRole] = None
    ) -> WorkflowResult:
        """
        Move a request to another status.

        Args:
            actor: Authenticated caller
            request_id: Request to change
            target_status: Desired status
            completed_by: Role to credit with completion instead of the caller's role

        Returns:
            WorkflowResult with the stored request, or NotFound/Forbidden/
            InvalidTransition/RequestUnavailable
        """
        with tracer.start_as_current_span(
            "request.change_status",
            attributes={**self._actor_attributes(actor), "request.id": request_id}
        ) as span:
            current = self.store.get(request_id)
            if current is None:
                return self._refuse(span, "change_status", actor, not_found(request_id))

            span.set_attributes({
                "request.status.from": current.status.value,
                "request.status.to": str(getattr(target_status, "value", target_status))
            })

            decision = access.can_change_status(actor, current, target_status)
            if not decision.allowed:
                return self._refuse(span, "change_status", actor, decision.to_error())

            transition = lifecycle.propose_transition(
                current, target_status, actor.role, completed_by, clock=self.clock
            )
            if not transition.success:
                return self._refuse(span, "change_status", actor, transition.error)

            try:
                saved = self.store.save(transition.request, expected_version=current.version)
            except ConcurrentModificationError:
                return self._refuse(
                    span, "change_status", actor,
                    request_unavailable("Request was modified by another caller", requestId=request_id)
                )
            except RequestNotFoundError:
                return self._refuse(span, "change_status", actor, not_found(request_id))

            logger.info(
                "Emergency request status changed",
                extra={"extra_fields": {
                    "request_id": request_id,
                    "user_id": actor.user_id,
                    "role": actor.role.value,
                    "from_status": current.status.value,
                    "to_status": saved.status.value
                }}
            )
            return WorkflowResult(success=True, request=saved)

    def delete_request(self, actor: ActorContext, request_id: str) -> WorkflowResult:
        """
        Remove a request if the access guard allows it.

        The delete is version-checked; if the record changed since it was
        read, the decision is taken again on the fresh record.
        """
        with tracer.start_as_current_span(
            "request.delete",
            attributes={**self._actor_attributes(actor), "request.id": request_id}
        ) as span:
            for attempt in range(2):
                current = self.store.get(request_id)
                if current is None:
                    return self._refuse(span, "delete", actor, not_found(request_id))

                span.set_attribute("request.status.from", current.status.value)

                decision = access.can_delete(actor, current)
                if not decision.allowed:
                    return self._refuse(span, "delete", actor, decision.to_error())

                try:
                    self.store.delete(request_id, expected_version=current.version)
                except ConcurrentModificationError:
                    logger.info(
                        "Request changed before delete, re-evaluating",
                        extra={"extra_fields": {"request_id": request_id, "attempt": attempt + 1}}
                    )
                    continue
                except RequestNotFoundError:
                    return self._refuse(span, "delete", actor, not_found(request_id))

                logger.info(
                    "Emergency request deleted",
                    extra={"extra_fields": {
                        "request_id": request_id,
                        "user_id": actor.user_id,
                        "role": actor.role.value,
                        "status": current.status.value
                    }}
                )
                return WorkflowResult(success=True)

            return self._refuse(
                span, "delete", actor,
                request_unavailable("Request was modified by another caller", requestId=request_id)
            )

    def get_request(self, actor: ActorContext, request_id: str) -> WorkflowResult:
        with tracer.start_as_current_span(
            "request.get",
            attributes={**self._actor_attributes(actor), "request.id": request_id}
        ) as span:
            current = self.store.get(request_id)
            if current is None:
                return self._refuse(span, "get", actor, not_found(request_id))

            decision = access.can_view(actor, current)
            if not decision.allowed:
                return self._refuse(span, "get", actor, decision.to_error())

            return WorkflowResult(success=True, request=current)

    def list_my_requests(self, actor: ActorContext, page: int = 1, page_size: int = 20) -> WorkflowResult:
        """List requests created by the actor."""
        with tracer.start_as_current_span("request.list_mine", attributes=self._actor_attributes(actor)):
            result = self.store.list(request_domain.my_requests_filter(actor.user_id), page, page_size)
            return WorkflowResult(success=True, page=result)

    def list_available_requests(self, actor: ActorContext, page: int = 1, page_size: int = 20) -> WorkflowResult:
        """List pending, unassigned requests that responders may claim."""
        with tracer.start_as_current_span("request.list_available", attributes=self._actor_attributes(actor)):
            result = self.store.list(request_domain.available_requests_filter(), page, page_size)
            return WorkflowResult(success=True, page=result)

    def list_all_requests(
        self,
        actor: ActorContext,
        filters: Optional[RequestFilters] = None,
        page: int = 1,
        page_size: int = 20
    ) -> WorkflowResult:
        """List every request; organizations only."""
        with tracer.start_as_current_span("request.list_all", attributes=self._actor_attributes(actor)) as span:
            decision = access.can_list_all(actor)
            if not decision.allowed:
                return self._refuse(span, "list_all", actor, decision.to_error())

            result = self.store.list(filters or RequestFilters(), page, page_size)
            return WorkflowResult(success=True, page=result)

    def request_statistics(self, actor: ActorContext) -> WorkflowResult:
        """Summarise request counts by status; organizations only."""
        with tracer.start_as_current_span("request.statistics", attributes=self._actor_attributes(actor)) as span:
            decision = access.can_list_all(actor)
            if not decision.allowed:
                return self._refuse(span, "statistics", actor, decision.to_error())

            statistics = request_domain.compute_request_statistics(self.store.count_by_status())
            return WorkflowResult(success=True, statistics=statistics)

    @staticmethod
    def _actor_attributes(actor: ActorContext) -> Dict[str, str]:
        return {"user.id": actor.user_id, "user.role": actor.role.value}

    @staticmethod
    def _refuse(span, operation: str, actor: ActorContext, error: OperationError) -> WorkflowResult:
        span.set_status(Status(StatusCode.ERROR, error.message))
        logger.warning(
            f"Request {operation} refused: {error.message}",
            extra={"extra_fields": {
                "operation": operation,
                "user_id": actor.user_id,
                "role": actor.role.value,
                "error_kind": error.kind.value,
                **{k: v for k, v in error.details.items() if not isinstance(v, (list, dict))}
            }}
        )
        return WorkflowResult.failed(error)
