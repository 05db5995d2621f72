# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the access guard decision table.
"""

import pytest

from relief_api.domain import access
from relief_api.domain.errors import ErrorKind
from relief_api.models.entities import ActorContext
from relief_api.models.enums import RequestStatus, ActorRole

S = RequestStatus


class TestCanCreate:
    """Test create permission."""

    def test_requester_may_create(self, requester):
        assert access.can_create(requester).allowed is True

    @pytest.mark.parametrize("role", [ActorRole.RESPONDER, ActorRole.ORGANIZATION])
    def test_other_roles_forbidden(self, role):
        decision = access.can_create(ActorContext(user_id="someone", role=role))

        assert decision.allowed is False
        assert decision.error_kind == ErrorKind.FORBIDDEN
        assert decision.reason == "Only requesters can create emergency requests"


class TestCanAccept:
    """Test claim permission."""

    def test_responder_may_accept_pending_unassigned(self, responder, make_request):
        assert access.can_accept(responder, make_request(S.PENDING)).allowed is True

    @pytest.mark.parametrize("role", [ActorRole.REQUESTER, ActorRole.ORGANIZATION])
    def test_non_responders_forbidden(self, role, make_request):
        decision = access.can_accept(ActorContext(user_id="requester-1", role=role), make_request(S.PENDING))

        assert decision.error_kind == ErrorKind.FORBIDDEN
        assert decision.reason == "Only responders can accept requests"

    @pytest.mark.parametrize("status", [S.ASSIGNED, S.IN_PROGRESS, S.COMPLETED, S.CANCELLED])
    def test_not_pending_is_unavailable(self, responder, make_request, status):
        decision = access.can_accept(responder, make_request(status, responder_id="responder-2"))

        assert decision.allowed is False
        assert decision.error_kind == ErrorKind.REQUEST_UNAVAILABLE
        assert decision.details["currentStatus"] == status.value

    def test_pending_but_assigned_is_unavailable(self, responder, make_request):
        """A pending record that already names a responder cannot be claimed."""
        decision = access.can_accept(responder, make_request(S.PENDING, responder_id="responder-2"))

        assert decision.error_kind == ErrorKind.REQUEST_UNAVAILABLE
        assert decision.details["assigned"] is True

    def test_refusal_converts_to_error(self, requester, make_request):
        error = access.can_accept(requester, make_request(S.PENDING)).to_error()

        assert error.kind == ErrorKind.FORBIDDEN
        assert error.message == "Only responders can accept requests"

    def test_allowed_converts_to_no_error(self, responder, make_request):
        assert access.can_accept(responder, make_request(S.PENDING)).to_error() is None


class TestCanChangeStatus:
    """Test the role policy for status changes."""

    @pytest.mark.parametrize("role,target,expected", [
        (ActorRole.REQUESTER, S.CANCELLED, True),
        (ActorRole.REQUESTER, S.COMPLETED, True),
        (ActorRole.REQUESTER, S.ASSIGNED, False),
        (ActorRole.REQUESTER, S.IN_PROGRESS, False),
        (ActorRole.REQUESTER, S.PENDING, False),
        (ActorRole.RESPONDER, S.IN_PROGRESS, True),
        (ActorRole.RESPONDER, S.COMPLETED, True),
        (ActorRole.RESPONDER, S.CANCELLED, False),
        (ActorRole.RESPONDER, S.ASSIGNED, False),
        (ActorRole.ORGANIZATION, S.ASSIGNED, True),
        (ActorRole.ORGANIZATION, S.CANCELLED, True),
        (ActorRole.ORGANIZATION, S.COMPLETED, False),
        (ActorRole.ORGANIZATION, S.IN_PROGRESS, False),
    ])
    def test_policy_table(self, make_request, role, target, expected):
        """Owner and assignee are the same actor so only the role policy decides."""
        actor = ActorContext(user_id="actor-1", role=role)
        request = make_request(S.ASSIGNED, requester_id="actor-1", responder_id="actor-1")

        decision = access.can_change_status(actor, request, target)

        assert decision.allowed is expected
        if not expected:
            assert decision.error_kind == ErrorKind.FORBIDDEN

    def test_requester_must_own_request(self, other_requester, make_request):
        decision = access.can_change_status(other_requester, make_request(S.PENDING), S.CANCELLED)

        assert decision.allowed is False
        assert decision.reason == "Requesters can only change the status of their own requests"

    def test_responder_must_be_assignee(self, other_responder, make_request):
        request = make_request(S.ASSIGNED, responder_id="responder-1")

        decision = access.can_change_status(other_responder, request, S.IN_PROGRESS)

        assert decision.allowed is False
        assert decision.reason == "Responders can only change the status of requests assigned to them"

    def test_organization_acts_on_any_request(self, organization, make_request):
        request = make_request(S.ASSIGNED, requester_id="requester-9", responder_id="responder-9")

        assert access.can_change_status(organization, request, S.CANCELLED).allowed is True

    def test_policy_ignores_reachability(self, requester, make_request):
        """The guard permits a requester completing a pending request; the engine refuses it."""
        assert access.can_change_status(requester, make_request(S.PENDING), S.COMPLETED).allowed is True

    def test_unknown_target_forbidden(self, organization, make_request):
        decision = access.can_change_status(organization, make_request(S.PENDING), "archived")

        assert decision.allowed is False
        assert decision.error_kind == ErrorKind.FORBIDDEN


class TestCanDelete:
    """Test delete permission."""

    @pytest.mark.parametrize("status", list(S))
    def test_owner_may_always_delete(self, requester, make_request, status):
        request = make_request(status, responder_id="responder-1" if status != S.PENDING else None)

        assert access.can_delete(requester, request).allowed is True

    @pytest.mark.parametrize("status,expected", [
        (S.PENDING, True),
        (S.ASSIGNED, False),
        (S.IN_PROGRESS, False),
        (S.COMPLETED, True),
        (S.CANCELLED, True),
    ])
    def test_organization_follows_deletable(self, organization, make_request, status, expected):
        decision = access.can_delete(organization, make_request(status))

        assert decision.allowed is expected
        if not expected:
            assert decision.error_kind == ErrorKind.FORBIDDEN
            assert decision.reason == f"Request cannot be deleted while {status.value}"
            assert decision.details == {"currentStatus": status.value, "deletable": False}

    @pytest.mark.parametrize("status", list(S))
    def test_responder_never_deletes(self, responder, make_request, status):
        request = make_request(status, responder_id="responder-1" if status != S.PENDING else None)

        decision = access.can_delete(responder, request)

        assert decision.allowed is False
        assert decision.reason == "Responders cannot delete requests"

    def test_other_requester_forbidden(self, other_requester, make_request):
        decision = access.can_delete(other_requester, make_request(S.CANCELLED))

        assert decision.allowed is False
        assert decision.reason == "Only the original requester can delete this request"


class TestCanView:
    """Test single-request read permission."""

    def test_organization_sees_everything(self, organization, make_request):
        assert access.can_view(organization, make_request(S.IN_PROGRESS, requester_id="x")).allowed

    def test_owner_and_assignee(self, requester, responder, make_request):
        request = make_request(S.IN_PROGRESS, responder_id="responder-1")

        assert access.can_view(requester, request).allowed
        assert access.can_view(responder, request).allowed

    def test_responder_sees_available_requests(self, other_responder, make_request):
        assert access.can_view(other_responder, make_request(S.PENDING)).allowed

    def test_responder_cannot_see_others_assignments(self, other_responder, make_request):
        decision = access.can_view(other_responder, make_request(S.ASSIGNED, responder_id="responder-1"))

        assert decision.allowed is False
        assert decision.reason == "Not authorized to view this request"

    def test_other_requester_cannot_view(self, other_requester, make_request):
        assert access.can_view(other_requester, make_request(S.PENDING)).allowed is False


class TestCanListAll:

    def test_only_organization(self, requester, responder, organization):
        assert access.can_list_all(organization).allowed
        assert access.can_list_all(requester).reason == "Access denied"
        assert access.can_list_all(responder).error_kind == ErrorKind.FORBIDDEN


class TestAvailableActions:
    """Test affordance derivation."""

    def test_responder_on_available_request(self, responder, make_request):
        assert access.available_actions(responder, make_request(S.PENDING)) == ["accept"]

    def test_owner_on_pending_request(self, requester, make_request):
        """Completing from pending is not reachable so it is not offered."""
        assert access.available_actions(requester, make_request(S.PENDING)) == ["cancel", "delete"]

    def test_assignee_through_lifecycle(self, responder, make_request):
        assigned = make_request(S.ASSIGNED, responder_id="responder-1")
        in_progress = make_request(S.IN_PROGRESS, responder_id="responder-1")
        completed = make_request(S.COMPLETED, responder_id="responder-1")

        assert access.available_actions(responder, assigned) == ["start"]
        assert access.available_actions(responder, in_progress) == ["complete"]
        assert access.available_actions(responder, completed) == []

    def test_organization_actions(self, organization, make_request):
        assert access.available_actions(organization, make_request(S.PENDING)) == ["assign", "cancel", "delete"]
        assert access.available_actions(
            organization, make_request(S.IN_PROGRESS, responder_id="responder-1")
        ) == ["cancel"]
        assert access.available_actions(organization, make_request(S.CANCELLED)) == ["delete"]

    def test_owner_on_in_progress_request(self, requester, make_request):
        request = make_request(S.IN_PROGRESS, responder_id="responder-1")

        assert access.available_actions(requester, request) == ["complete", "cancel", "delete"]

    def test_unrelated_requester_gets_nothing(self, other_requester, make_request):
        assert access.available_actions(other_requester, make_request(S.PENDING)) == []


class TestAssignedWithoutResponder:
    """An organization may mark a request assigned before naming a responder."""

    def test_no_responder_can_claim_or_work_it(self, responder, make_request):
        request = make_request(S.ASSIGNED)

        assert access.can_accept(responder, request).error_kind == ErrorKind.REQUEST_UNAVAILABLE
        assert not access.can_change_status(responder, request, S.IN_PROGRESS).allowed
        assert access.available_actions(responder, request) == []

    def test_only_cancellation_remains(self, requester, organization, make_request):
        request = make_request(S.ASSIGNED)

        assert access.available_actions(organization, request) == ["cancel"]
        assert access.available_actions(requester, request) == ["cancel", "delete"]
