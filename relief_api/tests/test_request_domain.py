# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for emergency request domain logic.
"""

import pytest

from relief_api.domain import requests as request_domain
from relief_api.domain.requests import RequestFilters
from relief_api.models.enums import RequestStatus, RequestUrgency, DisasterType
from relief_api.models.requests import CreateEmergencyRequest

from .conftest import BASE_TIME


class TestValidateCreatePayload:
    """Test create payload validation."""

    def test_valid_payload(self, sample_request_payload):
        result = request_domain.validate_create_payload(sample_request_payload)

        assert result.is_valid is True
        assert result.errors == []
        assert result.payload.type == DisasterType.FLOOD
        assert result.payload.contact_info == "+55 51 99999-0000"

    def test_non_object_body(self):
        result = request_domain.validate_create_payload(["not", "an", "object"])

        assert result.is_valid is False
        assert result.errors[0]["field"] == "body"

    def test_short_description(self, sample_request_payload):
        sample_request_payload["description"] = "   help   "

        result = request_domain.validate_create_payload(sample_request_payload)

        assert result.is_valid is False
        assert result.errors[0]["field"] == "description"

    def test_unknown_type(self, sample_request_payload):
        sample_request_payload["type"] = "meteor"

        result = request_domain.validate_create_payload(sample_request_payload)

        assert result.is_valid is False
        assert any(e["field"] == "type" for e in result.errors)

    def test_missing_location_and_address(self, sample_request_payload):
        del sample_request_payload["location"]

        result = request_domain.validate_create_payload(sample_request_payload)

        assert result.is_valid is False
        assert "location" in result.errors[0]["message"]

    def test_coordinates_with_address_replace_location(self, sample_request_payload):
        del sample_request_payload["location"]
        sample_request_payload["address"] = "Shelter 4, Canoas"

        result = request_domain.validate_create_payload(sample_request_payload)

        assert result.is_valid is True

    def test_urgency_defaults_to_medium(self, sample_request_payload):
        del sample_request_payload["urgency"]

        result = request_domain.validate_create_payload(sample_request_payload)

        assert result.payload.urgency == RequestUrgency.MEDIUM


class TestBuildEmergencyRequest:
    """Test building new request records."""

    def test_new_request_is_pending(self, sample_request_payload, clock):
        payload = CreateEmergencyRequest.model_validate(sample_request_payload)

        request = request_domain.build_emergency_request("requester-1", payload, clock)

        assert request.status == RequestStatus.PENDING
        assert request.requester_id == "requester-1"
        assert request.assigned_responder_id is None
        assert request.assigned_at is None
        assert request.completed_at is None
        assert request.completed_by is None
        assert request.deletable is True
        assert request.version == 1
        assert request.created_at == BASE_TIME
        assert request.updated_at == BASE_TIME
        assert request.id

    def test_address_falls_back_to_location(self, sample_request_payload, clock):
        payload = CreateEmergencyRequest.model_validate(sample_request_payload)

        request = request_domain.build_emergency_request("requester-1", payload, clock)

        assert request.location == "Rua das Flores 120, Porto Alegre"
        assert request.address == request.location

    def test_location_falls_back_to_address(self, sample_request_payload, clock):
        del sample_request_payload["location"]
        sample_request_payload["address"] = "Shelter 4, Canoas"
        payload = CreateEmergencyRequest.model_validate(sample_request_payload)

        request = request_domain.build_emergency_request("requester-1", payload, clock)

        assert request.location == "Shelter 4, Canoas"
        assert request.coordinates.latitude == -30.03

    def test_ids_are_unique(self, sample_request_payload, clock):
        payload = CreateEmergencyRequest.model_validate(sample_request_payload)

        first = request_domain.build_emergency_request("requester-1", payload, clock)
        second = request_domain.build_emergency_request("requester-1", payload, clock)

        assert first.id != second.id


class TestRequestFilters:
    """Test listing filters."""

    def test_my_requests_filter(self, make_request):
        filters = request_domain.my_requests_filter("requester-1")

        assert filters.matches(make_request(requester_id="requester-1"))
        assert not filters.matches(make_request(requester_id="requester-2"))
        assert filters.to_mongo_query() == {"requesterId": "requester-1"}

    def test_available_filter(self, make_request):
        filters = request_domain.available_requests_filter()

        assert filters.matches(make_request(RequestStatus.PENDING))
        assert not filters.matches(make_request(RequestStatus.PENDING, responder_id="responder-1"))
        assert not filters.matches(make_request(RequestStatus.ASSIGNED, responder_id="responder-1"))
        assert filters.to_mongo_query() == {"status": "pending", "assignedResponderId": None}

    def test_combined_filters(self, make_request):
        filters = RequestFilters(status=RequestStatus.PENDING, urgency=RequestUrgency.LOW, type=DisasterType.FLOOD)

        assert not filters.matches(make_request())
        assert filters.matches(make_request(urgency=RequestUrgency.LOW))
        assert filters.to_mongo_query() == {"status": "pending", "urgency": "low", "type": "flood"}

    def test_empty_filters_match_everything(self, make_request):
        assert RequestFilters().matches(make_request(RequestStatus.CANCELLED))
        assert RequestFilters().to_mongo_query() == {}


class TestRequestStatistics:
    """Test status count summaries."""

    def test_statistics_cover_every_status(self):
        stats = request_domain.compute_request_statistics({"pending": 2, "in_progress": 1, "completed": 4})

        assert stats["total"] == 7
        assert stats["active"] == 3
        assert stats["by_status"] == {
            "pending": 2,
            "assigned": 0,
            "in_progress": 1,
            "completed": 4,
            "cancelled": 0,
        }

    def test_empty_counts(self):
        stats = request_domain.compute_request_statistics({})

        assert stats["total"] == 0
        assert stats["active"] == 0
        assert set(stats["by_status"]) == {s.value for s in RequestStatus}

    @pytest.mark.parametrize("status", ["pending", "assigned", "in_progress"])
    def test_active_statuses(self, status):
        assert request_domain.compute_request_statistics({status: 1})["active"] == 1
