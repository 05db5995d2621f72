# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from relief_api.app import create_app
from relief_api.models.entities import EmergencyRequest, ActorContext
from relief_api.models.enums import ActorRole, RequestStatus, DisasterType, RequestUrgency
from relief_api.services.auth import AuthService
from relief_api.services.request_store import InMemoryRequestStore

TEST_JWT_SECRET = "relief-api-test-signing-secret-0123456789"
BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that moves only when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Fixed clock starting at BASE_TIME."""
    return FakeClock()


@pytest.fixture
def requester():
    return ActorContext(user_id="requester-1", role=ActorRole.REQUESTER)


@pytest.fixture
def other_requester():
    return ActorContext(user_id="requester-2", role=ActorRole.REQUESTER)


@pytest.fixture
def responder():
    return ActorContext(user_id="responder-1", role=ActorRole.RESPONDER)


@pytest.fixture
def other_responder():
    return ActorContext(user_id="responder-2", role=ActorRole.RESPONDER)


@pytest.fixture
def organization():
    return ActorContext(user_id="org-1", role=ActorRole.ORGANIZATION)


@pytest.fixture
def sample_request_payload() -> Dict[str, Any]:
    """Valid create-request payload as sent by a client."""
    return {
        "type": "flood",
        "description": "Water is rising in the ground floor, two adults need evacuation",
        "urgency": "high",
        "location": "Rua das Flores 120, Porto Alegre",
        "coordinates": {"latitude": -30.03, "longitude": -51.23},
        "contactInfo": "+55 51 99999-0000"
    }


@pytest.fixture
def make_request():
    """Factory for request records in any lifecycle status."""
    def _make(status: RequestStatus = RequestStatus.PENDING, requester_id: str = "requester-1",
              responder_id: str = None, **overrides) -> EmergencyRequest:
        status = RequestStatus(status)
        fields = {
            "id": overrides.pop("id", "req-1"),
            "requester_id": requester_id,
            "type": DisasterType.FLOOD,
            "description": "Water is rising in the ground floor",
            "location": "Rua das Flores 120",
            "urgency": RequestUrgency.HIGH,
            "status": status,
            "assigned_responder_id": responder_id,
            "deletable": status in (RequestStatus.PENDING, RequestStatus.COMPLETED, RequestStatus.CANCELLED),
            "created_at": BASE_TIME,
            "updated_at": BASE_TIME,
        }
        if status in (RequestStatus.ASSIGNED, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED):
            fields["assigned_at"] = BASE_TIME
        if status == RequestStatus.COMPLETED:
            fields["completed_at"] = BASE_TIME
            fields["completed_by"] = ActorRole.RESPONDER
        fields.update(overrides)
        return EmergencyRequest(**fields)
    return _make


@pytest.fixture
def store():
    """Empty in-memory request store."""
    return InMemoryRequestStore()


@pytest.fixture
def auth_service():
    return AuthService(TEST_JWT_SECRET, "HS256", 900)


@pytest.fixture
def app(store, auth_service, clock):
    """Application wired to the in-memory store."""
    application = create_app(
        config={
            'ENVIRONMENT': 'test',
            'OTEL_ENABLED': False,
            'DOCS_ENABLED': False,
            'BASE_URL': 'http://localhost:5000',
            'REQUEST_STORE': 'memory',
        },
        request_store=store,
        auth_service=auth_service,
        clock=clock
    )
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def auth_headers(auth_service):
    """Build Authorization headers for a user id and role claim."""
    def _headers(user_id: str, role: str) -> Dict[str, str]:
        token = auth_service.generate_access_token(user_id, ActorRole.from_claim(role))["access_token"]
        return {"Authorization": f"Bearer {token}"}
    return _headers
