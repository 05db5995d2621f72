"""
Acceptance test fixtures.

Runs the full application over HTTP with an in-memory request store and
real signed access tokens.
"""

import os
import pytest

os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from relief_api.app import create_app
from relief_api.models.enums import ActorRole
from relief_api.services.auth import AuthService
from relief_api.services.request_store import InMemoryRequestStore

ACCEPTANCE_JWT_SECRET = "relief-api-acceptance-signing-secret-987654321"


@pytest.fixture
def request_store():
    return InMemoryRequestStore()


@pytest.fixture
def token_issuer():
    return AuthService(ACCEPTANCE_JWT_SECRET, "HS256", 900)


@pytest.fixture
def test_client(request_store, token_issuer):
    """HTTP client for an application wired to the in-memory store."""
    app = create_app(
        config={
            'ENVIRONMENT': 'test',
            'OTEL_ENABLED': False,
            'DOCS_ENABLED': False,
            'BASE_URL': 'http://localhost:5000',
            'REQUEST_STORE': 'memory',
        },
        request_store=request_store,
        auth_service=token_issuer
    )
    app.config['TESTING'] = True

    with app.test_client() as client:
        yield client


@pytest.fixture
def login(token_issuer):
    """Return Authorization headers for a user id and role."""
    def _login(user_id: str, role: str):
        token = token_issuer.generate_access_token(user_id, ActorRole.from_claim(role))
        return {"Authorization": f"Bearer {token['access_token']}"}
    return _login
