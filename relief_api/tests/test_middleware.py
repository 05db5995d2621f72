# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware functionality.
"""

import jwt
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock
from flask import Flask, g, abort
from pydantic import BaseModel, Field

from relief_api.middleware.auth import AuthMiddleware, require_auth
from relief_api.middleware.cors import CORSMiddleware, configure_cors
from relief_api.middleware.error_handler import ErrorHandlerMiddleware
from relief_api.middleware.validation import ValidationMiddleware
from relief_api.models.enums import ActorRole
from relief_api.services.auth import AuthService
from relief_api.services.request_store import RequestStoreError

from .conftest import TEST_JWT_SECRET


class SamplePayload(BaseModel):
    name: str = Field(..., min_length=1)
    count: int = Field(default=1, ge=1, le=5)


class TestValidationMiddleware:
    """Test validation middleware functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.app = Flask(__name__)
        self.validation_middleware = ValidationMiddleware("https://api.example.com")

    def test_format_validation_errors(self):
        """Test formatting Pydantic validation errors."""
        validation_error = Mock()
        validation_error.errors.return_value = [
            {"loc": ("name",), "msg": "Field required", "type": "missing", "input": None},
            {"loc": ("count",), "msg": "Input should be less than or equal to 5", "type": "less_than_equal",
             "input": 10},
        ]

        result = self.validation_middleware.format_validation_errors(validation_error)

        assert len(result) == 2
        assert result[0]["field"] == "name"
        assert result[0]["message"] == "Field required"
        assert result[1]["input"] == 10

    def test_validate_json_body_success(self):
        """Validated model is appended after outer positional arguments."""
        with self.app.test_request_context('/test', method='POST', json={"name": "kit", "count": 2}):
            @self.validation_middleware.validate_json_body(SamplePayload)
            def test_route(actor, payload):
                return actor, payload

            actor, payload = test_route("actor")

        assert actor == "actor"
        assert payload.name == "kit"
        assert payload.count == 2

    def test_validate_json_body_not_an_object(self):
        with self.app.test_request_context('/test', method='POST', json=["kit"]):
            @self.validation_middleware.validate_json_body(SamplePayload)
            def test_route(payload):
                return payload

            response, status = test_route()

        assert status == 400
        assert response.get_json()["detail"] == "Request body must be a JSON object"

    def test_validate_json_body_validation_error(self):
        with self.app.test_request_context('/test', method='POST', json={"name": "", "count": 9}):
            @self.validation_middleware.validate_json_body(SamplePayload)
            def test_route(payload):
                return payload

            response, status = test_route()

        body = response.get_json()
        assert status == 400
        assert body["type"].endswith("/problems/validation-error")
        assert body["detail"] == "Request validation failed for SamplePayload"
        assert {e["field"] for e in body["errors"]} == {"name", "count"}

    def test_validate_query_params(self):
        with self.app.test_request_context('/test?name=kit&count=3'):
            @self.validation_middleware.validate_query_params(SamplePayload)
            def test_route(params):
                return params

            params = test_route()

        assert params.count == 3

    def test_validate_query_params_error(self):
        with self.app.test_request_context('/test?count=zero'):
            @self.validation_middleware.validate_query_params(SamplePayload)
            def test_route(params):
                return params

            response, status = test_route()

        assert status == 400
        assert response.get_json()["detail"] == "Query parameter validation failed for SamplePayload"


class TestAuthMiddleware:
    """Test JWT authentication decorator."""

    def setup_method(self):
        self.auth_service = AuthService(TEST_JWT_SECRET, "HS256", 900)
        self.app = Flask(__name__)
        auth_middleware = AuthMiddleware(self.auth_service)

        @self.app.route('/whoami')
        @require_auth(auth_middleware)
        def whoami(actor):
            return {"user_id": actor.user_id, "role": actor.role.value, "same": g.actor is actor}

        self.client = self.app.test_client()

    def _bearer(self, token):
        return {"Authorization": f"Bearer {token}"}

    def test_valid_token(self):
        token = self.auth_service.generate_access_token("responder-7", ActorRole.RESPONDER)["access_token"]

        response = self.client.get('/whoami', headers=self._bearer(token))

        assert response.status_code == 200
        assert response.get_json() == {"user_id": "responder-7", "role": "responder", "same": True}

    def test_legacy_role_claim(self):
        token = jwt.encode(
            {"sub": "v-1", "role": "volunteer", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            TEST_JWT_SECRET, algorithm="HS256"
        )

        response = self.client.get('/whoami', headers=self._bearer(token))

        assert response.get_json()["role"] == "responder"

    def test_missing_token(self):
        response = self.client.get('/whoami')

        assert response.status_code == 401
        assert response.get_json()["type"].endswith("/authentication-required")

    def test_wrong_signature(self):
        token = AuthService("another-secret-that-is-long-enough-0000", "HS256", 900).generate_access_token(
            "requester-1", ActorRole.REQUESTER
        )["access_token"]

        response = self.client.get('/whoami', headers=self._bearer(token))

        assert response.status_code == 401
        assert response.get_json()["type"].endswith("/invalid-token")

    def test_unknown_role(self):
        token = jwt.encode(
            {"sub": "x-1", "role": "pilot", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            TEST_JWT_SECRET, algorithm="HS256"
        )

        response = self.client.get('/whoami', headers=self._bearer(token))

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Token does not carry a known user id and role"


class TestErrorHandlerMiddleware:
    """Test centralized error handling."""

    def setup_method(self):
        self.app = Flask(__name__)
        self.app.config['ENVIRONMENT'] = 'test'
        ErrorHandlerMiddleware(self.app, "https://api.example.com")

        @self.app.route('/missing')
        def missing():
            abort(404)

        @self.app.route('/store')
        def store_down():
            raise RequestStoreError("connection refused")

        @self.app.route('/boom')
        def boom():
            raise RuntimeError("kaboom")

        self.client = self.app.test_client()

    def test_not_found(self):
        response = self.client.get('/missing')

        assert response.status_code == 404
        assert response.get_json()["type"].endswith("/problems/resource-not-found")

    def test_unknown_route(self):
        assert self.client.get('/nowhere').status_code == 404

    def test_store_error_is_service_unavailable(self):
        response = self.client.get('/store')

        body = response.get_json()
        assert response.status_code == 503
        assert body["type"].endswith("/problems/service-unavailable")
        assert "connection refused" in body["detail"]

    def test_unexpected_error(self):
        response = self.client.get('/boom')

        assert response.status_code == 500
        assert "kaboom" in response.get_json()["detail"]

    def test_production_hides_details(self):
        self.app.config['ENVIRONMENT'] = 'production'

        store_body = self.client.get('/store').get_json()
        boom_body = self.client.get('/boom').get_json()

        assert "connection refused" not in store_body["detail"]
        assert "kaboom" not in boom_body["detail"]


class TestCORSMiddleware:
    """Test CORS middleware functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.app = Flask(__name__)

        @self.app.route('/ping')
        def ping():
            return {"ok": True}

    def test_cors_configuration(self):
        cors_middleware = configure_cors(
            self.app,
            allowed_origins=["http://localhost:3000"],
            allow_credentials=True
        )

        assert isinstance(cors_middleware, CORSMiddleware)
        assert "http://localhost:3000" in cors_middleware.allowed_origins
        assert cors_middleware.allow_credentials is True

    def test_is_origin_allowed(self):
        cors_middleware = CORSMiddleware(
            self.app,
            allowed_origins=["http://localhost:3000", "https://relief-*"]
        )

        assert cors_middleware.is_origin_allowed("http://localhost:3000") is True
        assert cors_middleware.is_origin_allowed("https://relief-preview.example.org") is True
        assert cors_middleware.is_origin_allowed("http://malicious.com") is False
        assert cors_middleware.is_origin_allowed(None) is False

    def test_default_origins_from_config(self):
        self.app.config.update(ENVIRONMENT='development', FRONTEND_URL='https://relief.example.org',
                               CORS_ALLOWED_ORIGINS='https://a.example.org, https://b.example.org')

        cors_middleware = CORSMiddleware(self.app)

        assert 'http://localhost:5173' in cors_middleware.allowed_origins
        assert 'https://relief.example.org' in cors_middleware.allowed_origins
        assert 'https://b.example.org' in cors_middleware.allowed_origins

    def test_preflight_request_handling(self):
        CORSMiddleware(self.app, allowed_origins=["http://localhost:3000"])
        client = self.app.test_client()

        allowed = client.options('/ping', headers={'Origin': 'http://localhost:3000'})
        rejected = client.options('/ping', headers={'Origin': 'http://evil.example.com'})

        assert allowed.status_code == 200
        assert allowed.headers['Access-Control-Allow-Origin'] == "http://localhost:3000"
        assert 'PATCH' in allowed.headers['Access-Control-Allow-Methods']
        assert rejected.status_code == 403

    def test_simple_request_gets_headers(self):
        CORSMiddleware(self.app, allowed_origins=["http://localhost:3000"])
        client = self.app.test_client()

        response = client.get('/ping', headers={'Origin': 'http://localhost:3000'})

        assert response.headers['Access-Control-Allow-Credentials'] == 'true'
        assert response.headers['Vary'] == 'Origin'
