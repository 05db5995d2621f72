"""
Relief Request API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the request lifecycle services for the
emergency assistance coordination platform.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.cors import configure_cors
from .middleware.error_handler import ErrorHandlerMiddleware
from .middleware.validation import ValidationMiddleware
from .middleware.auth import AuthMiddleware
from .models.base import Clock, utc_now
from .models.responses import HealthCheckResponse
from .services.hal import create_hal_formatter
from .services.mongodb import MongoDBService
from .services.request_store import RequestStore, InMemoryRequestStore, MongoRequestStore
from .services.workflow import RequestWorkflowService
from .services.auth import AuthService

SERVICE_NAME = "relief-request-api"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def load_config() -> Dict[str, Any]:
    """Read application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')

    return {
        # Environment configuration
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': _env_flag('DOCS_ENABLED', 'true'),
        'SERVICE_VERSION': os.getenv('SERVICE_VERSION', '1.0.0'),

        # Security configuration
        'JWT_SECRET': os.getenv('JWT_SECRET'),
        'JWT_ALGORITHM': os.getenv('JWT_ALGORITHM', 'HS256'),
        'JWT_ACCESS_TOKEN_EXPIRES': int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', '900')),  # 15 minutes

        # Database configuration
        'REQUEST_STORE': os.getenv('REQUEST_STORE', 'mongodb'),
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/relief_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'relief_dev'),

        # Feature flags
        'COMPLETED_BY_OVERRIDE_ENABLED': _env_flag('COMPLETED_BY_OVERRIDE_ENABLED', 'false'),
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', 'true'),
        'OTEL_EXPORTER_OTLP_ENDPOINT': os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT'),

        # CORS configuration
        'CORS_ALLOWED_ORIGINS': os.getenv('CORS_ALLOWED_ORIGINS'),
        'CORS_ALLOW_ALL_ORIGINS': _env_flag('CORS_ALLOW_ALL_ORIGINS', 'false'),
        'FRONTEND_URL': os.getenv('FRONTEND_URL'),

        # API configuration
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
    }


def build_request_store(config: Dict[str, Any]) -> RequestStore:
    """Create the configured request store."""
    if config['REQUEST_STORE'] == 'memory':
        return InMemoryRequestStore()

    if config['REQUEST_STORE'] != 'mongodb':
        raise ValueError(f"Unknown REQUEST_STORE: {config['REQUEST_STORE']}")

    mongodb_service = MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE'])
    return MongoRequestStore(mongodb_service)


def create_app(
    config: Optional[Dict[str, Any]] = None,
    request_store: Optional[RequestStore] = None,
    auth_service: Optional[AuthService] = None,
    clock: Clock = utc_now
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Overrides applied on top of the environment configuration
        request_store: Store to use instead of the configured one
        auth_service: Identity provider to use instead of one built from config
        clock: Source of "now" for request timestamps

    Returns:
        Configured OpenAPI (Flask) application
    """
    settings = load_config()
    settings.update(config or {})

    # Initialize observability first
    setup_observability(settings)

    info = Info(
        title="Relief Request API",
        version=settings['SERVICE_VERSION'],
        description="Emergency assistance request lifecycle API with HATEOAS Level-3 support"
    )

    # Route tags are declared per blueprint and per route; OpenAPI() takes none
    app = OpenAPI(__name__, info=info, doc_ui=settings['DOCS_ENABLED'])
    app.config.update(settings)

    add_observability_middleware(app, instrument=settings['OTEL_ENABLED'])

    # Initialize services
    store = request_store or build_request_store(settings)
    auth = auth_service or AuthService(
        settings['JWT_SECRET'],
        settings['JWT_ALGORITHM'],
        settings['JWT_ACCESS_TOKEN_EXPIRES']
    )
    workflow_service = RequestWorkflowService(store, clock)

    # Initialize middleware
    hal_formatter = create_hal_formatter(settings['BASE_URL'])
    validation_middleware = ValidationMiddleware(settings['BASE_URL'])
    auth_middleware = AuthMiddleware(auth)
    ErrorHandlerMiddleware(app, settings['BASE_URL'])
    configure_cors(app, allow_credentials=True)

    # Make services available to routes
    app.request_store = store
    app.auth_service = auth
    app.workflow_service = workflow_service
    app.hal_formatter = hal_formatter
    app.validation_middleware = validation_middleware
    app.auth_middleware = auth_middleware

    # Register routes
    from .routes.requests import requests_bp
    app.register_api(requests_bp)

    health_tag = Tag(name="Health", description="System health and status")

    @app.get('/api/healthz', tags=[health_tag], responses={200: HealthCheckResponse, 503: HealthCheckResponse})
    def health_check():
        """Health check with request store status"""
        store_health = app.request_store.health_check()
        healthy = store_health.get('status') == 'healthy'

        health_data = {
            "status": "healthy" if healthy else "unhealthy",
            "service": SERVICE_NAME,
            "version": app.config['SERVICE_VERSION'],
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "dependencies": {"request_store": store_health},
            "_links": {"self": {"href": f"{app.config['BASE_URL']}/api/healthz"}}
        }
        return jsonify(health_data), 200 if healthy else 503

    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
