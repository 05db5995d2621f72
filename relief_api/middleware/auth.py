# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and actor context extraction.

This module provides Flask middleware for validating JWT tokens and building
the (user id, role) actor context every request operation runs under.
"""

from functools import wraps
from flask import request, jsonify, g
from typing import Optional, Dict, Any, Callable
from pydantic import ValidationError
from opentelemetry import trace
import logging

from ..models.entities import ActorContext
from ..models.enums import ActorRole
from ..services.auth import AuthService, TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation, and actor context building for
    protected endpoints.
    """

    def __init__(self, auth_service: AuthService, problem_base_url: str = "https://api.relief.example.org/problems"):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
            problem_base_url: Prefix for problem type URIs
        """
        self.auth_service = auth_service
        self.problem_base_url = problem_base_url.rstrip('/')

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()

        if not auth_header:
            return None

        # Handle "Bearer <token>" format
        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        # Handle direct token (less common)
        return auth_header

    def build_actor_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> ActorContext:
        """
        Build actor context from validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent, etc.)

        Returns:
            ActorContext for request processing

        Raises:
            ValueError: If the role claim is missing or names no known role
        """
        return ActorContext(
            user_id=str(token_payload["sub"]),
            role=ActorRole.from_claim(token_payload.get("role")),
            email=token_payload.get("email"),
            name=token_payload.get("name"),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent"),
            session_id=request_info.get("session_id")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for actor context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "session_id": request.headers.get('X-Session-ID'),
            "request_id": request.headers.get('X-Request-ID')
        }

    def unauthorized(self, problem: str, title: str, detail: str):
        """Build a 401 problem response."""
        return jsonify({
            "type": f"{self.problem_base_url}/{problem}",
            "title": title,
            "status": 401,
            "detail": detail,
            "instance": request.path
        }), 401


def require_auth(auth_middleware: AuthMiddleware) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    The route receives the ActorContext as its first positional argument.

    Args:
        auth_middleware: Configured AuthMiddleware instance

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            with tracer.start_as_current_span("auth.middleware.validate_request") as span:
                span.set_attribute("auth.operation", "validate_request")

                token = auth_middleware.extract_token_from_request()
                if not token:
                    span.set_attribute("auth.result", "missing_token")
                    logger.warning("Authentication failed: missing token")
                    return auth_middleware.unauthorized(
                        "authentication-required", "Authentication Required", "Missing authorization token"
                    )

                try:
                    token_payload = auth_middleware.auth_service.validate_token(token, "access")
                except TokenValidationError as e:
                    span.set_attribute("auth.result", "invalid_token")
                    logger.warning(f"Authentication failed: {str(e)}")
                    return auth_middleware.unauthorized("invalid-token", "Invalid Token", str(e))

                try:
                    actor = auth_middleware.build_actor_context(token_payload, auth_middleware.get_request_info())
                except (ValueError, ValidationError) as e:
                    span.set_attribute("auth.result", "invalid_identity")
                    logger.warning(
                        "Authentication failed: token identity rejected",
                        extra={"extra_fields": {"role_claim": str(token_payload.get("role")), "error": str(e)}}
                    )
                    return auth_middleware.unauthorized(
                        "invalid-token", "Invalid Token", "Token does not carry a known user id and role"
                    )

                g.actor = actor

                span.set_attributes({
                    "auth.result": "success",
                    "user.id": actor.user_id,
                    "user.role": actor.role.value
                })

                logger.debug(
                    "Authentication successful",
                    extra={"extra_fields": {
                        "user_id": actor.user_id,
                        "role": actor.role.value,
                        "ip_address": actor.ip_address
                    }}
                )

                return f(actor, *args, **kwargs)

        return decorated_function
    return decorator
