# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
CORS (Cross-Origin Resource Sharing) middleware for frontend integration.
Configures CORS headers for the requester, responder and coordinator web clients.
"""

from flask import Flask, request, make_response
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

DEVELOPMENT_ORIGINS = [
    'http://localhost:3000',
    'http://localhost:5173',
    'http://127.0.0.1:3000',
    'http://127.0.0.1:5173'
]


class CORSMiddleware:
    """CORS middleware for Flask applications."""

    def __init__(
        self,
        app: Flask,
        allowed_origins: Optional[List[str]] = None,
        allow_all_origins: Optional[bool] = None,
        allow_credentials: bool = True,
        max_age: int = 86400  # 24 hours
    ):
        """
        Initialize CORS middleware.

        Args:
            app: Flask application
            allowed_origins: List of allowed origins; derived from app config when omitted
            allow_all_origins: Accept any origin; read from CORS_ALLOW_ALL_ORIGINS when omitted
            allow_credentials: Whether to allow credentials
            max_age: Preflight cache duration in seconds
        """
        self.app = app
        self.allowed_origins = allowed_origins if allowed_origins is not None else self._get_default_origins()
        self.allow_all_origins = (
            allow_all_origins if allow_all_origins is not None
            else bool(app.config.get('CORS_ALLOW_ALL_ORIGINS', False))
        )
        self.allowed_methods = ['GET', 'POST', 'DELETE', 'PATCH', 'OPTIONS', 'HEAD']
        self.allowed_headers = [
            'Accept',
            'Authorization',
            'Content-Type',
            'X-Requested-With',
            'X-Session-ID',
            'X-Request-ID',
            'X-Trace-ID'
        ]
        self.expose_headers = ['Content-Length', 'Content-Type', 'X-Request-ID', 'X-Trace-ID']
        self.allow_credentials = allow_credentials
        self.max_age = max_age

        self.register_cors_handlers()

    def _get_default_origins(self) -> List[str]:
        """Get default allowed origins from application config."""
        config = self.app.config
        origins = []

        if config.get('ENVIRONMENT') == 'development':
            origins.extend(DEVELOPMENT_ORIGINS)

        if config.get('FRONTEND_URL'):
            origins.append(config['FRONTEND_URL'])

        custom_origins = config.get('CORS_ALLOWED_ORIGINS')
        if custom_origins:
            origins.extend(o.strip() for o in custom_origins.split(',') if o.strip())

        return origins

    def is_origin_allowed(self, origin: Optional[str]) -> bool:
        """
        Check if origin is allowed.

        Args:
            origin: Request origin

        Returns:
            True if origin is allowed
        """
        if not origin:
            return False

        if self.allow_all_origins:
            return True

        for allowed_origin in self.allowed_origins:
            if allowed_origin in ('*', origin):
                return True
            if allowed_origin.endswith('*') and origin.startswith(allowed_origin[:-1]):
                return True

        return False

    def add_cors_headers(self, response, origin: str):
        """Add CORS headers to response."""
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Vary'] = 'Origin'

        if self.allow_credentials:
            response.headers['Access-Control-Allow-Credentials'] = 'true'

        response.headers['Access-Control-Allow-Methods'] = ', '.join(self.allowed_methods)
        response.headers['Access-Control-Allow-Headers'] = ', '.join(self.allowed_headers)
        response.headers['Access-Control-Expose-Headers'] = ', '.join(self.expose_headers)
        response.headers['Access-Control-Max-Age'] = str(self.max_age)

        return response

    def register_cors_handlers(self):
        """Register CORS handlers with Flask application."""

        @self.app.before_request
        def handle_preflight():
            """Handle CORS preflight requests."""
            if request.method == 'OPTIONS':
                origin = request.headers.get('Origin')

                if not self.is_origin_allowed(origin):
                    logger.warning(f"CORS preflight rejected for origin: {origin}")
                    return make_response('', 403)

                return self.add_cors_headers(make_response('', 200), origin)

        @self.app.after_request
        def add_cors_headers_to_response(response):
            """Add CORS headers to allowed cross-origin responses."""
            origin = request.headers.get('Origin')

            if self.is_origin_allowed(origin):
                self.add_cors_headers(response, origin)
            elif origin and request.method != 'OPTIONS':
                logger.warning(f"CORS rejected for origin: {origin}")

            return response


def configure_cors(app: Flask, **kwargs) -> CORSMiddleware:
    """
    Configure CORS for Flask application.

    Args:
        app: Flask application
        **kwargs: CORS configuration options

    Returns:
        Configured CORSMiddleware instance
    """
    return CORSMiddleware(app, **kwargs)
