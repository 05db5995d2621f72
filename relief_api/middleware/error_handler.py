# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from ..services.hal import HalFormatter
from ..services.request_store import RequestStoreError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

CLIENT_ERRORS = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    403: ("insufficient-permissions", "Insufficient Permissions"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    415: ("unsupported-media-type", "Unsupported Media Type"),
    422: ("validation-error", "Validation Error"),
}

SERVER_ERRORS = {
    500: ("internal-server-error", "Internal Server Error"),
    503: ("service-unavailable", "Service Unavailable"),
}


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, base_url: str):
        self.app = app
        self.hal_formatter = HalFormatter(base_url)
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""
        for code, (error_type, title) in CLIENT_ERRORS.items():
            self.app.register_error_handler(code, self._client_handler(error_type, title))

        for code, (error_type, title) in SERVER_ERRORS.items():
            self.app.register_error_handler(code, self._server_handler(error_type, title))

        @self.app.errorhandler(RequestStoreError)
        def handle_store_error(error):
            return self.handle_store_error(error)

        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            if isinstance(error, HTTPException):
                return self.handle_client_error(error, "http-error", error.name)
            return self.handle_unexpected_error(error)

    def _client_handler(self, error_type: str, title: str):
        def handler(error):
            return self.handle_client_error(error, error_type, title)
        return handler

    def _server_handler(self, error_type: str, title: str):
        def handler(error):
            return self.handle_server_error(error, error_type, title)
        return handler

    def _is_production(self) -> bool:
        return self.app.config.get('ENVIRONMENT') == 'production'

    def handle_client_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """
        Handle client errors (4xx status codes).

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.client_error") as span:
            status = error.code or 400
            span.set_attributes({
                "error.type": error_type,
                "error.status": status,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.warning(
                f"Client error: {title}",
                extra={"extra_fields": {
                    "error_type": error_type,
                    "status_code": status,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                }}
            )

            error_response = self.hal_formatter.builder.build_error_response(
                error_type,
                title,
                status,
                detail,
                request.path
            )
            return error_response, status

    def handle_server_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """
        Handle server errors (5xx status codes).

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.server_error") as span:
            status = getattr(error, "code", None) or 500
            span.set_attributes({
                "error.type": error_type,
                "error.status": status,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(getattr(error, "description", "") or title)

            logger.error(
                f"Server error: {title}",
                extra={"extra_fields": {
                    "error_type": error_type,
                    "status_code": status,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                }},
                exc_info=True
            )

            # Don't expose internal error details in production
            if self._is_production():
                detail = "An internal server error occurred"

            error_response = self.hal_formatter.builder.build_error_response(
                error_type,
                title,
                status,
                detail,
                request.path
            )
            return error_response, status

    def handle_store_error(self, error: RequestStoreError) -> Tuple[Dict[str, Any], int]:
        """Report a request store failure as 503."""
        with tracer.start_as_current_span("error_handler.store_error") as span:
            span.record_exception(error)
            span.set_attributes({
                "error.type": "service-unavailable",
                "error.class": error.__class__.__name__,
                "http.path": request.path
            })

            logger.error(
                f"Request store failure: {error}",
                extra={"extra_fields": {"path": request.path, "method": request.method}},
                exc_info=True
            )

            detail = "The request store is unavailable"
            if not self._is_production():
                detail = f"{detail}: {error}"

            error_response = self.hal_formatter.builder.build_error_response(
                "service-unavailable",
                "Service Unavailable",
                503,
                detail,
                request.path
            )
            return error_response, 503

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={"extra_fields": {
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                }},
                exc_info=True
            )

            # Don't expose internal error details
            detail = "An unexpected error occurred"
            if not self._is_production():
                detail = f"{error.__class__.__name__}: {str(error)}"

            error_response = self.hal_formatter.format_server_error(detail, request.path)
            return error_response, 500
