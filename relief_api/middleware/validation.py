# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation middleware using Pydantic models.
Provides request body and query string validation with problem-document errors.
"""

from functools import wraps
from flask import request, jsonify, current_app
from typing import Type, Callable, Dict, Any, List
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from ..domain.requests import format_validation_errors
from ..services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class ValidationMiddleware:
    """Middleware for request validation using Pydantic models."""

    def __init__(self, base_url: str):
        self.hal_formatter = HalFormatter(base_url)

    def format_validation_errors(self, validation_error: ValidationError) -> List[Dict[str, Any]]:
        """Format Pydantic validation errors for API response."""
        return format_validation_errors(validation_error)

    def validate_json_body(self, model_class: Type[BaseModel]) -> Callable:
        """
        Decorator to validate JSON request body against Pydantic model.

        The validated model is passed to the route after any positional
        arguments supplied by outer decorators.

        Args:
            model_class: Pydantic model class for validation

        Returns:
            Decorator function
        """
        def decorator(f: Callable) -> Callable:
            @wraps(f)
            def decorated_function(*args, **kwargs):
                with tracer.start_as_current_span("validation.validate_json_body") as span:
                    span.set_attributes({
                        "validation.model": model_class.__name__,
                        "http.method": request.method,
                        "http.path": request.path
                    })

                    json_data = request.get_json(silent=True)
                    if not isinstance(json_data, dict):
                        span.set_attribute("validation.result", "invalid_json")
                        error_response = self.hal_formatter.format_validation_error(
                            "Request body must be a JSON object",
                            request.path,
                            [{
                                "field": "body",
                                "message": "Expected a JSON object",
                                "type": "json_error",
                                "input": None
                            }]
                        )
                        return jsonify(error_response), 400

                    try:
                        validated_data = model_class.model_validate(json_data)
                    except ValidationError as e:
                        span.set_attribute("validation.result", "validation_error")
                        validation_errors = self.format_validation_errors(e)

                        logger.warning(
                            "Request validation failed",
                            extra={"extra_fields": {
                                "model": model_class.__name__,
                                "path": request.path,
                                "method": request.method,
                                "error_count": len(validation_errors)
                            }}
                        )

                        error_response = self.hal_formatter.format_validation_error(
                            f"Request validation failed for {model_class.__name__}",
                            request.path,
                            validation_errors
                        )
                        return jsonify(error_response), 400

                    span.set_attribute("validation.result", "success")
                    return f(*args, validated_data, **kwargs)

            return decorated_function
        return decorator

    def validate_query_params(self, model_class: Type[BaseModel]) -> Callable:
        """
        Decorator to validate query parameters against Pydantic model.

        Args:
            model_class: Pydantic model class for validation

        Returns:
            Decorator function
        """
        def decorator(f: Callable) -> Callable:
            @wraps(f)
            def decorated_function(*args, **kwargs):
                with tracer.start_as_current_span("validation.validate_query_params") as span:
                    span.set_attributes({
                        "validation.model": model_class.__name__,
                        "http.method": request.method,
                        "http.path": request.path
                    })

                    query_data = request.args.to_dict()

                    try:
                        validated_params = model_class.model_validate(query_data)
                    except ValidationError as e:
                        span.set_attribute("validation.result", "validation_error")
                        validation_errors = self.format_validation_errors(e)

                        logger.warning(
                            "Query parameter validation failed",
                            extra={"extra_fields": {
                                "model": model_class.__name__,
                                "path": request.path,
                                "params": query_data
                            }}
                        )

                        error_response = self.hal_formatter.format_validation_error(
                            f"Query parameter validation failed for {model_class.__name__}",
                            request.path,
                            validation_errors
                        )
                        return jsonify(error_response), 400

                    span.set_attribute("validation.result", "success")
                    return f(*args, validated_params, **kwargs)

            return decorated_function
        return decorator


def validate_json(model_class: Type[BaseModel]) -> Callable:
    """
    Validate the JSON body with the application's ValidationMiddleware.

    Args:
        model_class: Pydantic model class

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            validation_middleware = current_app.validation_middleware
            return validation_middleware.validate_json_body(model_class)(f)(*args, **kwargs)
        return decorated_function
    return decorator


def validate_query(model_class: Type[BaseModel]) -> Callable:
    """
    Validate query parameters with the application's ValidationMiddleware.

    Args:
        model_class: Pydantic model class

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            validation_middleware = current_app.validation_middleware
            return validation_middleware.validate_query_params(model_class)(f)(*args, **kwargs)
        return decorated_function
    return decorator
