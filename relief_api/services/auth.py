# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token issuing and validation.

Tokens carry the caller's user id in ``sub`` and their role in ``role``.
The service verifies signatures and expiry; it does not know about users or
passwords.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from opentelemetry import trace
import logging

from ..models.enums import ActorRole

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "relief-api-development-signing-secret-change-me"


class AuthenticationError(Exception):
    """Raised when token issuing fails."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """
    JWT authentication service with HMAC signing.

    Provides token issuing for development tooling and token validation for
    every API call.
    """

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None,
                 access_token_expires: Optional[int] = None):
        """
        Initialize the authentication service.

        Args:
            secret: Shared signing secret
            algorithm: JWT signing algorithm (HS256 by default)
            access_token_expires: Access token lifetime in seconds
        """
        self.secret = secret or self._get_secret()
        self.algorithm = algorithm or os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expires = access_token_expires or int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", "900"))

    def _get_secret(self) -> str:
        """Get signing secret from environment or fall back to the development secret."""
        secret = os.getenv("JWT_SECRET")
        if secret:
            return secret

        logger.warning("No JWT_SECRET found, using development secret")
        return DEV_JWT_SECRET

    def generate_access_token(self, user_id: str, role: ActorRole, email: Optional[str] = None,
                              name: Optional[str] = None) -> Dict[str, Any]:
        """
        Issue an access token for a user.

        Args:
            user_id: Subject of the token
            role: Actor role carried in the ``role`` claim
            email: Optional email claim
            name: Optional display name claim

        Returns:
            Dictionary containing access_token and metadata
        """
        with tracer.start_as_current_span("auth.generate_access_token") as span:
            role = ActorRole(role)
            span.set_attributes({
                "auth.operation": "generate_access_token",
                "user.id": user_id,
                "user.role": role.value
            })

            now = datetime.now(timezone.utc)
            expires_at = now + timedelta(seconds=self.access_token_expires)

            payload = {
                "sub": user_id,
                "role": role.value,
                "iat": now,
                "exp": expires_at,
                "type": "access"
            }
            if email:
                payload["email"] = email
            if name:
                payload["name"] = name

            try:
                access_token = jwt.encode(payload, self.secret, algorithm=self.algorithm)
            except jwt.PyJWTError as e:
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate token: {str(e)}")

            logger.info(
                "JWT access token generated",
                extra={"extra_fields": {
                    "user_id": user_id,
                    "role": role.value,
                    "expires_at": expires_at.isoformat()
                }}
            )

            return {
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expires,
                "expires_at": expires_at.isoformat()
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.secret,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["sub", "exp"]}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            # Tokens without a type claim are treated as access tokens
            if payload.get("type", "access") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": str(payload.get("sub"))
            })
            logger.debug(
                "Token validated successfully",
                extra={"extra_fields": {"user_id": payload.get("sub"), "token_type": token_type}}
            )
            return payload
