"""Shared request utilities for API handlers."""

import base64
import binascii
import logging
from typing import Optional

from .errors import UnauthorizedError, ValidationError
from .types import AuthenticatedUser

logger = logging.getLogger(__name__)


def get_header(event: dict, name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_origin(event: dict) -> Optional[str]:
    """Extract Origin header from request."""
    return get_header(event, "origin")


def get_authenticated_user(event: dict) -> AuthenticatedUser:
    """
    Identity from the Cognito user pool authorizer.

    API Gateway only populates the claims after validating the token, so they
    are trusted as-is.

    Raises:
        UnauthorizedError: no authorizer claims or no subject
    """
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    claims = authorizer.get("claims") or {}
    user_id = claims.get("sub")
    if not user_id:
        logger.info("Unauthorized request - missing user claims")
        raise UnauthorizedError()
    return {"user_id": user_id, "email": claims.get("email")}


def get_raw_body(event: dict) -> str:
    """
    Request body exactly as received, base64-decoded if API Gateway encoded it.

    Raises:
        ValidationError: body flagged as base64 but not decodable
    """
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValidationError("Request body is not valid base64") from e
    return body
