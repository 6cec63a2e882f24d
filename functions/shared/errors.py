"""
Classified errors for the Stripe sync handlers.

Every failure that reaches a handler boundary is one of these, so each maps to
a stable status code and machine-readable code.
"""

import json
from typing import Optional

from .response_utils import get_cors_headers


class APIError(Exception):
    """Base class for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_body(self) -> dict:
        """Error body in the {"error": {...}} envelope."""
        body = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            body["error"]["details"] = self.details
        return body

    def to_response(self, origin: Optional[str] = None) -> dict:
        """Convert to API Gateway response format."""
        headers = {"Content-Type": "application/json"}
        headers.update(get_cors_headers(origin))
        return {
            "statusCode": self.status_code,
            "headers": headers,
            "body": json.dumps(self.to_body()),
        }


class ValidationError(APIError):
    """Raised for malformed or missing required input."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="validation_error",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Raised when the request carries no authenticated identity."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code="unauthorized",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Raised when no matching customer record exists."""

    def __init__(self, message: str = "Customer not found"):
        super().__init__(
            code="not_found",
            message=message,
            status_code=404,
        )


class SignatureError(APIError):
    """Raised when a webhook signature is missing or does not verify."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(
            code="invalid_signature",
            message=message,
            status_code=400,
        )


class UpstreamError(APIError):
    """Raised when Stripe, Cognito or Lambda fails or returns an error."""

    def __init__(
        self,
        message: str = "Upstream service error",
        service: Optional[str] = None,
        status_code: int = 502,
    ):
        super().__init__(
            code="upstream_error",
            message=message,
            status_code=status_code,
        )
        self.service = service


class InternalError(APIError):
    """Raised for internal server errors."""

    def __init__(self, message: str = "An internal error occurred"):
        super().__init__(
            code="internal_error",
            message=message,
            status_code=500,
        )
