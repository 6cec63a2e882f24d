# Shared utilities package
from .errors import (
    APIError,
    InternalError,
    NotFoundError,
    SignatureError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from .response_utils import error_response, success_response

__all__ = [
    "APIError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "SignatureError",
    "UpstreamError",
    "InternalError",
    "error_response",
    "success_response",
]
