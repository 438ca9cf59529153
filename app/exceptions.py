from datetime import datetime
from typing import List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from .models import ErrorResponse


class ApiError(Exception):
    """Base class for errors that map onto a structured HTTP error response"""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ResourceNotFoundError(ApiError):
    status_code = 404
    error = "Not Found"

    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found with id: {resource_id}")


class BusinessRuleError(ApiError):
    status_code = 400
    error = "Business Rule Violation"


class RateLimitExceeded(ApiError):
    """Raised when a client has no tokens left in its current window.

    Always recoverable: the client may retry once the window rolls over.
    No retry-after value is computed.
    """

    status_code = 429
    error = "Rate Limit Exceeded"

    def __init__(self, capacity: int, refill_interval: float):
        self.capacity = capacity
        self.refill_interval = refill_interval
        super().__init__(
            f"Rate limit of {capacity} requests per {refill_interval:g} seconds exceeded. "
            "Please try again later."
        )


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[List[str]] = None,
) -> JSONResponse:
    """Build the JSON error body shared by every error path"""
    body = ErrorResponse(
        status=status_code,
        error=error,
        message=message,
        details=details,
        timestamp=datetime.now().replace(microsecond=0),
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def api_error_response(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(request, exc.status_code, exc.error, exc.message)
