"""Error responses for the cacheaside HTTP API.

Every error body has the same Result/Message shape:

    {"messages": [{"code": "NotFound", "messageType": "Error", "text": "...", "timestamp": "..."}]}

Failures surfaced by the cache-aside core map to 5xx responses:
- StoreError, LockError -> 503 Service Unavailable
- SourceLookupError -> 502 Bad Gateway
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cacheaside.errors import CacheAsideError, LockError, SourceLookupError, StoreError

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """Error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        """Convert to Result format."""
        return Result(
            messages=[
                Message(
                    code=self.code,
                    messageType=self.message_type,
                    text=self.text,
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        )


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(
            status_code=404,
            code="NotFound",
            text=f"{resource_type} with identifier '{identifier}' not found",
        )


class ServiceUnavailableError(ApiError):
    """Cache store or lock unavailable (503)."""

    def __init__(self, text: str):
        super().__init__(
            status_code=503,
            code="ServiceUnavailable",
            text=text,
            message_type=MessageType.EXCEPTION,
        )


class BadGatewayError(ApiError):
    """Backing source failed (502)."""

    def __init__(self, text: str):
        super().__init__(
            status_code=502,
            code="BadGateway",
            text=text,
            message_type=MessageType.EXCEPTION,
        )


def error_for_failure(error: CacheAsideError) -> ApiError:
    """Translate a core failure into the API error returned to the client."""
    if isinstance(error, SourceLookupError):
        return BadGatewayError(str(error))
    if isinstance(error, (StoreError, LockError)):
        return ServiceUnavailableError(str(error))
    return ServiceUnavailableError("Cache layer failure")


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def cacheaside_exception_handler(request: Request, exc: CacheAsideError) -> JSONResponse:
    """Exception handler for core failures raised outside a LoadResult."""
    logger.warning("Request %s failed in cache layer: %s", request.url.path, exc)
    return await api_exception_handler(request, error_for_failure(exc))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=Result(
            messages=[
                Message(
                    code="InternalServerError",
                    messageType=MessageType.EXCEPTION,
                    text="An unexpected error occurred",
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        ).model_dump(by_alias=True),
    )
