"""
Structured exceptions and error responses for the scheduling engine.

Provides consistent error handling with:
- Custom exception classes raised synchronously by the core
- Structured error response format
- FastAPI exception handlers for the HTTP host adapter
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gantt_engine.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # Location of error (e.g., ["body", "parent"])
    msg: str
    type: str
    path: Optional[List[str]] = None  # Nodes of a detected cycle


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "cycle_detected")
    message: str  # Human-readable message
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class GanttException(Exception):
    """Base exception for all engine errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(GanttException):
    """Task or link not found."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class DuplicateIdError(GanttException):
    """A task with this ID already exists."""

    def __init__(self, task_id: Any):
        super().__init__(
            message=f"Task with ID {task_id} already exists",
            error_code="duplicate_id",
            status_code=status.HTTP_409_CONFLICT,
        )
        self.task_id = task_id


class SelfParentError(GanttException):
    """Task cannot be its own parent."""

    def __init__(self, task_id: Any):
        super().__init__(
            message="A task cannot be its own parent",
            error_code="self_parent",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body", "parent"],
                "msg": f"Task {task_id} names itself as parent",
                "type": "self_parent",
            }],
        )
        self.task_id = task_id


class SelfLinkError(GanttException):
    """Task cannot depend on itself."""

    def __init__(self, task_id: Any):
        super().__init__(
            message="A task cannot depend on itself",
            error_code="self_link",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
        self.task_id = task_id


class DuplicateLinkError(GanttException):
    """Link with the same source, target and type already exists."""

    def __init__(self, source: Any, target: Any, link_type: str):
        super().__init__(
            message="This link already exists",
            error_code="duplicate_link",
            status_code=status.HTTP_409_CONFLICT,
        )
        self.source = source
        self.target = target
        self.link_type = link_type


class CycleDetectedError(GanttException):
    """
    A mutation would create a cycle.

    ``kind`` is "tree" when the conflict comes from parent/child containment
    (re-parenting under a descendant, or a link crossing an ancestor line) and
    "graph" when it comes from link reachability.
    """

    def __init__(self, source: Any, target: Any, kind: str, path: Optional[List[Any]] = None):
        path = list(path or [])
        super().__init__(
            message=f"This change would create a cycle in the task {kind}",
            error_code="cycle_detected",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body"],
                "msg": f"{source} -> {target} would create a {kind} cycle",
                "type": f"{kind}_cycle",
                "path": [str(node) for node in path],
            }],
        )
        self.source = source
        self.target = target
        self.kind = kind
        self.path = path


class InvalidRangeError(GanttException):
    """Date range is empty or reversed."""

    def __init__(self, start: Any, end: Any):
        super().__init__(
            message=f"Invalid date range {start} .. {end}",
            error_code="invalid_range",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
        self.start = start
        self.end = end


class OutOfRangeOffsetError(GanttException):
    """Pixel offset outside the materialized buckets while strict bounds are on."""

    def __init__(self, offset: float, total_width: float):
        super().__init__(
            message=f"Offset {offset} is outside the timeline (0 .. {total_width})",
            error_code="out_of_range_offset",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
        self.offset = offset
        self.total_width = total_width


class ValidationError(GanttException):
    """Record or gesture validation error."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def gantt_exception_handler(request: Request, exc: GanttException) -> JSONResponse:
    """Handle GanttException and return structured response."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}")
    content = ErrorResponse(error=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=content.model_dump())


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(GanttException, gantt_exception_handler)
