"""
Custom exception classes and error handling.

API exceptions give consistent error responses across the routers.
Domain exceptions mark collaborator failures inside the adaptation engine;
state-machine misuse (missing plan, nothing pending) is reported as a
plain False by the services, never raised.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND"
        )


class ConflictError(APIException):
    """State conflict (e.g., nothing pending to confirm)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )


class ServiceUnavailableError(APIException):
    """An upstream collaborator (AI planner) failed."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="UPSTREAM_UNAVAILABLE"
        )


class PlanGenerationError(Exception):
    """The AI planner failed to produce sessions (call error or unparseable response)."""


class PlanRegenerationError(Exception):
    """Cycle-triggered regeneration could not obtain sessions from the planner."""
