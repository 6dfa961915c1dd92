"""Exceptions raised by the planning pipeline.

Each class carries the HTTP status and machine-readable ``error_code`` the API
layer reports, so callers outside HTTP (the CLI, tests) see the same taxonomy.
"""

from __future__ import annotations

from typing import Optional


class PlanError(Exception):
    """Base class for failures that stop a plan from being produced."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self) -> dict:
        payload = {"error": self.message, "error_code": self.error_code}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class InvalidRequestError(PlanError):
    """Request fields are missing, empty or of the wrong type."""

    status_code = 400
    error_code = "INVALID_INPUT"


class ServiceUnavailableError(PlanError):
    """A required collaborator is not configured."""

    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"


class ExtractionFailedError(PlanError):
    """The entity extractor failed, so no plan can be assembled."""

    status_code = 503
    error_code = "EXTRACTION_FAILED"


class ExtractionError(Exception):
    """Raised by an extractor when it cannot return well-formed entities."""


__all__ = [
    "ExtractionError",
    "ExtractionFailedError",
    "InvalidRequestError",
    "PlanError",
    "ServiceUnavailableError",
]
