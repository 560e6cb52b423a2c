"""
Tutor error taxonomy.

- InvalidInputError: bad chat input, surfaced to callers as HTTP 400
- CollaboratorUnavailableError: completion service failed, recovered by catalog fallback
- InternalFaultError: persistence or pipeline failure, recovered at the orchestrator boundary
"""

from typing import Any, Dict, Optional


class TutorError(Exception):
    """Base class for tutor errors."""

    error_code = "tutor_error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """HTTP error body. Code and details are for logs only."""
        return {"error": self.message}


class InvalidInputError(TutorError):
    error_code = "invalid_input"


class CollaboratorUnavailableError(TutorError):
    error_code = "collaborator_unavailable"


class InternalFaultError(TutorError):
    error_code = "internal_fault"
