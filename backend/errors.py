"""
Domain exceptions raised by the service layer.

Each exception carries a stable `code` and the HTTP `status_code` the API
layer answers with. `main.py` registers a single handler for
`PactTrackException` that renders `to_dict()`.

Kinds:
- `NotFoundException` — pact/activity/user/log missing, or activity not in pact
- `ValidationException` — missing identifiers, bad mime type, file too large
- `ConflictException` — duplicate day log, user already a participant
- `ForbiddenException` — non-participant acting on a pact-scoped resource
- `StorageException` — Google Drive call failed
"""

import structlog

logger = structlog.get_logger("errors")


class PactTrackException(Exception):
    """Base exception for the backend."""

    status_code = 500

    def __init__(self, message: str, code: str = "PACTTRACK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
        }


class NotFoundException(PactTrackException):
    status_code = 404

    def __init__(self, message: str):
        super().__init__(message, code="NOT_FOUND")


class ValidationException(PactTrackException):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class ConflictException(PactTrackException):
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class ForbiddenException(PactTrackException):
    status_code = 403

    def __init__(self, message: str):
        super().__init__(message, code="FORBIDDEN")


class StorageException(PactTrackException):
    """Remote storage provider failure. Message includes the provider detail."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")
        logger.error("storage_error", message=message)
