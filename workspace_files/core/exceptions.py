"""
Workspace error hierarchy.

Every error carries a stable ``code`` so the HTTP layer and the client can
translate it to and from an ``ErrorResponse`` without losing its kind.
"""

from typing import Any
from uuid import UUID


class WorkspaceError(Exception):
    """Base exception for workspace file and attachment errors."""

    code = "workspace_error"
    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FileReadError(WorkspaceError):
    """Raised when a local file cannot be read or is not a regular file."""

    code = "io_failure"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}", {"path": path})


class TTLOutOfRangeError(WorkspaceError):
    """Raised when a TTL in minutes falls outside the accepted bounds."""

    code = "out_of_range"
    status_code = 422

    def __init__(self, minutes: int, minimum: int, maximum: int) -> None:
        self.minutes = minutes
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Expiry of {minutes} minutes is outside [{minimum}, {maximum}]",
            {"minutes": minutes, "min": minimum, "max": maximum},
        )


class NotFoundError(WorkspaceError):
    """Raised when an ID, path or edge does not resolve to anything."""

    code = "not_found"
    status_code = 404


class GoneError(WorkspaceError):
    """Raised when a file existed but its expiry has passed."""

    code = "gone"
    status_code = 410


class AmbiguousIdError(WorkspaceError):
    """Raised when a short ID prefix matches more than one record."""

    code = "ambiguous"
    status_code = 409

    def __init__(self, candidate: str, matches: list[str]) -> None:
        self.candidate = candidate
        self.matches = sorted(matches)
        super().__init__(
            f"Short ID '{candidate}' matches {len(self.matches)} records",
            {"candidate": candidate, "candidates": self.matches},
        )


class ConflictError(WorkspaceError):
    """Raised when a write collides with an existing record (e.g. a taken path)."""

    code = "conflict"
    status_code = 409


class TransportError(WorkspaceError):
    """Raised for failures at the HTTP boundary that carry no domain meaning."""

    code = "transport_error"
    status_code = 502

    def __init__(
        self, message: str, status_code: int = 0, response_body: Any = None
    ) -> None:
        self.http_status = status_code
        self.response_body = response_body
        super().__init__(message, {"status_code": status_code})


class OrphanedFileError(WorkspaceError):
    """
    Raised when ``attach`` uploaded a file but could not link it.

    The file exists with no attachment edge. Its identifier is reported so the
    link can be completed manually or the file discarded.
    """

    code = "orphaned_file"

    def __init__(self, file_id: UUID | str, path: str, cause: Exception) -> None:
        self.file_id = str(file_id)
        self.path = path
        self.cause = cause
        super().__init__(
            f"File {self.file_id} was uploaded to {path} but could not be linked: {cause}",
            {"file_id": self.file_id, "path": path},
        )


ERRORS_BY_CODE: dict[str, type[WorkspaceError]] = {
    cls.code: cls
    for cls in (NotFoundError, GoneError, ConflictError)
}
