"""Exception hierarchy shared by the API client, file codec and sync engine."""

from __future__ import annotations

from typing import Any


class N8NSyncError(Exception):
    """Base exception for n8n-sync errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class TransportError(N8NSyncError):
    """Network failure or a response body that could not be decoded."""

    pass


class APIError(TransportError):
    """Non-success HTTP status from the n8n REST API."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AuthError(APIError):
    """Missing, invalid or insufficient API key (401/403)."""

    pass


class NotFoundError(APIError):
    """Requested resource does not exist (404)."""

    pass


class WorkflowNotFoundError(NotFoundError):
    """No remote workflow matches a name lookup."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"workflow with name '{name}' not found", 404)


class PaginationCycleError(N8NSyncError):
    """The listing endpoint returned a cursor it had already returned."""

    def __init__(self, cursor: str):
        self.cursor = cursor
        super().__init__(f"pagination cursor repeated: {cursor}")


class WorkflowFileError(N8NSyncError):
    """A local workflow file is unreadable, malformed or has an unsupported extension."""

    def __init__(self, message: str, path: Any = None):
        self.path = path
        super().__init__(message)


class ValidationError(N8NSyncError):
    """Conflicting or missing command options."""

    pass
