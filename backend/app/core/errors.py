"""Error taxonomy.

Each error is raised inside the component that detects it and converted
into a tagged result object at that component's boundary. Callers above
the boundary branch on result status instead of catching exceptions.
"""


class PathwiseError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class TransportError(PathwiseError):
    """Network/HTTP failure or malformed envelope from an external service."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.status_code = status_code


class ExtractionError(PathwiseError):
    """No parseable JSON payload in a model response."""

    def __init__(self, message: str, *, status: str) -> None:
        super().__init__(message)
        self.status = status


class SchemaValidationError(PathwiseError):
    """Parsed payload does not match the expected roadmap shape."""

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message, detail=field)
        self.field = field


class PersistenceError(PathwiseError):
    """Write to the remote store or local cache failed."""


class ReconciliationError(PathwiseError):
    """Re-fetch after a change notification failed."""
