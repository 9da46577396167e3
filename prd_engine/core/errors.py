"""Domain errors shared by the db, service and API layers."""

from typing import Any


class EntityNotFoundError(LookupError):
    """Raised when a record does not exist or is not owned by the caller."""

    def __init__(self, entity: str, entity_id: Any = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class RetryExhaustedError(RuntimeError):
    """Raised when a retry loop ends without a result or a propagated error."""


def describe_error(exc: BaseException) -> str:
    """
    Extract a human-readable message from an exception.

    Provider SDK errors carry a ``message`` attribute without the HTTP
    preamble; everything else falls back to ``str(exc)``.
    """
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(exc)
    return text or type(exc).__name__
