"""Error taxonomy of the planning engine.

Services raise only these exceptions. They are deterministic for a given input,
so nothing here is retried; the API layer maps each class to one HTTP status.
"""

from __future__ import annotations


class PlanningError(Exception):
    """Base class for every business error raised by the services."""

    code = "PLANNING_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(PlanningError):
    """Malformed or out-of-range input (negative amounts, missing required ids)."""

    code = "VALIDATION_ERROR"


class ReferenceNotFound(PlanningError):
    """A foreign id given in the input does not resolve to an existing row."""

    code = "REFERENCE_NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} introuvable (id={entity_id})")


class NotFound(PlanningError):
    """The primary id of a read, update or delete does not resolve."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} introuvable (id={entity_id})")


class UniquenessViolation(PlanningError):
    """A unique designation, operation name or compound pair already exists."""

    code = "UNIQUENESS_VIOLATION"


class Conflict(PlanningError):
    """Delete blocked by existing children or dependents."""

    code = "CONFLICT"
