"""
Exception hierarchy for the inspection engine.

Services raise these; the app factory registers one handler per type so
every blueprint returns the same status codes:

    NotFoundError            -> 404
    ValidationError          -> 422 (MissingEvidenceError, InspectionLockedError)
    DownstreamSynthesisError -> 503
"""


class NotFoundError(Exception):
    """Raised when a referenced vehicle, inspection, item, proof or work order is missing.

    Args:
        resource: Human-readable entity name (e.g. "Inspection", "ChecklistItem").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class MissingEvidenceError(ValidationError):
    """A defect status was requested for an item with no notes and no proof."""

    def __init__(self, item_id: str, status: str) -> None:
        self.item_id = item_id
        self.status = status
        super().__init__(
            "A note or a photo describing the defect is required",
            details={"item_id": item_id, "status": status},
        )


class InspectionLockedError(ValidationError):
    """The inspection reached COMPLETED or BLOCKED and no longer accepts changes."""

    def __init__(self, inspection_id: str, status: str) -> None:
        self.inspection_id = inspection_id
        super().__init__(
            f"Inspection {inspection_id} is {status} and cannot be edited",
            details={"inspection_id": inspection_id, "status": status},
        )


class DownstreamSynthesisError(Exception):
    """Work order or notification creation failed after the inspection was finalised.

    The inspection keeps its terminal status; callers surface this as a
    non-fatal alert and offer a manual retry.
    """

    def __init__(self, message: str, inspection_id: str | None = None) -> None:
        self.inspection_id = inspection_id
        super().__init__(message)
