from __future__ import annotations

class InsufficientLandmarksError(ValueError):
    """Landmark set is missing or shorter than the mode requires."""

    def __init__(self, mode: str, required: int, got: int | None):
        self.mode = mode
        self.required = required
        self.got = got
        have = "none" if got is None else str(got)
        super().__init__(f"{mode}: need {required} landmarks, got {have}")

class NarrativeError(RuntimeError):
    """Base for failures while producing a narrative report."""

class ServiceError(NarrativeError):
    """Transport, timeout or HTTP-level failure of the narrative service."""

    def __init__(self, message: str, *, status: int | None = None):
        self.status = status
        super().__init__(message)

class ParseError(NarrativeError):
    """Service answered but the payload could not be turned into a report."""
