"""
Custom exceptions for the performance task designer.
"""

from typing import Any


class TaskDesignerError(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# === Session Exceptions ===

class SessionNotFoundError(TaskDesignerError):
    """Raised when no session exists for the given id."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session not found: {session_id}",
            details={"session_id": session_id}
        )


class DuplicateSessionError(TaskDesignerError):
    """Raised when creating a session with an id that is already in use."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session already exists: {session_id}",
            details={"session_id": session_id}
        )


# === Step Exceptions ===

class InvalidTransitionError(TaskDesignerError):
    """Raised when a step change would move backward or skip a step."""

    def __init__(self, session_id: str, current_step: str, requested_step: str):
        super().__init__(
            message=f"Invalid step transition: {current_step} -> {requested_step}",
            details={
                "session_id": session_id,
                "current_step": current_step,
                "requested_step": requested_step,
            }
        )


class MissingPrerequisiteError(TaskDesignerError):
    """Raised when a step needs a slot that has not been filled yet."""

    def __init__(self, step: str, slot: str):
        super().__init__(
            message=f"Step {step} requires '{slot}' which is not set",
            details={"step": step, "slot": slot}
        )


# === Selection Exceptions ===

class SelectionOutOfRangeError(TaskDesignerError):
    """Raised when selected ids are not present in the candidate set."""

    def __init__(self, invalid_ids: list[int], valid_ids: list[int]):
        super().__init__(
            message=f"Unknown selection ids: {invalid_ids}",
            details={"invalid_ids": invalid_ids, "valid_ids": valid_ids}
        )
        self.invalid_ids = invalid_ids
        self.valid_ids = valid_ids


class TooManySelectedError(TaskDesignerError):
    """Raised when more candidates are selected than a step allows."""

    def __init__(self, selected: int, maximum: int):
        super().__init__(
            message=f"Too many selections: {selected} selected, at most {maximum} allowed",
            details={"selected": selected, "maximum": maximum}
        )
        self.selected = selected
        self.maximum = maximum


# === Completion Exceptions ===

class CompletionError(TaskDesignerError):
    """Base for failures of the completion service call."""


class CompletionServiceError(CompletionError):
    """Raised on timeout, rate limiting, transport or empty responses."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(
            message=message,
            details={"original_error": str(original_error) if original_error else None}
        )
        self.original_error = original_error


class SchemaMismatchError(CompletionError):
    """Raised when the completion text does not match the expected shape."""

    def __init__(self, shape: str, reason: str, response: str | None = None):
        super().__init__(
            message=f"Response does not match {shape}: {reason}",
            details={
                "shape": shape,
                "reason": reason,
                "response_preview": (response or "")[:500],
            }
        )
