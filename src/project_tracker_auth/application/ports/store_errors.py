"""Errors shared by persistence ports."""

from __future__ import annotations


class StoreUnavailableError(RuntimeError):
    """Raised when a persistence collaborator fails to complete an operation.

    Callers must propagate this error; it never means "record not found".
    """

    def __init__(self, *, operation: str) -> None:
        super().__init__(f"store unavailable during {operation}")
        self.operation = operation
