# materials_core/workflows/errors.py
"""
Refusal reasons raised by the material lifecycle controller.

Every error is a rejected intent on a single user action. None of them is
fatal to the process; callers display the reason and refuse to navigate.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class TransitionError(Exception):
    code = "transition_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def as_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class Unauthorized(TransitionError):
    """Actor role is not allowed to act on the material's current stage."""

    code = "unauthorized"


class Terminal(TransitionError):
    """Material is completed and accepts no further transitions."""

    code = "terminal"


class MissingEvidence(TransitionError):
    """A required evidence record has not been recorded yet."""

    code = "missing_evidence"

    def __init__(self, message: str = "", missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing: Tuple[str, ...] = tuple(missing)

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["missing"] = list(self.missing)
        return data


class InvalidDecision(TransitionError):
    code = "invalid_decision"


class InvalidState(TransitionError):
    code = "invalid_state"


class VersionConflict(TransitionError):
    """The material changed between read and write."""

    code = "version_conflict"


__all__ = [
    "TransitionError",
    "Unauthorized",
    "Terminal",
    "MissingEvidence",
    "InvalidDecision",
    "InvalidState",
    "VersionConflict",
]
