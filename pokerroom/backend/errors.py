"""Error types raised by poker session operations."""

from __future__ import annotations

from typing import Any


class PokerError(Exception):
    code = "poker_error"
    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(PokerError):
    code = "not_found"
    status_code = 404


class InvalidValueError(PokerError):
    code = "invalid_value"
    status_code = 422


class NoActiveStoryError(PokerError):
    code = "no_active_story"
    status_code = 409


class InactiveStoryError(PokerError):
    code = "inactive_story"
    status_code = 409


class ParticipantNotInSessionError(PokerError):
    code = "participant_not_in_session"
    status_code = 403


class CreationFailureError(PokerError):
    """A storage insert did not hand back the row it should have created."""

    code = "creation_failure"
    status_code = 500


def build_error_payload(
    *,
    code: str,
    message: str,
    details: Any = None,
) -> dict[str, Any]:
    payload = {
        "code": str(code).strip() or "unknown_error",
        "message": str(message).strip() or "Unknown error.",
        "details": details if details is not None else {},
    }
    # Older clients read the message from "error".
    payload["error"] = payload["message"]
    return payload
