"""Identifier helpers for shareable session tokens."""

from __future__ import annotations

import secrets


SESSION_ID_BYTES = 6
SESSION_ID_ATTEMPTS = 5


def generate_session_id() -> str:
    """Generate an 8 character URL-safe session id (48 bits of entropy)."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)
