"""Backend package for the poker room."""

from .config import BackendSettings, configure_logging, load_settings
from .errors import (
    CreationFailureError,
    InactiveStoryError,
    InvalidValueError,
    NoActiveStoryError,
    NotFoundError,
    ParticipantNotInSessionError,
    PokerError,
)
from .security import generate_session_id
from .state import build_session_view
from .store import InMemoryPokerStore, PokerStore, PostgresPokerStore, create_store
from .values import POKER_VALUES, parse_bet_amount, validate_vote_value

__all__ = [
    "BackendSettings",
    "build_session_view",
    "configure_logging",
    "create_store",
    "CreationFailureError",
    "generate_session_id",
    "InactiveStoryError",
    "InMemoryPokerStore",
    "InvalidValueError",
    "load_settings",
    "NoActiveStoryError",
    "NotFoundError",
    "parse_bet_amount",
    "ParticipantNotInSessionError",
    "POKER_VALUES",
    "PokerError",
    "PokerStore",
    "PostgresPokerStore",
    "validate_vote_value",
]
