"""Canonical vote values and bet amount parsing shared by server and clients."""

from __future__ import annotations

from decimal import Decimal, DecimalException, InvalidOperation, localcontext
from typing import Any

from pokerroom.backend.errors import InvalidValueError

DONT_KNOW = "?"
BREAK = "☕️"

POKER_VALUES: tuple[str, ...] = (
    "0",
    "1/2",
    "1",
    "2",
    "3",
    "5",
    "8",
    "13",
    "20",
    "40",
    "100",
    DONT_KNOW,
    BREAK,
)

_NUMERIC_VOTES = {"1/2": 0.5}

MAX_BET_LENGTH = 50


def validate_vote_value(value: Any) -> str:
    """Return ``value`` when it is one of the legal cards."""
    if not isinstance(value, str) or value not in POKER_VALUES:
        raise InvalidValueError(f"Invalid vote value: {value!r}", details={"allowed": list(POKER_VALUES)})
    return value


def numeric_vote_value(value: str | None) -> float | None:
    """Map a card to its number, or None for the don't-know and break markers."""
    if value is None or value in (DONT_KNOW, BREAK):
        return None
    if value in _NUMERIC_VOTES:
        return _NUMERIC_VOTES[value]
    try:
        return float(value)
    except ValueError:
        return None


def parse_bet_amount(amount: Any) -> str:
    """Validate a bet amount and return its canonical decimal string."""
    if isinstance(amount, bool) or amount is None:
        raise InvalidValueError("Bet amount must be a number")
    if isinstance(amount, str):
        amount = amount.strip()
        if amount == "":
            raise InvalidValueError("Bet amount must be a number")
    try:
        parsed = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidValueError(f"Bet amount must be a number, got {amount!r}") from None

    if not parsed.is_finite():
        raise InvalidValueError("Bet amount must be finite")
    if parsed < 0:
        raise InvalidValueError("Bet amount must not be negative")
    if parsed == 0:
        return "0"
    # bet_value is VARCHAR(50)
    if not -MAX_BET_LENGTH < parsed.adjusted() < MAX_BET_LENGTH or len(parsed.as_tuple().digits) > MAX_BET_LENGTH:
        raise InvalidValueError("Bet amount is out of range", details={"max_length": MAX_BET_LENGTH})
    try:
        with localcontext() as ctx:
            ctx.prec = MAX_BET_LENGTH
            canonical = format(parsed.normalize(), "f")
    except DecimalException:
        raise InvalidValueError("Bet amount is out of range", details={"max_length": MAX_BET_LENGTH}) from None
    if len(canonical) > MAX_BET_LENGTH:
        raise InvalidValueError("Bet amount is out of range", details={"max_length": MAX_BET_LENGTH})
    return canonical
