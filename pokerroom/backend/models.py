"""Domain models for poker session API responses and persistence contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Session:
    id: str
    name: str
    created_at: datetime
    current_story_id: int | None = None
    votes_revealed: bool = False


@dataclass(frozen=True)
class Participant:
    id: int
    session_id: str
    user_id: str
    name: str
    is_host: bool
    created_at: datetime


@dataclass(frozen=True)
class Story:
    id: int
    session_id: str
    title: str
    description: str | None
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Vote:
    id: int
    story_id: int
    participant_id: int
    vote_value: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Bet:
    id: int
    story_id: int
    participant_id: int
    bet_value: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CreatedSession:
    session_id: str
    host_id: int
    host_name: str


@dataclass(frozen=True)
class JoinedSession:
    session_id: str
    participant_id: int
    participant_name: str
    is_host: bool


@dataclass(frozen=True)
class VoteEntry:
    """A vote joined with its participant; ``vote_value`` is None until reveal."""

    id: int
    story_id: int
    participant_id: int
    participant_name: str
    vote_value: str | None
    updated_at: datetime


@dataclass(frozen=True)
class BetEntry:
    id: int
    story_id: int
    participant_id: int
    participant_name: str
    bet_value: str | None
    updated_at: datetime


@dataclass(frozen=True)
class RoundSummary:
    vote_count: int
    consensus: bool
    average: float | None


@dataclass(frozen=True)
class SessionView:
    session: Session
    participants: list[Participant]
    stories: list[Story]
    current_story: Story | None
    votes: list[VoteEntry] | None
    bets: list[BetEntry] | None
    poker_values: list[str]
    summary: RoundSummary | None = None
