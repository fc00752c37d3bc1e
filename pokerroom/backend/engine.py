"""Round transition rules shared by the store implementations."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
from typing import Iterable

from pokerroom.backend.models import Bet, RoundSummary, Session, Story, Vote
from pokerroom.backend.values import numeric_vote_value

logger = logging.getLogger(__name__)


def pick_active_story(stories: Iterable[Story]) -> Story | None:
    """Return the session's active story; only the first counts if several are flagged."""
    active = [story for story in stories if story.is_active]
    if not active:
        return None
    if len(active) > 1:
        logger.warning(
            "Session %s has %d active stories, using story %s",
            active[0].session_id,
            len(active),
            active[0].id,
        )
    return active[0]


def activate_story(stories: Iterable[Story], story_id: int | None) -> list[Story]:
    """Flag ``story_id`` as the only active story, or none when ``story_id`` is None."""
    next_stories: list[Story] = []
    for story in stories:
        should_be_active = story_id is not None and story.id == story_id
        if story.is_active != should_be_active:
            story = replace(story, is_active=should_be_active)
        next_stories.append(story)
    return next_stories


def start_round(session: Session, story_id: int | None) -> Session:
    return replace(session, current_story_id=story_id, votes_revealed=False)


def reveal_round(session: Session) -> Session:
    if session.votes_revealed:
        return session
    return replace(session, votes_revealed=True)


def upsert_vote(
    existing: Vote | None,
    *,
    vote_id: int,
    story_id: int,
    participant_id: int,
    vote_value: str,
    now: datetime,
) -> Vote:
    """Insert a new vote or overwrite the value of the existing one. Last write wins."""
    if existing is None:
        return Vote(
            id=vote_id,
            story_id=story_id,
            participant_id=participant_id,
            vote_value=vote_value,
            created_at=now,
            updated_at=now,
        )
    return replace(existing, vote_value=vote_value, updated_at=now)


def upsert_bet(
    existing: Bet | None,
    *,
    bet_id: int,
    story_id: int,
    participant_id: int,
    bet_value: str,
    now: datetime,
) -> Bet:
    if existing is None:
        return Bet(
            id=bet_id,
            story_id=story_id,
            participant_id=participant_id,
            bet_value=bet_value,
            created_at=now,
            updated_at=now,
        )
    return replace(existing, bet_value=bet_value, updated_at=now)


def summarize_round(votes: Iterable[Vote]) -> RoundSummary:
    """Consensus needs at least two votes that all match; the average skips ? and break."""
    values = [vote.vote_value for vote in votes]
    consensus = len(values) > 1 and all(value == values[0] for value in values)

    numbers = [number for number in (numeric_vote_value(value) for value in values) if number is not None]
    average = round(sum(numbers) / len(numbers), 2) if numbers else None
    return RoundSummary(vote_count=len(values), consensus=consensus, average=average)
