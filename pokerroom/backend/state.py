"""Builders for the polled session view."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from pokerroom.backend.engine import pick_active_story, summarize_round
from pokerroom.backend.models import (
    Bet,
    BetEntry,
    Participant,
    Session,
    SessionView,
    Story,
    Vote,
    VoteEntry,
)
from pokerroom.backend.values import POKER_VALUES


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def newest_first(stories: Iterable[Story]) -> list[Story]:
    return sorted(stories, key=lambda story: (story.created_at, story.id), reverse=True)


def build_session_view(
    session: Session,
    participants: Iterable[Participant],
    stories: Iterable[Story],
    votes: Iterable[Vote],
    bets: Iterable[Bet],
) -> SessionView:
    """Assemble what a polling client sees.

    Votes and bets are only listed for the active story. Their values stay
    hidden until the session is revealed, so clients can show who has voted
    without leaking estimates.
    """
    participant_list = sorted(participants, key=lambda participant: participant.id)
    story_list = newest_first(stories)
    current_story = pick_active_story(story_list)

    if current_story is None:
        return SessionView(
            session=session,
            participants=participant_list,
            stories=story_list,
            current_story=None,
            votes=None,
            bets=None,
            poker_values=list(POKER_VALUES),
        )

    names = {participant.id: participant.name for participant in participant_list}
    revealed = session.votes_revealed
    story_votes = sorted(
        (vote for vote in votes if vote.story_id == current_story.id),
        key=lambda vote: vote.id,
    )
    story_bets = sorted(
        (bet for bet in bets if bet.story_id == current_story.id),
        key=lambda bet: bet.id,
    )

    vote_entries = [
        VoteEntry(
            id=vote.id,
            story_id=vote.story_id,
            participant_id=vote.participant_id,
            participant_name=names.get(vote.participant_id, ""),
            vote_value=vote.vote_value if revealed else None,
            updated_at=vote.updated_at,
        )
        for vote in story_votes
    ]
    bet_entries = [
        BetEntry(
            id=bet.id,
            story_id=bet.story_id,
            participant_id=bet.participant_id,
            participant_name=names.get(bet.participant_id, ""),
            bet_value=bet.bet_value if revealed else None,
            updated_at=bet.updated_at,
        )
        for bet in story_bets
    ]

    return SessionView(
        session=session,
        participants=participant_list,
        stories=story_list,
        current_story=current_story,
        votes=vote_entries,
        bets=bet_entries,
        poker_values=list(POKER_VALUES),
        summary=summarize_round(story_votes) if revealed else None,
    )
