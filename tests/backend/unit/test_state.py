from datetime import datetime, timedelta, timezone

from pokerroom.backend.models import Bet, Participant, Session, Story, Vote
from pokerroom.backend.state import build_session_view, newest_first, utc_now
from pokerroom.backend.values import POKER_VALUES

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _fixture(votes_revealed: bool):
    session = Session(id="abc12345", name="Sprint 1", created_at=NOW, current_story_id=2, votes_revealed=votes_revealed)
    participants = [
        Participant(id=2, session_id="abc12345", user_id="Bob", name="Bob", is_host=False, created_at=NOW),
        Participant(id=1, session_id="abc12345", user_id="Alice", name="Alice", is_host=True, created_at=NOW),
    ]
    stories = [
        Story(id=1, session_id="abc12345", title="Old", description=None, is_active=False, created_at=NOW),
        Story(
            id=2,
            session_id="abc12345",
            title="Login bug",
            description=None,
            is_active=True,
            created_at=NOW + timedelta(minutes=1),
        ),
    ]
    votes = [
        Vote(id=1, story_id=1, participant_id=1, vote_value="13", created_at=NOW, updated_at=NOW),
        Vote(id=2, story_id=2, participant_id=1, vote_value="3", created_at=NOW, updated_at=NOW),
        Vote(id=3, story_id=2, participant_id=2, vote_value="5", created_at=NOW, updated_at=NOW),
    ]
    bets = [Bet(id=1, story_id=2, participant_id=2, bet_value="10", created_at=NOW, updated_at=NOW)]
    return session, participants, stories, votes, bets


def test_utc_now_is_timezone_aware() -> None:
    assert utc_now().tzinfo is not None


def test_newest_first_orders_by_creation_time() -> None:
    _, _, stories, _, _ = _fixture(False)

    assert [story.id for story in newest_first(stories)] == [2, 1]


def test_build_session_view_hides_values_before_reveal() -> None:
    view = build_session_view(*_fixture(votes_revealed=False))

    assert view.current_story is not None
    assert view.current_story.title == "Login bug"
    assert [participant.name for participant in view.participants] == ["Alice", "Bob"]
    assert [story.id for story in view.stories] == [2, 1]
    assert [(entry.participant_name, entry.vote_value) for entry in view.votes] == [("Alice", None), ("Bob", None)]
    assert [(entry.participant_name, entry.bet_value) for entry in view.bets] == [("Bob", None)]
    assert view.summary is None
    assert view.poker_values == list(POKER_VALUES)


def test_build_session_view_exposes_values_after_reveal() -> None:
    view = build_session_view(*_fixture(votes_revealed=True))

    assert {entry.participant_name: entry.vote_value for entry in view.votes} == {"Alice": "3", "Bob": "5"}
    assert view.bets[0].bet_value == "10"
    assert view.summary is not None
    assert view.summary.vote_count == 2
    assert view.summary.average == 4.0
    assert view.summary.consensus is False


def test_build_session_view_without_active_story_surfaces_no_votes() -> None:
    session, participants, stories, votes, bets = _fixture(votes_revealed=True)
    inactive = [Story(**{**story.__dict__, "is_active": False}) for story in stories]

    view = build_session_view(session, participants, inactive, votes, bets)

    assert view.current_story is None
    assert view.votes is None
    assert view.bets is None
    assert view.summary is None
