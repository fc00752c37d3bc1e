"""Persistence interfaces and implementations for poker sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
import threading
from typing import Any, Callable, Protocol

from pokerroom.backend.engine import (
    activate_story,
    pick_active_story,
    reveal_round,
    start_round,
    upsert_bet,
    upsert_vote,
)
from pokerroom.backend.errors import (
    CreationFailureError,
    InactiveStoryError,
    NoActiveStoryError,
    NotFoundError,
    ParticipantNotInSessionError,
)
from pokerroom.backend.models import (
    Bet,
    CreatedSession,
    JoinedSession,
    Participant,
    Session,
    SessionView,
    Story,
    Vote,
)
from pokerroom.backend.security import SESSION_ID_ATTEMPTS, generate_session_id
from pokerroom.backend.state import build_session_view, utc_now
from pokerroom.backend.values import parse_bet_amount, validate_vote_value

logger = logging.getLogger(__name__)


class PokerStore(Protocol):
    def create_session(self, session_name: str, host_name: str) -> CreatedSession:
        """Create a session and its host participant."""

    def join_session(self, session_id: str, user_name: str) -> JoinedSession:
        """Return the participant for ``user_name``, creating it on first join."""

    def add_story(self, session_id: str, title: str, description: str | None = None) -> Story:
        """Insert a story and make it the session's only active story."""

    def cast_vote(self, session_id: str, participant_id: int, vote_value: str) -> Vote:
        """Upsert the participant's vote on the active story."""

    def create_bet(self, story_id: int, participant_id: int, amount: Any) -> Bet:
        """Upsert the participant's bet on an active story."""

    def reveal_votes(self, session_id: str) -> dict[str, bool]:
        """Flag the session's votes as revealed."""

    def clear_votes_and_next_story(self, session_id: str, next_story_id: int | None = None) -> dict[str, bool]:
        """Hide votes and move the session to ``next_story_id`` or to no story."""

    def get_session_details(self, session_id: str) -> SessionView:
        """Return the polled view of a session."""


@dataclass
class InMemoryPokerStore:
    session_id_factory: Callable[[], str] = field(default=generate_session_id)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._participants: dict[int, Participant] = {}
        self._stories: dict[int, Story] = {}
        self._votes: dict[tuple[int, int], Vote] = {}
        self._bets: dict[tuple[int, int], Bet] = {}
        self._participant_ids = itertools.count(1)
        self._story_ids = itertools.count(1)
        self._vote_ids = itertools.count(1)
        self._bet_ids = itertools.count(1)

    def create_session(self, session_name: str, host_name: str) -> CreatedSession:
        with self._lock:
            session_id = self._fresh_session_id()
            now = utc_now()
            self._sessions[session_id] = Session(id=session_id, name=session_name, created_at=now)
            host = Participant(
                id=next(self._participant_ids),
                session_id=session_id,
                user_id=host_name,
                name=host_name,
                is_host=True,
                created_at=now,
            )
            self._participants[host.id] = host

        logger.info("Session %s created by %s", session_id, host_name)
        return CreatedSession(session_id=session_id, host_id=host.id, host_name=host.name)

    def join_session(self, session_id: str, user_name: str) -> JoinedSession:
        with self._lock:
            self._require_session(session_id)
            participant = self._find_participant(session_id=session_id, user_id=user_name)
            if participant is None:
                participant = Participant(
                    id=next(self._participant_ids),
                    session_id=session_id,
                    user_id=user_name,
                    name=user_name,
                    is_host=False,
                    created_at=utc_now(),
                )
                self._participants[participant.id] = participant
                logger.info("Participant %s joined session %s", user_name, session_id)

        return JoinedSession(
            session_id=session_id,
            participant_id=participant.id,
            participant_name=participant.name,
            is_host=participant.is_host,
        )

    def add_story(self, session_id: str, title: str, description: str | None = None) -> Story:
        with self._lock:
            session = self._require_session(session_id)
            self._replace_stories(activate_story(self._session_stories(session_id), None))
            story = Story(
                id=next(self._story_ids),
                session_id=session_id,
                title=title,
                description=description,
                is_active=True,
                created_at=utc_now(),
            )
            self._stories[story.id] = story
            self._sessions[session_id] = start_round(session, story.id)

        logger.info("Story %s added to session %s", story.id, session_id)
        return story

    def cast_vote(self, session_id: str, participant_id: int, vote_value: str) -> Vote:
        value = validate_vote_value(vote_value)
        with self._lock:
            story = pick_active_story(self._session_stories(session_id))
            if story is None:
                raise NoActiveStoryError("No active story to vote on.")
            self._require_member(session_id=session_id, participant_id=participant_id)

            key = (story.id, participant_id)
            existing = self._votes.get(key)
            vote = upsert_vote(
                existing,
                vote_id=existing.id if existing is not None else next(self._vote_ids),
                story_id=story.id,
                participant_id=participant_id,
                vote_value=value,
                now=utc_now(),
            )
            self._votes[key] = vote
        return vote

    def create_bet(self, story_id: int, participant_id: int, amount: Any) -> Bet:
        bet_value = parse_bet_amount(amount)
        with self._lock:
            story = self._stories.get(story_id)
            if story is None:
                raise NotFoundError("Story not found")
            if not story.is_active:
                raise InactiveStoryError("Bets can only be placed on the active story.")
            self._require_member(session_id=story.session_id, participant_id=participant_id)

            key = (story.id, participant_id)
            existing = self._bets.get(key)
            bet = upsert_bet(
                existing,
                bet_id=existing.id if existing is not None else next(self._bet_ids),
                story_id=story.id,
                participant_id=participant_id,
                bet_value=bet_value,
                now=utc_now(),
            )
            self._bets[key] = bet
        return bet

    def reveal_votes(self, session_id: str) -> dict[str, bool]:
        with self._lock:
            session = self._require_session(session_id)
            if pick_active_story(self._session_stories(session_id)) is None:
                raise NoActiveStoryError("No active story to reveal votes for.")
            self._sessions[session_id] = reveal_round(session)

        logger.info("Votes revealed in session %s", session_id)
        return {"success": True}

    def clear_votes_and_next_story(self, session_id: str, next_story_id: int | None = None) -> dict[str, bool]:
        with self._lock:
            session = self._require_session(session_id)
            if next_story_id is not None:
                story = self._stories.get(next_story_id)
                if story is None or story.session_id != session_id:
                    raise NotFoundError("Story not found in this session")
            self._replace_stories(activate_story(self._session_stories(session_id), next_story_id))
            self._sessions[session_id] = start_round(session, next_story_id)

        logger.info("Session %s moved to story %s", session_id, next_story_id)
        return {"success": True}

    def get_session_details(self, session_id: str) -> SessionView:
        with self._lock:
            session = self._require_session(session_id)
            participants = [p for p in self._participants.values() if p.session_id == session_id]
            stories = self._session_stories(session_id)
            story_ids = {story.id for story in stories}
            votes = [vote for vote in self._votes.values() if vote.story_id in story_ids]
            bets = [bet for bet in self._bets.values() if bet.story_id in story_ids]
        return build_session_view(session, participants, stories, votes, bets)

    def _fresh_session_id(self) -> str:
        for _ in range(SESSION_ID_ATTEMPTS):
            session_id = self.session_id_factory()
            if session_id not in self._sessions:
                return session_id
        raise CreationFailureError("Could not create session")

    def _require_session(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    def _require_member(self, session_id: str, participant_id: int) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None or participant.session_id != session_id:
            raise ParticipantNotInSessionError("Participant not found in this session")
        return participant

    def _find_participant(self, session_id: str, user_id: str) -> Participant | None:
        for participant in self._participants.values():
            if participant.session_id == session_id and participant.user_id == user_id:
                return participant
        return None

    def _session_stories(self, session_id: str) -> list[Story]:
        return [story for story in self._stories.values() if story.session_id == session_id]

    def _replace_stories(self, stories: list[Story]) -> None:
        for story in stories:
            self._stories[story.id] = story


SESSION_COLUMNS = "id, name, created_at, current_story_id, votes_revealed"
PARTICIPANT_COLUMNS = "id, session_id, user_id, name, is_host, created_at"
STORY_COLUMNS = "id, session_id, title, description, is_active, created_at"
VOTE_COLUMNS = "id, story_id, participant_id, vote_value, created_at, updated_at"
BET_COLUMNS = "id, story_id, participant_id, bet_value, created_at, updated_at"


@dataclass
class PostgresPokerStore:
    database_url: str
    session_id_factory: Callable[[], str] = field(default=generate_session_id)

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def create_session(self, session_name: str, host_name: str) -> CreatedSession:
        now = utc_now()
        with self._connect() as conn:
            with conn.cursor() as cur:
                session_row = None
                for _ in range(SESSION_ID_ATTEMPTS):
                    cur.execute(
                        f"""
                        INSERT INTO sessions (id, name, created_at, current_story_id, votes_revealed)
                        VALUES (%s, %s, %s, NULL, FALSE)
                        ON CONFLICT (id) DO NOTHING
                        RETURNING {SESSION_COLUMNS}
                        """,
                        (self.session_id_factory(), session_name, now),
                    )
                    session_row = cur.fetchone()
                    if session_row is not None:
                        break
                if session_row is None:
                    raise CreationFailureError("Could not create session")
                session = _session_from_row(session_row)

                cur.execute(
                    f"""
                    INSERT INTO participants (session_id, user_id, name, is_host, created_at)
                    VALUES (%s, %s, %s, TRUE, %s)
                    RETURNING {PARTICIPANT_COLUMNS}
                    """,
                    (session.id, host_name, host_name, now),
                )
                host_row = cur.fetchone()
                if host_row is None:
                    raise CreationFailureError("Could not create host participant")
                host = _participant_from_row(host_row)
            conn.commit()

        logger.info("Session %s created by %s", session.id, host_name)
        return CreatedSession(session_id=session.id, host_id=host.id, host_name=host.name)

    def join_session(self, session_id: str, user_name: str) -> JoinedSession:
        with self._connect() as conn:
            with conn.cursor() as cur:
                _require_session(cur, session_id)
                cur.execute(
                    f"""
                    INSERT INTO participants (session_id, user_id, name, is_host, created_at)
                    VALUES (%s, %s, %s, FALSE, %s)
                    ON CONFLICT (session_id, user_id) DO NOTHING
                    RETURNING {PARTICIPANT_COLUMNS}
                    """,
                    (session_id, user_name, user_name, utc_now()),
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute(
                        f"SELECT {PARTICIPANT_COLUMNS} FROM participants WHERE session_id = %s AND user_id = %s",
                        (session_id, user_name),
                    )
                    row = cur.fetchone()
                else:
                    logger.info("Participant %s joined session %s", user_name, session_id)
                if row is None:
                    raise CreationFailureError("Could not join session")
                participant = _participant_from_row(row)
            conn.commit()

        return JoinedSession(
            session_id=session_id,
            participant_id=participant.id,
            participant_name=participant.name,
            is_host=participant.is_host,
        )

    def add_story(self, session_id: str, title: str, description: str | None = None) -> Story:
        with self._connect() as conn:
            with conn.cursor() as cur:
                _require_session(cur, session_id, for_update=True)
                cur.execute(
                    "UPDATE stories SET is_active = FALSE WHERE session_id = %s AND is_active",
                    (session_id,),
                )
                cur.execute(
                    f"""
                    INSERT INTO stories (session_id, title, description, is_active, created_at)
                    VALUES (%s, %s, %s, TRUE, %s)
                    RETURNING {STORY_COLUMNS}
                    """,
                    (session_id, title, description, utc_now()),
                )
                row = cur.fetchone()
                if row is None:
                    raise CreationFailureError("Could not create story")
                story = _story_from_row(row)
                cur.execute(
                    "UPDATE sessions SET current_story_id = %s, votes_revealed = FALSE WHERE id = %s",
                    (story.id, session_id),
                )
            conn.commit()

        logger.info("Story %s added to session %s", story.id, session_id)
        return story

    def cast_vote(self, session_id: str, participant_id: int, vote_value: str) -> Vote:
        value = validate_vote_value(vote_value)
        now = utc_now()
        with self._connect() as conn:
            with conn.cursor() as cur:
                story = _active_story(cur, session_id)
                if story is None:
                    raise NoActiveStoryError("No active story to vote on.")
                _require_member(cur, session_id=session_id, participant_id=participant_id)
                cur.execute(
                    f"""
                    INSERT INTO votes (story_id, participant_id, vote_value, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (story_id, participant_id)
                    DO UPDATE SET vote_value = EXCLUDED.vote_value, updated_at = EXCLUDED.updated_at
                    RETURNING {VOTE_COLUMNS}
                    """,
                    (story.id, participant_id, value, now, now),
                )
                row = cur.fetchone()
                if row is None:
                    raise CreationFailureError("Could not record vote")
            conn.commit()
        return _vote_from_row(row)

    def create_bet(self, story_id: int, participant_id: int, amount: Any) -> Bet:
        bet_value = parse_bet_amount(amount)
        now = utc_now()
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {STORY_COLUMNS} FROM stories WHERE id = %s", (story_id,))
                story_row = cur.fetchone()
                if story_row is None:
                    raise NotFoundError("Story not found")
                story = _story_from_row(story_row)
                if not story.is_active:
                    raise InactiveStoryError("Bets can only be placed on the active story.")
                _require_member(cur, session_id=story.session_id, participant_id=participant_id)
                cur.execute(
                    f"""
                    INSERT INTO bets (story_id, participant_id, bet_value, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (story_id, participant_id)
                    DO UPDATE SET bet_value = EXCLUDED.bet_value, updated_at = EXCLUDED.updated_at
                    RETURNING {BET_COLUMNS}
                    """,
                    (story.id, participant_id, bet_value, now, now),
                )
                row = cur.fetchone()
                if row is None:
                    raise CreationFailureError("Could not record bet")
            conn.commit()
        return _bet_from_row(row)

    def reveal_votes(self, session_id: str) -> dict[str, bool]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                _require_session(cur, session_id, for_update=True)
                if _active_story(cur, session_id) is None:
                    raise NoActiveStoryError("No active story to reveal votes for.")
                cur.execute("UPDATE sessions SET votes_revealed = TRUE WHERE id = %s", (session_id,))
            conn.commit()

        logger.info("Votes revealed in session %s", session_id)
        return {"success": True}

    def clear_votes_and_next_story(self, session_id: str, next_story_id: int | None = None) -> dict[str, bool]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                _require_session(cur, session_id, for_update=True)
                if next_story_id is not None:
                    cur.execute(
                        "SELECT id FROM stories WHERE id = %s AND session_id = %s",
                        (next_story_id, session_id),
                    )
                    if cur.fetchone() is None:
                        raise NotFoundError("Story not found in this session")
                cur.execute(
                    "UPDATE stories SET is_active = FALSE WHERE session_id = %s AND is_active",
                    (session_id,),
                )
                if next_story_id is not None:
                    cur.execute("UPDATE stories SET is_active = TRUE WHERE id = %s", (next_story_id,))
                cur.execute(
                    "UPDATE sessions SET votes_revealed = FALSE, current_story_id = %s WHERE id = %s",
                    (next_story_id, session_id),
                )
            conn.commit()

        logger.info("Session %s moved to story %s", session_id, next_story_id)
        return {"success": True}

    def get_session_details(self, session_id: str) -> SessionView:
        with self._connect() as conn:
            with conn.cursor() as cur:
                session = _require_session(cur, session_id)
                cur.execute(
                    f"SELECT {PARTICIPANT_COLUMNS} FROM participants WHERE session_id = %s ORDER BY id",
                    (session_id,),
                )
                participants = [_participant_from_row(row) for row in cur.fetchall()]
                cur.execute(
                    f"SELECT {STORY_COLUMNS} FROM stories WHERE session_id = %s ORDER BY created_at DESC, id DESC",
                    (session_id,),
                )
                stories = [_story_from_row(row) for row in cur.fetchall()]

                votes: list[Vote] = []
                bets: list[Bet] = []
                current_story = pick_active_story(stories)
                if current_story is not None:
                    cur.execute(
                        f"SELECT {VOTE_COLUMNS} FROM votes WHERE story_id = %s ORDER BY id",
                        (current_story.id,),
                    )
                    votes = [_vote_from_row(row) for row in cur.fetchall()]
                    cur.execute(
                        f"SELECT {BET_COLUMNS} FROM bets WHERE story_id = %s ORDER BY id",
                        (current_story.id,),
                    )
                    bets = [_bet_from_row(row) for row in cur.fetchall()]

        return build_session_view(session, participants, stories, votes, bets)


def _require_session(cur: Any, session_id: str, for_update: bool = False) -> Session:
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(f"SELECT {SESSION_COLUMNS} FROM sessions WHERE id = %s{lock}", (session_id,))
    row = cur.fetchone()
    if row is None:
        raise NotFoundError("Session not found")
    return _session_from_row(row)


def _require_member(cur: Any, session_id: str, participant_id: int) -> None:
    cur.execute(
        "SELECT id FROM participants WHERE id = %s AND session_id = %s",
        (participant_id, session_id),
    )
    if cur.fetchone() is None:
        raise ParticipantNotInSessionError("Participant not found in this session")


def _active_story(cur: Any, session_id: str) -> Story | None:
    cur.execute(
        f"SELECT {STORY_COLUMNS} FROM stories WHERE session_id = %s AND is_active ORDER BY id LIMIT 1",
        (session_id,),
    )
    row = cur.fetchone()
    return _story_from_row(row) if row is not None else None


def _session_from_row(row: tuple) -> Session:
    session_id, name, created_at, current_story_id, votes_revealed = row
    return Session(
        id=session_id,
        name=name,
        created_at=created_at,
        current_story_id=current_story_id,
        votes_revealed=bool(votes_revealed),
    )


def _participant_from_row(row: tuple) -> Participant:
    participant_id, session_id, user_id, name, is_host, created_at = row
    return Participant(
        id=participant_id,
        session_id=session_id,
        user_id=user_id,
        name=name,
        is_host=bool(is_host),
        created_at=created_at,
    )


def _story_from_row(row: tuple) -> Story:
    story_id, session_id, title, description, is_active, created_at = row
    return Story(
        id=story_id,
        session_id=session_id,
        title=title,
        description=description,
        is_active=bool(is_active),
        created_at=created_at,
    )


def _vote_from_row(row: tuple) -> Vote:
    return Vote(*row)


def _bet_from_row(row: tuple) -> Bet:
    return Bet(*row)


def create_store(database_url: str | None) -> PokerStore:
    if database_url:
        return PostgresPokerStore(database_url=database_url)
    return InMemoryPokerStore()
