"""FastAPI endpoints for poker sessions, stories, votes and bets."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr

from .config import configure_logging, load_settings
from .errors import PokerError, build_error_payload
from .store import PokerStore, create_store
from .values import POKER_VALUES

logger = logging.getLogger(__name__)


class CreateSessionRequest(BaseModel):
    session_name: str = Field(min_length=1, max_length=256)
    host_name: str = Field(min_length=1, max_length=256)


class CreateSessionResponse(BaseModel):
    session_id: str
    host_id: int
    host_name: str


class JoinSessionRequest(BaseModel):
    user_name: str = Field(min_length=1, max_length=256)


class JoinSessionResponse(BaseModel):
    session_id: str
    participant_id: int
    participant_name: str
    is_host: bool


class AddStoryRequest(BaseModel):
    title: str = Field(min_length=1, max_length=256)
    description: str | None = None


class CastVoteRequest(BaseModel):
    participant_id: int
    vote_value: str


class CreateBetRequest(BaseModel):
    participant_id: int
    amount: StrictInt | StrictFloat | StrictStr


class NextStoryRequest(BaseModel):
    next_story_id: int | None = None


class SuccessResponse(BaseModel):
    success: bool


class SessionModel(BaseModel):
    id: str
    name: str
    created_at: datetime
    current_story_id: int | None
    votes_revealed: bool


class ParticipantModel(BaseModel):
    id: int
    session_id: str
    user_id: str
    name: str
    is_host: bool
    created_at: datetime


class StoryModel(BaseModel):
    id: int
    session_id: str
    title: str
    description: str | None
    is_active: bool
    created_at: datetime


class VoteModel(BaseModel):
    id: int
    story_id: int
    participant_id: int
    vote_value: str | None
    created_at: datetime
    updated_at: datetime


class BetModel(BaseModel):
    id: int
    story_id: int
    participant_id: int
    bet_value: str
    created_at: datetime
    updated_at: datetime


class VoteEntryModel(BaseModel):
    id: int
    story_id: int
    participant_id: int
    participant_name: str
    vote_value: str | None
    updated_at: datetime


class BetEntryModel(BaseModel):
    id: int
    story_id: int
    participant_id: int
    participant_name: str
    bet_value: str | None
    updated_at: datetime


class RoundSummaryModel(BaseModel):
    vote_count: int
    consensus: bool
    average: float | None


class SessionViewResponse(BaseModel):
    session: SessionModel
    participants: list[ParticipantModel]
    stories: list[StoryModel]
    current_story: StoryModel | None
    votes: list[VoteEntryModel] | None
    bets: list[BetEntryModel] | None
    poker_values: list[str]
    summary: RoundSummaryModel | None = None


class PokerValuesResponse(BaseModel):
    poker_values: list[str]


def _default_store() -> PokerStore:
    settings = load_settings()
    configure_logging(settings.log_level)
    return create_store(database_url=settings.database_url)


def create_app(store: PokerStore | None = None) -> FastAPI:
    app = FastAPI(title="Poker Room API", version="0.1.0")
    poker_store = store if store is not None else _default_store()

    def get_store() -> PokerStore:
        return poker_store

    @app.exception_handler(PokerError)
    async def handle_poker_error(request: Request, exc: PokerError) -> JSONResponse:
        logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_payload(code=exc.code, message=exc.message, details=exc.details),
        )

    @app.get("/api/poker-values", response_model=PokerValuesResponse)
    def get_poker_values() -> PokerValuesResponse:
        return PokerValuesResponse(poker_values=list(POKER_VALUES))

    @app.post("/api/sessions", response_model=CreateSessionResponse)
    def create_session(
        payload: CreateSessionRequest,
        local_store: PokerStore = Depends(get_store),
    ) -> CreateSessionResponse:
        created = local_store.create_session(session_name=payload.session_name, host_name=payload.host_name)
        return CreateSessionResponse(
            session_id=created.session_id,
            host_id=created.host_id,
            host_name=created.host_name,
        )

    @app.post("/api/sessions/{session_id}/participants", response_model=JoinSessionResponse)
    def join_session(
        session_id: str,
        payload: JoinSessionRequest,
        local_store: PokerStore = Depends(get_store),
    ) -> JoinSessionResponse:
        joined = local_store.join_session(session_id=session_id, user_name=payload.user_name)
        return JoinSessionResponse(
            session_id=joined.session_id,
            participant_id=joined.participant_id,
            participant_name=joined.participant_name,
            is_host=joined.is_host,
        )

    @app.get("/api/sessions/{session_id}", response_model=SessionViewResponse)
    def get_session_details(
        session_id: str,
        local_store: PokerStore = Depends(get_store),
    ) -> SessionViewResponse:
        view = local_store.get_session_details(session_id=session_id)
        return SessionViewResponse.model_validate(asdict(view))

    @app.post("/api/sessions/{session_id}/stories", response_model=StoryModel)
    def add_story(
        session_id: str,
        payload: AddStoryRequest,
        local_store: PokerStore = Depends(get_store),
    ) -> StoryModel:
        story = local_store.add_story(session_id=session_id, title=payload.title, description=payload.description)
        return StoryModel.model_validate(asdict(story))

    @app.post("/api/sessions/{session_id}/votes", response_model=VoteModel)
    def cast_vote(
        session_id: str,
        payload: CastVoteRequest,
        local_store: PokerStore = Depends(get_store),
    ) -> VoteModel:
        vote = local_store.cast_vote(
            session_id=session_id,
            participant_id=payload.participant_id,
            vote_value=payload.vote_value,
        )
        return VoteModel.model_validate(asdict(vote))

    @app.post("/api/stories/{story_id}/bets", response_model=BetModel)
    def create_bet(
        story_id: int,
        payload: CreateBetRequest,
        local_store: PokerStore = Depends(get_store),
    ) -> BetModel:
        bet = local_store.create_bet(story_id=story_id, participant_id=payload.participant_id, amount=payload.amount)
        return BetModel.model_validate(asdict(bet))

    @app.post("/api/sessions/{session_id}/reveal", response_model=SuccessResponse)
    def reveal_votes(
        session_id: str,
        local_store: PokerStore = Depends(get_store),
    ) -> SuccessResponse:
        return SuccessResponse(**local_store.reveal_votes(session_id=session_id))

    @app.post("/api/sessions/{session_id}/next", response_model=SuccessResponse)
    def clear_votes_and_next_story(
        session_id: str,
        payload: NextStoryRequest | None = None,
        local_store: PokerStore = Depends(get_store),
    ) -> SuccessResponse:
        next_story_id = payload.next_story_id if payload is not None else None
        return SuccessResponse(
            **local_store.clear_votes_and_next_story(session_id=session_id, next_story_id=next_story_id)
        )

    return app


app = create_app()
