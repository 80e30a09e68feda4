"""
FastAPI Application - REST API for scorekeeping clients.

Endpoints:
    POST   /api/v1/matches                        Create match
    GET    /api/v1/matches                        List matches
    POST   /api/v1/matches/join                   Join by room code
    GET    /api/v1/matches/{id}                   Get match record
    POST   /api/v1/matches/{id}/slots             Seat a player at a position
    POST   /api/v1/matches/{id}/leave             Leave a match
    POST   /api/v1/matches/{id}/status            Start/pause/resume/end/abandon
    POST   /api/v1/matches/{id}/plays             Submit a play
    GET    /api/v1/matches/{id}/live              Get live match state
    GET    /api/v1/matches/{id}/scores            Get team scores
    GET    /api/v1/matches/{id}/players/{ident}   Get one player's match stats

All requests and responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..engine_core.state import DEFAULT_RECENT_PLAYS
from ..session import MatchManager
from .service import APIService
from .schemas import (
    # Request models
    CreateMatchRequest,
    JoinMatchRequest,
    JoinSlotRequest,
    LeaveMatchRequest,
    StatusChangeRequest,
    SubmitPlayRequest,
    # Response models
    ErrorResponse,
    HealthResponse,
    LiveMatchStateResponse,
    MatchListResponse,
    MatchResponse,
    PlayResultResponse,
    PlayerMatchStatsResponse,
    TeamScoresInfo,
    # Enums
    ErrorCode,
)

# Environment configuration
DIESTATS_ENV = os.getenv("DIESTATS_ENV", "development")
DIESTATS_RECENT_PLAYS = int(os.getenv("DIESTATS_RECENT_PLAYS", str(DEFAULT_RECENT_PLAYS)))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.MATCH_NOT_FOUND: 404,
    ErrorCode.ROOM_CODE_NOT_FOUND: 404,
    ErrorCode.PLAYER_NOT_FOUND: 404,
    ErrorCode.INACTIVE_MATCH: 409,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.MATCH_NOT_JOINABLE: 409,
    ErrorCode.MATCH_FULL: 409,
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.PERSISTENCE_FAILURE: 503,
    ErrorCode.INTERNAL_ERROR: 500,
}


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Die Stats API",
        description="""
Live scoring for two-versus-two table die matches.

## Match Flow

1. `POST /matches` creates a match and returns its room code
2. Players join with `POST /matches/join`
3. The creator starts the match via `POST /matches/{id}/status`
4. Each throw is submitted to `POST /matches/{id}/plays`
5. Clients poll `GET /matches/{id}/live` for the live state

## Error Codes

| Code | Description |
|------|-------------|
| `MATCH_NOT_FOUND` | Match does not exist |
| `INACTIVE_MATCH` | Match is not accepting plays |
| `UNRESOLVED_THROWER` | Thrower is not part of the match |
| `MALFORMED_SLOT_IDENTITY` | Slot identity names no position |
| `PERSISTENCE_FAILURE` | Match could not be saved |
        """,
        version=__version__,
        docs_url=None if DIESTATS_ENV == "production" else "/api/docs",
        redoc_url=None if DIESTATS_ENV == "production" else "/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(
        manager=MatchManager(recent_plays_limit=DIESTATS_RECENT_PLAYS)
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def respond(response):
        """Pass successful responses through, map errors to HTTP status."""
        if isinstance(response, ErrorResponse):
            return make_error_response(
                response.error_code,
                response.error,
                status_code=ERROR_STATUS.get(response.error_code, 400),
                details=response.details,
            )
        return response

    error_responses = {
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }

    # =========================================================================
    # Match Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches",
        response_model=MatchResponse,
        status_code=201,
        responses=error_responses,
        tags=["Matches"],
        summary="Create a new match",
    )
    async def create_match(request: CreateMatchRequest) -> Union[MatchResponse, JSONResponse]:
        """Create a match in waiting status and allocate its room code."""
        return respond(api_service.create_match(request))

    @app.get(
        "/api/v1/matches",
        response_model=MatchListResponse,
        tags=["Matches"],
        summary="List matches",
    )
    async def list_matches() -> MatchListResponse:
        matches = api_service.list_matches()
        return MatchListResponse(matches=matches, count=len(matches))

    @app.post(
        "/api/v1/matches/join",
        response_model=MatchResponse,
        responses=error_responses,
        tags=["Matches"],
        summary="Join a match by room code",
    )
    async def join_match(request: JoinMatchRequest) -> Union[MatchResponse, JSONResponse]:
        """Take the lowest free position in the match with this room code."""
        return respond(api_service.join_match(request))

    @app.get(
        "/api/v1/matches/{match_id}",
        response_model=MatchResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Get match record",
    )
    async def get_match(match_id: str) -> Union[MatchResponse, JSONResponse]:
        return respond(api_service.get_match(match_id))

    @app.post(
        "/api/v1/matches/{match_id}/slots",
        response_model=MatchResponse,
        responses=error_responses,
        tags=["Matches"],
        summary="Seat a player at a position",
    )
    async def join_slot(
        match_id: str, request: JoinSlotRequest
    ) -> Union[MatchResponse, JSONResponse]:
        """Only the match creator may seat players."""
        return respond(api_service.join_slot(match_id, request))

    @app.post(
        "/api/v1/matches/{match_id}/leave",
        response_model=MatchResponse,
        responses=error_responses,
        tags=["Matches"],
        summary="Leave a match",
    )
    async def leave_match(
        match_id: str, request: LeaveMatchRequest
    ) -> Union[MatchResponse, JSONResponse]:
        return respond(api_service.leave_match(match_id, request))

    @app.post(
        "/api/v1/matches/{match_id}/status",
        response_model=MatchResponse,
        responses=error_responses,
        tags=["Matches"],
        summary="Change match status",
    )
    async def change_status(
        match_id: str, request: StatusChangeRequest
    ) -> Union[MatchResponse, JSONResponse]:
        """
        Start, pause, resume, end or abandon a match.

        Only the match creator may change status.
        """
        return respond(api_service.change_status(match_id, request))

    # =========================================================================
    # Live Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches/{match_id}/plays",
        response_model=PlayResultResponse,
        responses=error_responses,
        tags=["Live"],
        summary="Submit a play",
    )
    async def submit_play(
        match_id: str, request: SubmitPlayRequest
    ) -> Union[PlayResultResponse, JSONResponse]:
        """
        Apply one throw, with its defense and any special actions.

        Plays for the same match are applied one at a time.
        """
        return respond(api_service.submit_play(match_id, request))

    @app.get(
        "/api/v1/matches/{match_id}/live",
        response_model=LiveMatchStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Live"],
        summary="Get live match state",
    )
    async def get_live_state(match_id: str) -> Union[LiveMatchStateResponse, JSONResponse]:
        return respond(api_service.get_live_state(match_id))

    @app.get(
        "/api/v1/matches/{match_id}/scores",
        response_model=TeamScoresInfo,
        responses={404: {"model": ErrorResponse}},
        tags=["Live"],
        summary="Get team scores",
    )
    async def get_team_scores(match_id: str) -> Union[TeamScoresInfo, JSONResponse]:
        return respond(api_service.get_team_scores(match_id))

    @app.get(
        "/api/v1/matches/{match_id}/players/{identity}",
        response_model=PlayerMatchStatsResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Live"],
        summary="Get one player's match stats",
    )
    async def get_player_stats(
        match_id: str, identity: str
    ) -> Union[PlayerMatchStatsResponse, JSONResponse]:
        return respond(api_service.get_player_stats(match_id, identity))

    # =========================================================================
    # Health
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service="diestats",
            version=__version__,
        )

    return app


# For running directly: uvicorn diestats.api.app:app
app = create_app()
