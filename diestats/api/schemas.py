"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between scorekeeping clients and
the engine. All responses include explicit types for OpenAPI schema
generation.

Error Codes:
- MATCH_NOT_FOUND: Match does not exist
- INACTIVE_MATCH: Match is not accepting plays
- UNRESOLVED_THROWER: Thrower is not part of the match
- MALFORMED_SLOT_IDENTITY: Slot identity names no position
- PERSISTENCE_FAILURE: The match could not be written back
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.state import (
    DEFAULT_SCORE_LIMIT, DEFAULT_SINK_POINTS, DEFAULT_WIN_BY_TWO, SCORE_LIMIT_OPTIONS,
)


# =============================================================================
# Enums
# =============================================================================

class MatchStatusValue(str, Enum):
    """Match status values."""
    WAITING = "waiting"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"
    ABANDONED = "abandoned"


class StatusAction(str, Enum):
    """Status changes a controller can request."""
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    END = "end"
    ABANDON = "abandon"


class ErrorCode(str, Enum):
    """Structured error codes."""
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    INACTIVE_MATCH = "INACTIVE_MATCH"
    UNRESOLVED_THROWER = "UNRESOLVED_THROWER"
    MALFORMED_SLOT_IDENTITY = "MALFORMED_SLOT_IDENTITY"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    ROOM_CODE_NOT_FOUND = "ROOM_CODE_NOT_FOUND"
    MATCH_NOT_JOINABLE = "MATCH_NOT_JOINABLE"
    MATCH_FULL = "MATCH_FULL"
    INVALID_POSITION = "INVALID_POSITION"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PlayerStatsInfo(BaseModel):
    """Counters for one position."""
    position: int
    team: str
    identity: Optional[str] = Field(None, description="Holder of the position, if any")
    name: str
    score: int = 0
    throws: int = 0
    hits: int = 0
    table_die: int = 0
    line: int = 0
    hit: int = 0
    knicker: int = 0
    goal: int = 0
    dink: int = 0
    sink: int = 0
    short: int = 0
    long: int = 0
    side: int = 0
    height: int = 0
    special_throws: int = 0
    line_throws: int = 0
    catches: int = 0
    catch_plus_aura: int = 0
    drop: int = 0
    miss: int = 0
    two_hands: int = 0
    body: int = 0
    fifa_attempts: int = 0
    fifa_success: int = 0
    good_kick: int = 0
    bad_kick: int = 0
    blunders: int = 0
    aura: int = 0
    hit_streak: int = 0
    currently_on_fire: bool = False
    on_fire_count: int = 0

    model_config = {"from_attributes": True}


class TeamScoresInfo(BaseModel):
    """Team totals, derived from player scores."""
    team1: int
    team2: int

    model_config = {"from_attributes": True}


class RecentPlayInfo(BaseModel):
    """A play in the live feed."""
    player_id: str
    throw_type: str
    team: str
    points: int
    timestamp: float
    defense_type: Optional[str] = None
    defender_ids: list[str] = Field(default_factory=list)
    fifa: Optional[dict[str, Any]] = None
    redemption: Optional[dict[str, Any]] = None

    model_config = {"from_attributes": True}


class MatchSetupInfo(BaseModel):
    """Per-match configuration."""
    score_limit: int
    win_by_two: bool
    sink_points: int
    arena: str
    title: str = ""
    team_names: dict[str, str] = Field(default_factory=dict)
    player_names: dict[str, str] = Field(default_factory=dict)


class ParticipantInfo(BaseModel):
    identity: str
    display_name: Optional[str] = None
    team: Optional[str] = None
    role: str = "player"

    model_config = {"from_attributes": True}


# =============================================================================
# Request Models
# =============================================================================

class CreateMatchRequest(BaseModel):
    """Request to create a new match."""
    creator_id: str = Field(..., description="Identity of the creating user")
    title: str = Field("", description="Match title")
    location: Optional[str] = Field(None, description="Arena name")
    score_limit: int = Field(
        DEFAULT_SCORE_LIMIT, gt=0,
        description=f"Points needed to win, usually one of {SCORE_LIMIT_OPTIONS}",
    )
    win_by_two: bool = Field(DEFAULT_WIN_BY_TWO, description="Require a two point lead")
    sink_points: int = Field(DEFAULT_SINK_POINTS, description="Points for a sink (3 or 5)")
    team_names: Optional[dict[str, str]] = Field(
        None, description="Mapping of team1/team2 to display names"
    )
    player_names: Optional[dict[str, str]] = Field(
        None, description="Mapping of position (1-4) to display names"
    )


class JoinMatchRequest(BaseModel):
    """Request to join a match by room code."""
    room_code: str = Field(..., description="Six character room code, e.g. K04217")
    identity: str = Field(..., description="Identity of the joining user")
    display_name: Optional[str] = None


class JoinSlotRequest(BaseModel):
    """Request to seat an identity at a position."""
    identity: str
    position: int = Field(..., ge=1, le=4)
    requested_by: str = Field(..., description="Identity of the controller")


class LeaveMatchRequest(BaseModel):
    identity: str


class StatusChangeRequest(BaseModel):
    """Request to change the match status."""
    action: StatusAction
    requested_by: str = Field(..., description="Identity of the controller")


class FifaKickRequest(BaseModel):
    kind: str = Field(..., description="good_kick or bad_kick")
    success: Optional[bool] = Field(
        None, description="Defaults to true for good kicks"
    )


class RedemptionRequest(BaseModel):
    target_identity: Optional[str] = None
    success: bool = False


class SubmitPlayRequest(BaseModel):
    """A single play."""
    player_id: str = Field(..., description="Thrower identity or slot identity")
    throw_type: str = Field(..., description="table, line, hit, knicker, goal, dink, sink, ...")
    team: str = Field(..., description="Team the client believes the thrower plays for")
    defender_ids: list[str] = Field(default_factory=list)
    defense_type: Optional[str] = Field(
        None, description="catch, catch_plus_aura, drop, miss, two_hands, body"
    )
    fifa: Optional[FifaKickRequest] = None
    redemption: Optional[RedemptionRequest] = None


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class LiveMatchStateResponse(BaseModel):
    """Complete live state of a match."""
    match_id: str
    room_code: str
    status: MatchStatusValue
    match_setup: MatchSetupInfo
    players: list[PlayerStatsInfo] = Field(default_factory=list)
    player_map: dict[str, int] = Field(default_factory=dict)
    team_scores: TeamScoresInfo
    recent_plays: list[RecentPlayInfo] = Field(default_factory=list)
    latest_play: Optional[RecentPlayInfo] = None
    version: int = 0
    api_version: str = "v1"


class MatchResponse(BaseModel):
    """A match record."""
    match_id: str
    room_code: str
    creator_id: str
    title: str = ""
    status: MatchStatusValue
    match_setup: MatchSetupInfo
    participants: list[ParticipantInfo] = Field(default_factory=list)
    created_at: float
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    winner: Optional[str] = None
    api_version: str = "v1"


class PlayResultResponse(BaseModel):
    """Response after a play is applied."""
    success: bool
    match_id: str
    points: int = 0
    state_changes: list[str] = Field(default_factory=list)
    team_scores: TeamScoresInfo
    status: MatchStatusValue
    live_state: Optional[LiveMatchStateResponse] = None
    api_version: str = "v1"


class PlayerMatchStatsResponse(BaseModel):
    """Counters and performance figures for one participant."""
    match_id: str
    identity: str
    position: int
    team: str
    stats: dict[str, Any]
    api_version: str = "v1"


class MatchListResponse(BaseModel):
    matches: list[str]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
