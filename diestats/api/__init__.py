"""
API Module - Scorekeeping client interface.

Exposes the engine via REST API. A client:
1. Creates a match and shares its room code
2. Joins players into the four positions
3. Starts the match and submits plays
4. Polls the live state for scores and the recent-play feed
"""

from .schemas import (
    # Requests
    CreateMatchRequest,
    JoinMatchRequest,
    JoinSlotRequest,
    StatusChangeRequest,
    SubmitPlayRequest,
    # Responses
    ErrorResponse,
    LiveMatchStateResponse,
    MatchResponse,
    PlayResultResponse,
    PlayerMatchStatsResponse,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateMatchRequest",
    "JoinMatchRequest",
    "JoinSlotRequest",
    "StatusChangeRequest",
    "SubmitPlayRequest",
    # Responses
    "ErrorResponse",
    "LiveMatchStateResponse",
    "MatchResponse",
    "PlayResultResponse",
    "PlayerMatchStatsResponse",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
