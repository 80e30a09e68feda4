"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to manager calls
2. Converts engine results to response models
3. Turns engine failures into ErrorResponse

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from .schemas import (
    # Requests
    CreateMatchRequest,
    JoinMatchRequest,
    JoinSlotRequest,
    LeaveMatchRequest,
    StatusChangeRequest,
    SubmitPlayRequest,
    # Responses
    ErrorResponse,
    LiveMatchStateResponse,
    MatchResponse,
    PlayResultResponse,
    PlayerMatchStatsResponse,
    # Shared
    MatchSetupInfo,
    ParticipantInfo,
    PlayerStatsInfo,
    RecentPlayInfo,
    TeamScoresInfo,
    # Enums
    ErrorCode,
    StatusAction,
)
from ..engine_core.state import (
    LiveMatchState, MatchSetup, POSITIONS, team_for_position,
)
from ..engine_core.play import (
    PlaySubmission, PlayResult, ThrowType, DefenseType, KickType,
    FifaKick, Redemption,
)
from ..engine_core.scoring import compute_team_scores
from ..session import MatchManager, MatchRecord

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Create a match
        match = service.create_match(request)

        # Submit a play
        result = service.submit_play(match_id, play_request)
    """
    manager: MatchManager = field(default_factory=MatchManager)

    # =========================================================================
    # Matches
    # =========================================================================

    def create_match(self, request: CreateMatchRequest) -> MatchResponse | ErrorResponse:
        try:
            player_names = {
                int(position): name
                for position, name in (request.player_names or {}).items()
            }
        except ValueError:
            return self._validation_error("player_names keys must be positions 1-4")
        if not set(player_names) <= set(POSITIONS):
            return self._validation_error("player_names keys must be positions 1-4")

        result = self.manager.create_match(
            creator_id=request.creator_id,
            title=request.title,
            location=request.location,
            score_limit=request.score_limit,
            win_by_two=request.win_by_two,
            sink_points=request.sink_points,
            team_names=request.team_names,
            player_names=player_names,
        )
        if not result.success:
            return self._error_from_result(result)
        return self._record_to_response(result.data)

    def get_match(self, match_id: str) -> MatchResponse | ErrorResponse:
        record = self.manager.get_match(match_id)
        if record is None:
            return self._not_found()
        return self._record_to_response(record)

    def list_matches(self) -> list[str]:
        return self.manager.list_matches()

    def join_match(self, request: JoinMatchRequest) -> MatchResponse | ErrorResponse:
        result = self.manager.join_by_code(
            request.room_code, request.identity, request.display_name
        )
        if not result.success:
            return self._error_from_result(result)
        return self._record_to_response(result.data)

    def join_slot(self, match_id: str, request: JoinSlotRequest) -> MatchResponse | ErrorResponse:
        result = self.manager.join_slot(
            match_id, request.identity, request.position, request.requested_by
        )
        if not result.success:
            return self._error_from_result(result)
        return self._record_to_response(result.data)

    def leave_match(self, match_id: str, request: LeaveMatchRequest) -> MatchResponse | ErrorResponse:
        result = self.manager.leave_match(match_id, request.identity)
        if not result.success:
            return self._error_from_result(result)
        return self._record_to_response(result.data)

    def change_status(
        self, match_id: str, request: StatusChangeRequest
    ) -> MatchResponse | ErrorResponse:
        handlers = {
            StatusAction.START: self.manager.start_match,
            StatusAction.PAUSE: self.manager.pause_match,
            StatusAction.RESUME: self.manager.resume_match,
            StatusAction.END: self.manager.end_match,
            StatusAction.ABANDON: self.manager.abandon_match,
        }
        result = handlers[request.action](match_id, request.requested_by)
        if not result.success:
            return self._error_from_result(result)
        return self._record_to_response(result.data)

    # =========================================================================
    # Plays and live state
    # =========================================================================

    def submit_play(
        self, match_id: str, request: SubmitPlayRequest
    ) -> PlayResultResponse | ErrorResponse:
        try:
            submission = self._request_to_submission(request)
        except ValueError as e:
            return self._validation_error(str(e))

        result = self.manager.submit_play(match_id, submission)
        if not result.success:
            return self._error_from_result(result)

        state = result.new_state
        return PlayResultResponse(
            success=True,
            match_id=match_id,
            points=result.points,
            state_changes=result.state_changes,
            team_scores=TeamScoresInfo(**compute_team_scores(state).to_dict()),
            status=state.status.value,
            live_state=self._state_to_response(state),
        )

    def get_live_state(self, match_id: str) -> LiveMatchStateResponse | ErrorResponse:
        state = self.manager.get_live_match_state(match_id)
        if state is None:
            return self._not_found("Live match data not found")
        return self._state_to_response(state)

    def get_team_scores(self, match_id: str) -> TeamScoresInfo | ErrorResponse:
        result = self.manager.get_team_scores(match_id)
        if not result.success:
            return self._error_from_result(result)
        return TeamScoresInfo(**result.data.to_dict())

    def get_player_stats(
        self, match_id: str, identity: str
    ) -> PlayerMatchStatsResponse | ErrorResponse:
        result = self.manager.get_player_match_stats(match_id, identity)
        if not result.success:
            return self._error_from_result(result)
        stats = dict(result.data)
        return PlayerMatchStatsResponse(
            match_id=match_id,
            identity=identity,
            position=stats.pop("position"),
            team=stats.pop("team"),
            stats=stats,
        )

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _request_to_submission(self, request: SubmitPlayRequest) -> PlaySubmission:
        """
        Convert a play request to a PlaySubmission.

        Raises:
            ValueError: unknown throw, defense or kick type
        """
        fifa = None
        if request.fifa is not None:
            fifa = FifaKick(kind=KickType(request.fifa.kind), success=request.fifa.success)
        redemption = None
        if request.redemption is not None:
            redemption = Redemption(
                target_identity=request.redemption.target_identity,
                success=request.redemption.success,
            )
        return PlaySubmission(
            player_id=request.player_id,
            throw_type=ThrowType(request.throw_type),
            team=request.team,
            defender_ids=tuple(request.defender_ids),
            defense_type=DefenseType.parse(request.defense_type) if request.defense_type else None,
            fifa=fifa,
            redemption=redemption,
        )

    def _setup_to_info(self, setup: MatchSetup) -> MatchSetupInfo:
        return MatchSetupInfo(
            score_limit=setup.score_limit,
            win_by_two=setup.win_by_two,
            sink_points=setup.sink_points,
            arena=setup.arena,
            title=setup.title,
            team_names=dict(setup.team_names),
            player_names={str(p): n for p, n in setup.player_names.items()},
        )

    def _record_to_response(self, record: MatchRecord) -> MatchResponse:
        """Convert MatchRecord to MatchResponse."""
        return MatchResponse(
            match_id=record.match_id,
            room_code=record.room_code,
            creator_id=record.creator_id,
            title=record.title,
            status=record.status.value,
            match_setup=self._setup_to_info(record.setup),
            participants=[ParticipantInfo.model_validate(p) for p in record.participants],
            created_at=record.created_at,
            started_at=record.started_at,
            ended_at=record.ended_at,
            winner=record.winner.value if record.winner else None,
        )

    def _state_to_response(self, state: LiveMatchState) -> LiveMatchStateResponse:
        """Convert LiveMatchState to LiveMatchStateResponse."""
        players = []
        for position in POSITIONS:
            stats = state.stats_at(position)
            players.append(
                PlayerStatsInfo(
                    position=position,
                    team=team_for_position(position).value,
                    identity=state.identity_at(position),
                    **stats.to_dict(),
                )
            )
        plays = [RecentPlayInfo(**play.to_dict()) for play in state.recent_plays]
        return LiveMatchStateResponse(
            match_id=state.match_id,
            room_code=state.room_code,
            status=state.status.value,
            match_setup=self._setup_to_info(state.setup),
            players=players,
            player_map=dict(state.player_map),
            team_scores=TeamScoresInfo(**compute_team_scores(state).to_dict()),
            recent_plays=plays,
            latest_play=plays[-1] if plays else None,
            version=state.version,
        )

    def _error_from_result(self, result: PlayResult) -> ErrorResponse:
        return ErrorResponse(
            error=result.error or "Unknown error",
            error_code=ErrorCode(result.error_code.value),
            details=result.context or None,
        )

    def _not_found(self, message: str = "Match not found") -> ErrorResponse:
        return ErrorResponse(error=message, error_code=ErrorCode.MATCH_NOT_FOUND)

    def _validation_error(self, message: str) -> ErrorResponse:
        logger.warning("Rejected request: %s", message)
        return ErrorResponse(error=message, error_code=ErrorCode.VALIDATION_ERROR)
