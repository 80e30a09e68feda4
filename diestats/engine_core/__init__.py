"""
Engine Core - Deterministic live-match state and play resolution.

The engine is the runtime that:
1. Builds a LiveMatchState for a match
2. Resolves submitted plays into points and mechanics
3. Accumulates per-position counters and streaks
4. Derives team scores on demand
5. Governs status transitions
"""

from .state import (
    LiveMatchState, PlayerStats, MatchSetup, MatchStatus, TeamId, RecordedPlay,
    team_for_position, positions_for_team, slot_identity,
)
from .play import (
    PlaySubmission, PlayResult, ErrorKind, ThrowType, DefenseType, KickType,
    FifaKick, Redemption, PlayerRef, Registered, UnregisteredSlot, parse_player_ref,
)
from .initialize import Participant, MatchConfig, initialize_live_match_state
from .resolver import PlayResolver, Resolution, resolve_play
from .accumulator import StatsAccumulator
from .scoring import TeamScores, compute_team_scores, determine_winner
from .lifecycle import MatchLifecycle
from .reducer import Reducer, apply_play

__all__ = [
    "LiveMatchState",
    "PlayerStats",
    "MatchSetup",
    "MatchStatus",
    "TeamId",
    "RecordedPlay",
    "team_for_position",
    "positions_for_team",
    "slot_identity",
    "PlaySubmission",
    "PlayResult",
    "ErrorKind",
    "ThrowType",
    "DefenseType",
    "KickType",
    "FifaKick",
    "Redemption",
    "PlayerRef",
    "Registered",
    "UnregisteredSlot",
    "parse_player_ref",
    "Participant",
    "MatchConfig",
    "initialize_live_match_state",
    "PlayResolver",
    "Resolution",
    "resolve_play",
    "StatsAccumulator",
    "TeamScores",
    "compute_team_scores",
    "determine_winner",
    "MatchLifecycle",
    "Reducer",
    "apply_play",
]
