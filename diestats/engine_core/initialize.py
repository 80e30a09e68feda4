"""
Live state construction for a match.

Every match always has four positions. Real participants are placed
into them in the order they are supplied; positions nobody holds keep
their synthetic slot identity and configured display name.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .state import (
    LiveMatchState, MatchSetup, MatchStatus, PlayerStats, POSITIONS,
    DEFAULT_RECENT_PLAYS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participant:
    """A participant row as loaded from the match record."""
    identity: str
    display_name: str | None = None
    team: str | None = None
    role: str = "player"


@dataclass(frozen=True)
class MatchConfig:
    """The parts of the match record the live state is built from."""
    match_id: str
    room_code: str
    setup: MatchSetup
    status: MatchStatus = MatchStatus.WAITING
    recent_plays_limit: int = DEFAULT_RECENT_PLAYS

    def __post_init__(self):
        if self.recent_plays_limit < 1:
            raise ValueError(
                f"recent_plays_limit must be at least 1, got {self.recent_plays_limit}"
            )


def initialize_live_match_state(
    config: MatchConfig,
    participants: list[Participant],
    existing: LiveMatchState | None = None,
) -> LiveMatchState:
    """
    Build the live state for a match.

    Participants are assigned the lowest free position in the order
    given, so a fresh match maps the first participant to position 1.
    When an existing state is passed, its counters, assignments and
    recent plays are carried over and only newcomers are placed.

    Args:
        config: Match configuration
        participants: Ordered participants (at most four are placed)
        existing: Live state to extend instead of starting from zero

    Returns:
        LiveMatchState with all four positions populated
    """
    if existing is not None:
        state = existing
    else:
        state = LiveMatchState(
            match_id=config.match_id,
            room_code=config.room_code,
            setup=config.setup,
            status=config.status,
            player_stats={
                p: PlayerStats(name=config.setup.player_name(p)) for p in POSITIONS
            },
            recent_plays_limit=config.recent_plays_limit,
        )

    for participant in participants:
        if participant.identity in state.player_map:
            continue
        free = [p for p in POSITIONS if state.identity_at(p) is None]
        if not free:
            logger.warning(
                "Match %s is full, %s not placed", config.match_id, participant.identity
            )
            continue
        position = free[0]
        name = participant.display_name or config.setup.player_name(position)
        state = state.with_assignment(participant.identity, position, name)

    return state
