"""
Match Lifecycle - Status transitions for a match.

    waiting -> active <-> paused
    active  -> ended        (explicit end or self-sink)
    active  -> abandoned    (abort; also from waiting or paused)

Only an active match accepts plays.
"""

from __future__ import annotations
import logging

from .state import LiveMatchState, MatchStatus, positions_for_team
from .play import PlayResult, ErrorKind
from .resolver import Resolution

logger = logging.getLogger(__name__)


TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.WAITING: frozenset({MatchStatus.ACTIVE, MatchStatus.ABANDONED}),
    MatchStatus.ACTIVE: frozenset({MatchStatus.PAUSED, MatchStatus.ENDED, MatchStatus.ABANDONED}),
    MatchStatus.PAUSED: frozenset({MatchStatus.ACTIVE, MatchStatus.ABANDONED}),
    MatchStatus.ENDED: frozenset(),
    MatchStatus.ABANDONED: frozenset(),
}


def accepts_plays(status: MatchStatus) -> bool:
    return status is MatchStatus.ACTIVE


class MatchLifecycle:
    """
    Validates and applies status changes.

    Authorization is decided by the caller; the lifecycle only
    knows which transitions exist.
    """

    def can_transition(self, current: MatchStatus, target: MatchStatus) -> bool:
        return target in TRANSITIONS[current]

    def check(self, current: MatchStatus, target: MatchStatus) -> str | None:
        """Return an error message if the transition is not allowed."""
        if current is target:
            return f"Match is already {current.value}"
        if not self.can_transition(current, target):
            return f"Cannot move match from {current.value} to {target.value}"
        return None

    def transition(self, state: LiveMatchState, target: MatchStatus) -> PlayResult:
        """Move the live state to a new status."""
        error = self.check(state.status, target)
        if error:
            return PlayResult.failure(
                error,
                ErrorKind.INVALID_TRANSITION,
                match_id=state.match_id,
                action="transition",
            )
        logger.info(
            "Match %s: %s -> %s", state.match_id, state.status.value, target.value
        )
        return PlayResult.success_with_state(
            state.with_status(target),
            changes=[f"Match {target.value}"],
        )

    def self_sink_win(self, state: LiveMatchState, resolution: Resolution) -> LiveMatchState:
        """
        The thrower's team loses on the spot.

        Every opposing position is put on the score limit and the
        match ends without an explicit end request.
        """
        limit = state.setup.score_limit
        for position in positions_for_team(resolution.opposing_team):
            state = state.with_stats(position, state.stats_at(position).with_score(limit))
        logger.info(
            "Match %s ended by self-sink from position %d",
            state.match_id, resolution.thrower_position,
        )
        return state.with_status(MatchStatus.ENDED)
