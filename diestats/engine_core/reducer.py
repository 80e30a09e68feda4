"""
Reducer - Applies plays to live match state.

The reducer is the single point of play-driven state change.
All plays must go through apply_play().

Design principles:
- Pure function: (state, submission) -> new_state
- Validates before applying
- Returns PlayResult with success/failure
- Delegates points to PlayResolver, counters to StatsAccumulator
  and status changes to MatchLifecycle
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import logging
import time

from .state import LiveMatchState, RecordedPlay
from .play import (
    PlaySubmission, PlayResult, ErrorKind, SlotIdentityError,
    parse_player_ref, position_for_ref,
)
from .resolver import PlayResolver
from .accumulator import StatsAccumulator
from .lifecycle import MatchLifecycle, accepts_plays

logger = logging.getLogger(__name__)


@dataclass
class Reducer:
    """
    Reducer applies plays to a live match state.

    Stateless - all state is in LiveMatchState.
    """
    resolver: PlayResolver = field(default_factory=PlayResolver)
    accumulator: StatsAccumulator = field(default_factory=StatsAccumulator)
    lifecycle: MatchLifecycle = field(default_factory=MatchLifecycle)
    clock: Callable[[], float] = time.time

    def apply(self, state: LiveMatchState, submission: PlaySubmission) -> PlayResult:
        """
        Apply a play to the live state.

        Returns PlayResult with new state or error. A rejected play
        never changes the state it was given.
        """
        if not accepts_plays(state.status):
            return PlayResult.failure(
                "Cannot submit plays to an inactive match",
                ErrorKind.INACTIVE_MATCH,
                match_id=state.match_id,
                action="submit_play",
                status=state.status.value,
            )

        try:
            ref = parse_player_ref(submission.player_id, state.player_map)
        except SlotIdentityError as e:
            return PlayResult.failure(
                str(e),
                ErrorKind.MALFORMED_SLOT_IDENTITY,
                match_id=state.match_id,
                action="submit_play",
                player_id=submission.player_id,
            )

        position = position_for_ref(ref, state.player_map)
        if position is None:
            return PlayResult.failure(
                f"Player {submission.player_id} not found in match",
                ErrorKind.UNRESOLVED_THROWER,
                match_id=state.match_id,
                action="submit_play",
                player_id=submission.player_id,
            )

        resolution = self.resolver.resolve(submission, state, position)
        new_state = self.accumulator.apply(state, submission, resolution)

        if resolution.self_sink:
            new_state = self.lifecycle.self_sink_win(new_state, resolution)
        if resolution.redemption:
            new_state = self.accumulator.apply_redemption(new_state, resolution)

        new_state = new_state.with_play(
            RecordedPlay(
                player_id=submission.player_id,
                throw_type=submission.throw_type.value,
                team=submission.team,
                points=resolution.points,
                timestamp=self.clock(),
                defense_type=submission.defense_type.value if submission.defense_type else None,
                defender_ids=tuple(submission.defender_ids),
                fifa=submission.fifa.to_dict() if submission.fifa else None,
                redemption=submission.redemption.to_dict() if submission.redemption else None,
            )
        )

        name = new_state.stats_at(position).name
        changes = [f"{name} threw {submission.throw_type.value} for {resolution.points}"]
        changes.extend(f"{mechanic} applied" for mechanic in resolution.mechanics)
        logger.debug(
            "Match %s: position %d %s -> %d points %s",
            state.match_id, position, submission.throw_type.value,
            resolution.points, resolution.mechanics,
        )

        return PlayResult.success_with_state(new_state, changes=changes, points=resolution.points)


def apply_play(state: LiveMatchState, submission: PlaySubmission) -> PlayResult:
    """
    Convenience function to apply a play.

    Creates a Reducer and applies the play.
    """
    return Reducer().apply(state, submission)
