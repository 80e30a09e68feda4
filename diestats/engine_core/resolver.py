"""
Play Resolver - Decides what a play is worth and which mechanics fire.

Pure: (submission, state, thrower position) -> Resolution. Nothing here
touches counters; the accumulator and lifecycle act on the Resolution.

Resolution order, all evaluated against the same submission:
1. Base points by throw type
2. Successful defense negates the throw
3. FIFA save for the defenders
4. Self-sink hands the opposing team the win
5. Successful redemption cancels the thrower's points and
   costs every opposing position one point
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .state import LiveMatchState, TeamId, team_for_position
from .play import (
    PlaySubmission, ThrowType, KickType, BAD_THROWS, SUCCESSFUL_DEFENSES,
    SlotIdentityError, parse_player_ref, position_for_ref,
)

logger = logging.getLogger(__name__)


BASE_POINTS: dict[ThrowType, int] = {
    ThrowType.HIT: 1,
    ThrowType.KNICKER: 1,
    ThrowType.GOAL: 2,
    ThrowType.DINK: 2,
    ThrowType.FIFA_SAVE: 1,
}


def base_points(throw_type: ThrowType, sink_points: int) -> int:
    """Points a throw is worth before defense and special actions."""
    if throw_type is ThrowType.SINK:
        return sink_points
    return BASE_POINTS.get(throw_type, 0)


@dataclass(frozen=True)
class Resolution:
    """Everything the accumulator needs to apply one play."""
    thrower_position: int
    thrower_team: TeamId
    base_points: int
    points: int
    defender_positions: tuple[int, ...] = ()
    defense_negated: bool = False
    fifa_save: bool = False
    self_sink: bool = False
    redemption: bool = False

    @property
    def opposing_team(self) -> TeamId:
        return self.thrower_team.opponent

    @property
    def mechanics(self) -> list[str]:
        fired = []
        if self.defense_negated:
            fired.append("defense")
        if self.fifa_save:
            fired.append("fifa_save")
        if self.self_sink:
            fired.append("self_sink")
        if self.redemption:
            fired.append("redemption")
        return fired


class PlayResolver:
    """
    Resolves submissions against a live state.

    Stateless - all state is in LiveMatchState.
    """

    def resolve(
        self,
        submission: PlaySubmission,
        state: LiveMatchState,
        thrower_position: int,
    ) -> Resolution:
        thrower_team = team_for_position(thrower_position)
        if submission.team and submission.team != thrower_team.value:
            logger.warning(
                "Play for %s submitted as %s but position %d plays for %s",
                submission.player_id, submission.team, thrower_position, thrower_team.value,
            )

        points = base_points(submission.throw_type, state.setup.sink_points)
        base = points

        defense_negated = submission.defense_type in SUCCESSFUL_DEFENSES
        if defense_negated:
            points = 0

        defenders = self.resolve_defenders(submission, state)
        fifa_save = self._is_fifa_save(submission, defenders)

        self_sink = submission.throw_type is ThrowType.SELF_SINK

        redemption = bool(submission.redemption and submission.redemption.success)
        if redemption:
            points = 0

        if self_sink and redemption:
            logger.warning(
                "Self-sink and redemption both fired for %s in match %s",
                submission.player_id, state.match_id,
            )

        return Resolution(
            thrower_position=thrower_position,
            thrower_team=thrower_team,
            base_points=base,
            points=points,
            defender_positions=defenders,
            defense_negated=defense_negated,
            fifa_save=fifa_save,
            self_sink=self_sink,
            redemption=redemption,
        )

    def resolve_defenders(
        self, submission: PlaySubmission, state: LiveMatchState
    ) -> tuple[int, ...]:
        """Positions of the named defenders that can be resolved."""
        positions: list[int] = []
        for defender_id in submission.defender_ids:
            try:
                ref = parse_player_ref(defender_id, state.player_map)
            except SlotIdentityError as e:
                logger.warning("Skipping defender: %s", e)
                continue
            position = position_for_ref(ref, state.player_map)
            if position is None:
                logger.warning(
                    "Skipping defender %s: not in match %s", defender_id, state.match_id
                )
                continue
            if position not in positions:
                positions.append(position)
        return tuple(positions)

    def _is_fifa_save(
        self, submission: PlaySubmission, defenders: tuple[int, ...]
    ) -> bool:
        return (
            submission.throw_type in BAD_THROWS
            and submission.fifa is not None
            and submission.fifa.kind in (KickType.GOOD_KICK, KickType.BAD_KICK)
            and submission.defense_type in SUCCESSFUL_DEFENSES
            and len(submission.defender_ids) > 0
            and len(defenders) > 0
        )


def resolve_play(
    submission: PlaySubmission, state: LiveMatchState, thrower_position: int
) -> Resolution:
    """Convenience function to resolve a play."""
    return PlayResolver().resolve(submission, state, thrower_position)
