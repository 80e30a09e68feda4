"""
Stats Accumulator - Applies a resolved play to per-position counters.

Each helper takes a PlayerStats and returns an updated copy; the
StatsAccumulator threads those copies through a LiveMatchState.
"""

from __future__ import annotations
from dataclasses import replace

from .state import LiveMatchState, PlayerStats, positions_for_team
from .play import (
    PlaySubmission, ThrowType, DefenseType, KickType, FifaKick,
    GOOD_THROWS, STREAK_BREAKERS,
)
from .resolver import Resolution


ON_FIRE_THRESHOLD = 3

THROW_COUNTERS: dict[ThrowType, tuple[str, ...]] = {
    ThrowType.TABLE: ("table_die",),
    ThrowType.LINE: ("line", "line_throws"),
    ThrowType.HIT: ("hit", "hits"),
    ThrowType.KNICKER: ("knicker", "hits", "special_throws"),
    ThrowType.GOAL: ("goal", "hits"),
    ThrowType.DINK: ("dink", "hits", "special_throws"),
    ThrowType.SINK: ("sink", "hits", "special_throws"),
    ThrowType.SHORT: ("short", "blunders"),
    ThrowType.LONG: ("long", "blunders"),
    ThrowType.SIDE: ("side", "blunders"),
    ThrowType.HEIGHT: ("height", "blunders"),
}

DEFENSE_COUNTERS: dict[DefenseType, tuple[str, ...]] = {
    DefenseType.CATCH: ("catches",),
    DefenseType.CATCH_PLUS_AURA: ("catch_plus_aura", "catches", "aura"),
    DefenseType.DROP: ("drop", "blunders"),
    DefenseType.MISS: ("miss", "blunders"),
    DefenseType.TWO_HANDS: ("two_hands", "blunders"),
    DefenseType.BODY: ("body", "blunders"),
}


def apply_throw(stats: PlayerStats, throw_type: ThrowType, points: int) -> PlayerStats:
    """Count the throw, update the streak, and add any points earned."""
    stats = stats.incremented("throws", *THROW_COUNTERS.get(throw_type, ()))

    if throw_type in GOOD_THROWS:
        streak = stats.hit_streak + 1
        stats = replace(stats, hit_streak=streak)
        # Only the throw that reaches the threshold ignites
        if streak == ON_FIRE_THRESHOLD:
            stats = replace(
                stats, currently_on_fire=True, on_fire_count=stats.on_fire_count + 1
            )
    elif throw_type in STREAK_BREAKERS:
        stats = replace(stats, hit_streak=0, currently_on_fire=False)

    if points > 0:
        stats = stats.with_score(stats.score + points)
    return stats


def apply_defense(stats: PlayerStats, defense_type: DefenseType) -> PlayerStats:
    return stats.incremented(*DEFENSE_COUNTERS[defense_type])


def apply_fifa(stats: PlayerStats, kick: FifaKick) -> PlayerStats:
    """Record the thrower's kick attempt."""
    counters = ["fifa_attempts"]
    counters.append("good_kick" if kick.kind is KickType.GOOD_KICK else "bad_kick")
    if kick.is_success:
        counters.append("fifa_success")
    return stats.incremented(*counters)


def apply_fifa_save(stats: PlayerStats) -> PlayerStats:
    """A defender's share of a FIFA save: one point and one success."""
    return stats.incremented("fifa_success").with_score(stats.score + 1)


def apply_redemption_penalty(stats: PlayerStats) -> PlayerStats:
    return stats.with_score(stats.score - 1)


class StatsAccumulator:
    """
    Applies resolved plays to a live state.

    Stateless - returns a new LiveMatchState every call.
    """

    def apply(
        self,
        state: LiveMatchState,
        submission: PlaySubmission,
        resolution: Resolution,
    ) -> LiveMatchState:
        thrower = resolution.thrower_position

        state = state.with_stats(
            thrower,
            apply_throw(state.stats_at(thrower), submission.throw_type, resolution.points),
        )

        if submission.defense_type is not None:
            for position in resolution.defender_positions:
                state = state.with_stats(
                    position, apply_defense(state.stats_at(position), submission.defense_type)
                )

        if submission.fifa is not None:
            state = state.with_stats(thrower, apply_fifa(state.stats_at(thrower), submission.fifa))

        if resolution.fifa_save:
            for position in resolution.defender_positions:
                state = state.with_stats(position, apply_fifa_save(state.stats_at(position)))

        return state

    def apply_redemption(self, state: LiveMatchState, resolution: Resolution) -> LiveMatchState:
        """Take one point from every opposing position, never below zero."""
        for position in positions_for_team(resolution.opposing_team):
            state = state.with_stats(position, apply_redemption_penalty(state.stats_at(position)))
        return state
