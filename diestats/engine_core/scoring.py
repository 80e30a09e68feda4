"""
Scoring - Team totals, winners and per-player performance figures.

Team scores are never stored; they are summed from the positions'
scores every time they are asked for.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from .state import LiveMatchState, PlayerStats, TeamId, POSITIONS, positions_for_team


@dataclass(frozen=True)
class TeamScores:
    team1: int
    team2: int

    def for_team(self, team: TeamId) -> int:
        return self.team1 if team is TeamId.TEAM1 else self.team2

    def to_dict(self) -> dict[str, int]:
        return {"team1": self.team1, "team2": self.team2}


def compute_team_scores(state: LiveMatchState) -> TeamScores:
    """Sum player scores per team."""
    totals = {
        team: sum(state.stats_at(p).score for p in positions_for_team(team))
        for team in TeamId
    }
    return TeamScores(team1=totals[TeamId.TEAM1], team2=totals[TeamId.TEAM2])


def determine_winner(state: LiveMatchState) -> TeamId | None:
    """
    The team that has won on score, if any.

    A team wins once it reaches the score limit; with win-by-two
    it must also lead by at least two.
    """
    scores = compute_team_scores(state)
    limit = state.setup.score_limit
    for team in TeamId:
        own = scores.for_team(team)
        other = scores.for_team(team.opponent)
        if own < limit or own <= other:
            continue
        if state.setup.win_by_two and own - other < 2:
            continue
        return team
    return None


# =============================================================================
# Player performance
# =============================================================================

MVP_WEIGHTS = {
    "score": 1.0,
    "hits": 0.5,
    "goals": 2.0,
    "dinks": 2.0,
    "sinks": 4.0,
    "knickers": 0.8,
    "longest_streak": 0.5,
    "on_fire_count": 1.5,
    "catches": 1.0,
    "catch_rate": 2.0,
    "fifa_success": 1.5,
    "blunder_penalty": -0.5,
    "throw_efficiency": 1.0,
}

MVP_MIN_THROWS = 3


def _rate(successes: int, attempts: int) -> float:
    if attempts <= 0 or successes < 0:
        return 0.0
    if successes > attempts:
        return 1.0
    return round(successes / attempts, 4)


def catch_attempts(stats: PlayerStats) -> int:
    return stats.catches + stats.drop + stats.miss + stats.two_hands + stats.body


def hit_rate(stats: PlayerStats) -> float:
    return _rate(stats.hits, stats.throws)


def catch_rate(stats: PlayerStats) -> float:
    return _rate(stats.catches, catch_attempts(stats))


def efficiency(stats: PlayerStats) -> float:
    """Points per throw."""
    if stats.throws == 0:
        return 0.0
    return round(stats.score / stats.throws, 3)


def mvp_score(stats: PlayerStats) -> float:
    w = MVP_WEIGHTS
    total = stats.score * w["score"]
    total += stats.hits * w["hits"]
    total += stats.goal * w["goals"]
    total += stats.dink * w["dinks"]
    total += stats.sink * w["sinks"]
    total += stats.knicker * w["knickers"]
    # Live stats only know the current streak
    total += stats.hit_streak * w["longest_streak"]
    total += stats.on_fire_count * w["on_fire_count"]
    total += stats.catches * w["catches"]

    attempts = catch_attempts(stats)
    if attempts > 0:
        rate = stats.catches / attempts
        if rate > 0.5:
            total += rate * w["catch_rate"]

    if stats.fifa_attempts > 0:
        total += (stats.fifa_success / stats.fifa_attempts) * w["fifa_success"]

    if stats.throws > 0:
        total += (stats.hits / stats.throws) * w["throw_efficiency"]

    total += stats.blunders * w["blunder_penalty"]
    return max(0.0, round(total, 2))


def performance_rating(stats: PlayerStats) -> int:
    """0-100 rating from accuracy, efficiency, defense and streaks."""
    if stats.throws == 0:
        return 0
    accuracy = (stats.hits / stats.throws) * 40
    scoring = (stats.score / stats.throws) * 30
    attempts = catch_attempts(stats)
    defense = (stats.catches / attempts) * 20 if attempts > 0 else 10
    streak_bonus = min(stats.on_fire_count * 2, 10)
    return min(100, max(0, round(accuracy + scoring + defense + streak_bonus)))


def player_performance(stats: PlayerStats) -> dict[str, Any]:
    """Counters plus derived figures for one position."""
    return {
        **stats.to_dict(),
        "catch_attempts": catch_attempts(stats),
        "hit_rate": hit_rate(stats),
        "catch_rate": catch_rate(stats),
        "efficiency": efficiency(stats),
        "mvp_score": mvp_score(stats),
        "performance_rating": performance_rating(stats),
    }


def select_mvp(state: LiveMatchState) -> int | None:
    """Position with the best MVP score among players with enough throws."""
    candidates = [
        p for p in POSITIONS if state.stats_at(p).throws >= MVP_MIN_THROWS
    ]
    if not candidates:
        return None
    # Earliest position wins ties
    return max(candidates, key=lambda p: (mvp_score(state.stats_at(p)), -p))
