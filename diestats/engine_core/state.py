"""
Live Match State - Canonical container for one match's live data.

Design principles:
- Immutable-friendly: all mutations return new state
- Serializable: can be saved/loaded as a single document
- Positions are fixed: every match always has slots 1..4
- Team membership is derived from position, never stored
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace, asdict
from enum import Enum
from typing import Any


POSITIONS: tuple[int, ...] = (1, 2, 3, 4)

DEFAULT_SCORE_LIMIT = 11
SCORE_LIMIT_OPTIONS = (7, 11, 15, 21)
DEFAULT_SINK_POINTS = 3
SINK_POINTS_OPTIONS = (3, 5)
DEFAULT_WIN_BY_TWO = True
DEFAULT_ARENA = "The Grand Dome"
DEFAULT_RECENT_PLAYS = 10


class MatchStatus(Enum):
    """Match status values."""
    WAITING = "waiting"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in {MatchStatus.ENDED, MatchStatus.ABANDONED}


class TeamId(Enum):
    """The two sides of a match."""
    TEAM1 = "team1"
    TEAM2 = "team2"

    @property
    def opponent(self) -> TeamId:
        return TeamId.TEAM2 if self is TeamId.TEAM1 else TeamId.TEAM1


def team_for_position(position: int) -> TeamId:
    """Positions 1 and 2 play for team 1, positions 3 and 4 for team 2."""
    if position not in POSITIONS:
        raise ValueError(f"Invalid position: {position}")
    return TeamId.TEAM1 if position <= 2 else TeamId.TEAM2


def positions_for_team(team: TeamId) -> tuple[int, ...]:
    """Positions belonging to a team, in order."""
    return tuple(p for p in POSITIONS if team_for_position(p) is team)


def default_player_name(position: int) -> str:
    return f"Player {position}"


def default_team_name(team: TeamId) -> str:
    return "Team 1" if team is TeamId.TEAM1 else "Team 2"


def slot_identity(position: int, match_id: str | None = None) -> str:
    """Synthetic identity for a position no real participant holds yet."""
    return f"default_{match_id or 'temp'}_{position}"


@dataclass(frozen=True)
class PlayerStats:
    """
    Counters for one position.

    A value type: accumulator operations return updated copies.
    """
    name: str = ""

    # Throws
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

    # Defense
    catches: int = 0
    catch_plus_aura: int = 0
    drop: int = 0
    miss: int = 0
    two_hands: int = 0
    body: int = 0

    # FIFA
    fifa_attempts: int = 0
    fifa_success: int = 0
    good_kick: int = 0
    bad_kick: int = 0

    blunders: int = 0
    aura: int = 0

    # Streaks
    hit_streak: int = 0
    currently_on_fire: bool = False
    on_fire_count: int = 0

    score: int = 0

    def incremented(self, *counters: str) -> PlayerStats:
        """Return a copy with each named counter bumped by one."""
        changes: dict[str, int] = {}
        for counter in counters:
            changes[counter] = changes.get(counter, getattr(self, counter)) + 1
        return replace(self, **changes)

    def with_score(self, score: int) -> PlayerStats:
        """Return a copy with the score set, clamped at zero."""
        return replace(self, score=max(0, score))

    def renamed(self, name: str) -> PlayerStats:
        return replace(self, name=name)

    def counters(self) -> dict[str, int]:
        """All integer counters (streak flag and name excluded)."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in {"name", "currently_on_fire"}
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerStats:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class MatchSetup:
    """Per-match configuration. Fixed once the match is created."""
    score_limit: int = DEFAULT_SCORE_LIMIT
    win_by_two: bool = DEFAULT_WIN_BY_TWO
    sink_points: int = DEFAULT_SINK_POINTS
    arena: str = DEFAULT_ARENA
    title: str = ""
    team_names: dict[str, str] = field(default_factory=lambda: {
        t.value: default_team_name(t) for t in TeamId
    })
    player_names: dict[int, str] = field(default_factory=lambda: {
        p: default_player_name(p) for p in POSITIONS
    })

    def __post_init__(self):
        if self.sink_points not in SINK_POINTS_OPTIONS:
            raise ValueError(
                f"sink_points must be one of {SINK_POINTS_OPTIONS}, got {self.sink_points}"
            )
        if self.score_limit <= 0:
            raise ValueError(f"score_limit must be positive, got {self.score_limit}")
        unknown = set(self.player_names) - set(POSITIONS)
        if unknown:
            raise ValueError(f"player_names has unknown positions: {sorted(unknown)}")

    def team_name(self, team: TeamId) -> str:
        return self.team_names.get(team.value) or default_team_name(team)

    def player_name(self, position: int) -> str:
        return self.player_names.get(position) or default_player_name(position)


@dataclass(frozen=True)
class RecordedPlay:
    """A play as it was applied, kept for the live feed."""
    player_id: str
    throw_type: str
    team: str
    points: int
    timestamp: float
    defense_type: str | None = None
    defender_ids: tuple[str, ...] = ()
    fifa: dict[str, Any] | None = None
    redemption: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["defender_ids"] = list(self.defender_ids)
        return data


@dataclass
class LiveMatchState:
    """
    Complete live state of one match.

    This is the canonical state the engine operates on.
    All changes go through the reducer or the lifecycle and
    produce a new instance.
    """
    match_id: str
    room_code: str
    setup: MatchSetup = field(default_factory=MatchSetup)
    status: MatchStatus = MatchStatus.WAITING

    player_stats: dict[int, PlayerStats] = field(default_factory=dict)
    player_map: dict[str, int] = field(default_factory=dict)
    recent_plays: tuple[RecordedPlay, ...] = ()
    recent_plays_limit: int = DEFAULT_RECENT_PLAYS

    # Bumped on every committed write
    version: int = 0

    def __post_init__(self):
        if self.recent_plays_limit < 1:
            raise ValueError(
                f"recent_plays_limit must be at least 1, got {self.recent_plays_limit}"
            )
        if set(self.player_stats) != set(POSITIONS):
            missing = {
                p: PlayerStats(name=self.setup.player_name(p))
                for p in POSITIONS if p not in self.player_stats
            }
            extra = set(self.player_stats) - set(POSITIONS)
            if extra:
                raise ValueError(f"Unknown positions in player_stats: {sorted(extra)}")
            self.player_stats = {**self.player_stats, **missing}
        positions = list(self.player_map.values())
        if len(positions) != len(set(positions)):
            raise ValueError("Two identities cannot share a position")

    @property
    def latest_play(self) -> RecordedPlay | None:
        return self.recent_plays[-1] if self.recent_plays else None

    def stats_at(self, position: int) -> PlayerStats:
        return self.player_stats[position]

    def position_of(self, identity: str) -> int | None:
        return self.player_map.get(identity)

    def identity_at(self, position: int) -> str | None:
        for identity, pos in self.player_map.items():
            if pos == position:
                return identity
        return None

    def with_stats(self, position: int, stats: PlayerStats) -> LiveMatchState:
        """Return new state with one position's stats replaced."""
        new_stats = self.player_stats.copy()
        new_stats[position] = stats
        return self._copy_with(player_stats=new_stats)

    def with_status(self, status: MatchStatus) -> LiveMatchState:
        return self._copy_with(status=status)

    def with_play(self, play: RecordedPlay) -> LiveMatchState:
        """Return new state with the play appended to the bounded feed."""
        plays = (*self.recent_plays, play)[-self.recent_plays_limit:]
        return self._copy_with(recent_plays=plays)

    def with_assignment(self, identity: str, position: int, name: str) -> LiveMatchState:
        """Map an identity to a position, evicting any previous holder."""
        new_map = {
            ident: pos for ident, pos in self.player_map.items()
            if ident != identity and pos != position
        }
        new_map[identity] = position
        new_stats = self.player_stats.copy()
        new_stats[position] = new_stats[position].renamed(name)
        return self._copy_with(player_map=new_map, player_stats=new_stats)

    def bumped(self) -> LiveMatchState:
        """Return a copy marked as the next committed version."""
        return self._copy_with(version=self.version + 1)

    def without_identity(self, identity: str) -> LiveMatchState:
        new_map = {i: p for i, p in self.player_map.items() if i != identity}
        return self._copy_with(player_map=new_map)

    def _copy_with(self, **kwargs) -> LiveMatchState:
        """Create a copy with some fields replaced."""
        return LiveMatchState(
            match_id=kwargs.get("match_id", self.match_id),
            room_code=kwargs.get("room_code", self.room_code),
            setup=kwargs.get("setup", self.setup),
            status=kwargs.get("status", self.status),
            player_stats=kwargs.get("player_stats", self.player_stats),
            player_map=kwargs.get("player_map", self.player_map),
            recent_plays=kwargs.get("recent_plays", self.recent_plays),
            recent_plays_limit=kwargs.get("recent_plays_limit", self.recent_plays_limit),
            version=kwargs.get("version", self.version),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly document."""
        return {
            "match_id": self.match_id,
            "room_code": self.room_code,
            "status": self.status.value,
            "version": self.version,
            "match_setup": {
                "score_limit": self.setup.score_limit,
                "win_by_two": self.setup.win_by_two,
                "sink_points": self.setup.sink_points,
                "arena": self.setup.arena,
                "title": self.setup.title,
                "team_names": dict(self.setup.team_names),
                "player_names": {str(p): n for p, n in self.setup.player_names.items()},
            },
            "player_stats": {str(p): s.to_dict() for p, s in self.player_stats.items()},
            "player_map": dict(self.player_map),
            "recent_plays": [p.to_dict() for p in self.recent_plays],
        }
