"""
Play System - Submissions, player references, and results.

Plays represent one throw at the table together with its defense
and any special actions (FIFA kick, redemption). All live-state
changes caused by play flow through a PlaySubmission.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union
import re


class ThrowType(Enum):
    """Outcomes of a throw."""
    TABLE = "table"
    LINE = "line"
    HIT = "hit"
    KNICKER = "knicker"
    GOAL = "goal"
    DINK = "dink"
    SINK = "sink"

    # Bad throws
    SHORT = "short"
    LONG = "long"
    SIDE = "side"
    HEIGHT = "height"

    # Special
    FIFA_SAVE = "fifa_save"
    SELF_SINK = "self_sink"


class DefenseType(Enum):
    """Outcomes of a defense."""
    CATCH = "catch"
    CATCH_PLUS_AURA = "catch_plus_aura"
    DROP = "drop"
    MISS = "miss"
    TWO_HANDS = "two_hands"
    BODY = "body"

    @classmethod
    def parse(cls, value: str) -> DefenseType:
        # Older clients send "2hands"
        if value == "2hands":
            return cls.TWO_HANDS
        return cls(value)


class KickType(Enum):
    GOOD_KICK = "good_kick"
    BAD_KICK = "bad_kick"


GOOD_THROWS = frozenset({
    ThrowType.HIT, ThrowType.KNICKER, ThrowType.GOAL, ThrowType.DINK, ThrowType.SINK,
})
# Resets a streak
STREAK_BREAKERS = frozenset({
    ThrowType.SHORT, ThrowType.LONG, ThrowType.SIDE, ThrowType.HEIGHT, ThrowType.LINE,
})
# Qualifies for a FIFA save
BAD_THROWS = frozenset({
    ThrowType.SHORT, ThrowType.LONG, ThrowType.SIDE, ThrowType.HEIGHT,
})
SUCCESSFUL_DEFENSES = frozenset({DefenseType.CATCH, DefenseType.CATCH_PLUS_AURA})


class ErrorKind(Enum):
    """Structured error codes reported by the engine."""
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    INACTIVE_MATCH = "INACTIVE_MATCH"
    UNRESOLVED_THROWER = "UNRESOLVED_THROWER"
    MALFORMED_SLOT_IDENTITY = "MALFORMED_SLOT_IDENTITY"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"

    # Lifecycle and match management
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    ROOM_CODE_NOT_FOUND = "ROOM_CODE_NOT_FOUND"
    MATCH_NOT_JOINABLE = "MATCH_NOT_JOINABLE"
    MATCH_FULL = "MATCH_FULL"
    INVALID_POSITION = "INVALID_POSITION"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# Player references
# =============================================================================

SLOT_PREFIX = "default_"
_SLOT_PATTERN = re.compile(r"^default_(?:.*_)?(\d+)$")


class SlotIdentityError(ValueError):
    """An unregistered-slot identity that does not name a valid position."""


@dataclass(frozen=True)
class Registered:
    """A participant known by identity."""
    identity: str


@dataclass(frozen=True)
class UnregisteredSlot:
    """A position nobody has claimed, addressed by its synthetic identity."""
    position: int


PlayerRef = Union[Registered, UnregisteredSlot]


def parse_player_ref(identity: str, player_map: dict[str, int]) -> PlayerRef:
    """
    Parse a raw identity into a PlayerRef.

    Identities present in the player map are registered even if they
    happen to look like slot identities. Anything else carrying the
    slot prefix must parse to a position 1-4.

    Raises:
        SlotIdentityError: slot-prefixed identity with no valid position
    """
    if identity in player_map:
        return Registered(identity)
    if identity.startswith(SLOT_PREFIX):
        match = _SLOT_PATTERN.match(identity)
        if not match:
            raise SlotIdentityError(f"Invalid default player ID format: {identity}")
        position = int(match.group(1))
        if position not in (1, 2, 3, 4):
            raise SlotIdentityError(f"Slot identity {identity} names no position")
        return UnregisteredSlot(position)
    return Registered(identity)


def position_for_ref(ref: PlayerRef, player_map: dict[str, int]) -> int | None:
    """Position a reference points at, or None if the identity is unknown."""
    if isinstance(ref, UnregisteredSlot):
        return ref.position
    return player_map.get(ref.identity)


# =============================================================================
# Submissions
# =============================================================================

@dataclass(frozen=True)
class FifaKick:
    """A FIFA kick attempted by the thrower after the throw."""
    kind: KickType
    success: bool | None = None

    @property
    def is_success(self) -> bool:
        # Unmarked kicks count as successful when they were good kicks
        if self.success is None:
            return self.kind is KickType.GOOD_KICK
        return self.success

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "success": self.is_success}


@dataclass(frozen=True)
class Redemption:
    """A redemption attempt against the opposing team."""
    target_identity: str | None = None
    success: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"target_identity": self.target_identity, "success": self.success}


@dataclass(frozen=True)
class PlaySubmission:
    """
    A single play to be applied to the live state.

    Submissions are:
    - Validated against the live state before application
    - Applied atomically by the reducer
    - Recorded in the recent-plays feed
    """
    player_id: str
    throw_type: ThrowType
    team: str
    defender_ids: tuple[str, ...] = ()
    defense_type: DefenseType | None = None
    fifa: FifaKick | None = None
    redemption: Redemption | None = None

    @classmethod
    def throw(cls, player_id: str, throw_type: ThrowType | str, team: str) -> PlaySubmission:
        """Factory for a plain, undefended throw."""
        return cls(player_id=player_id, throw_type=ThrowType(throw_type), team=team)

    @classmethod
    def defended(
        cls,
        player_id: str,
        throw_type: ThrowType | str,
        team: str,
        defender_ids: list[str],
        defense_type: DefenseType | str,
        fifa: FifaKick | None = None,
    ) -> PlaySubmission:
        """Factory for a throw with a recorded defense."""
        if isinstance(defense_type, str):
            defense_type = DefenseType.parse(defense_type)
        return cls(
            player_id=player_id,
            throw_type=ThrowType(throw_type),
            team=team,
            defender_ids=tuple(defender_ids),
            defense_type=defense_type,
            fifa=fifa,
        )

    @property
    def has_defense(self) -> bool:
        return bool(self.defender_ids) and self.defense_type is not None


# =============================================================================
# Results
# =============================================================================

@dataclass
class PlayResult:
    """
    Result of applying a play or lifecycle change.

    Contains:
    - Whether it succeeded
    - New state (if succeeded)
    - Error kind and context (if failed)
    - Human-readable changes for the live feed
    """
    success: bool
    new_state: Any | None = None  # LiveMatchState
    error: str | None = None
    error_code: ErrorKind | None = None
    context: dict[str, Any] = field(default_factory=dict)

    points: int = 0
    state_changes: list[str] = field(default_factory=list)

    # Payload for non-play operations (match record, stats, scores)
    data: Any | None = None

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: ErrorKind,
        **context: Any,
    ) -> PlayResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code, context=context)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
        points: int = 0,
    ) -> PlayResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            points=points,
        )

    @classmethod
    def success_with_data(
        cls,
        data: Any,
        state: Any | None = None,
        changes: list[str] | None = None,
    ) -> PlayResult:
        """Create a success result carrying a payload."""
        return cls(success=True, new_state=state, data=data, state_changes=changes or [])
