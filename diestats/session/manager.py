"""
Match Manager - Creates matches and serializes every change to them.

LIFECYCLE:
1. Creator makes a match -> room code allocated, status waiting
2. Players join by room code (or the creator seats them in a slot)
   -> live state created on first join, updated in place after
3. Creator starts the match -> status active, plays accepted
4. Plays are submitted -> resolved, accumulated, written back
5. Match ends (explicitly or by self-sink) or is abandoned

CONCURRENCY:
- Every read-modify-write of a match runs under that match's lock
- Writes are compare-and-swap on the row version, so a writer that
  raced past the lock is rejected instead of overwriting
- A play rejected that way is re-applied to the newer row, up to
  MAX_WRITE_ATTEMPTS times
- Reads take no lock and see the last committed row
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Callable
import logging
import threading
import time
import uuid

from ..engine_core.state import (
    LiveMatchState, MatchSetup, MatchStatus, POSITIONS, TeamId,
    DEFAULT_ARENA, DEFAULT_RECENT_PLAYS, DEFAULT_SCORE_LIMIT,
    DEFAULT_SINK_POINTS, DEFAULT_WIN_BY_TWO,
    team_for_position,
)
from ..engine_core.play import (
    PlaySubmission, PlayResult, ErrorKind, parse_player_ref, position_for_ref,
)
from ..engine_core.initialize import Participant, initialize_live_match_state
from ..engine_core.reducer import Reducer
from ..engine_core.lifecycle import MatchLifecycle
from ..engine_core.scoring import (
    compute_team_scores, determine_winner, player_performance, select_mvp,
)
from .store import MatchStore, MatchRecord, InMemoryMatchStore
from .room_codes import RoomCodeAllocator, RoomCodeError, normalize_room_code

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3


Authorizer = Callable[[MatchRecord, str], bool]


def creator_only(record: MatchRecord, identity: str) -> bool:
    """Only the match creator controls the match."""
    return record.creator_id == identity


class MatchManager:
    """
    Manages matches.

    Responsibilities:
    - Create matches with a unique room code
    - Seat participants into the four positions
    - Apply plays and status changes one at a time per match
    - Answer read queries (live state, team scores, player stats)
    """

    def __init__(
        self,
        store: MatchStore | None = None,
        allocator: RoomCodeAllocator | None = None,
        reducer: Reducer | None = None,
        lifecycle: MatchLifecycle | None = None,
        authorize: Authorizer = creator_only,
        recent_plays_limit: int = DEFAULT_RECENT_PLAYS,
        clock: Callable[[], float] = time.time,
        max_write_attempts: int = MAX_WRITE_ATTEMPTS,
    ):
        if recent_plays_limit < 1:
            raise ValueError(f"recent_plays_limit must be at least 1, got {recent_plays_limit}")
        if max_write_attempts < 1:
            raise ValueError(f"max_write_attempts must be at least 1, got {max_write_attempts}")
        self.store = store or InMemoryMatchStore()
        self.allocator = allocator or RoomCodeAllocator(exists=self.store.room_code_exists)
        self.reducer = reducer or Reducer(clock=clock)
        self.lifecycle = lifecycle or MatchLifecycle()
        self.authorize = authorize
        self.recent_plays_limit = recent_plays_limit
        self.clock = clock
        self.max_write_attempts = max_write_attempts

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, match_id: str) -> threading.Lock | None:
        """The match's lock, or None if no such match is stored."""
        if self.store.load_match(match_id) is None:
            return None
        with self._locks_guard:
            lock = self._locks.get(match_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[match_id] = lock
            return lock

    # =========================================================================
    # Creation and joining
    # =========================================================================

    def create_match(
        self,
        creator_id: str,
        title: str = "",
        location: str | None = None,
        score_limit: int = DEFAULT_SCORE_LIMIT,
        win_by_two: bool = DEFAULT_WIN_BY_TWO,
        sink_points: int = DEFAULT_SINK_POINTS,
        team_names: dict[str, str] | None = None,
        player_names: dict[int, str] | None = None,
    ) -> PlayResult:
        """
        Create a new match in waiting status.

        The creator is not seated automatically.
        """
        try:
            setup = MatchSetup(
                score_limit=score_limit,
                win_by_two=win_by_two,
                sink_points=sink_points,
                arena=location or DEFAULT_ARENA,
                title=title,
                team_names={**MatchSetup().team_names, **(team_names or {})},
                player_names={**MatchSetup().player_names, **(player_names or {})},
            )
        except ValueError as e:
            return PlayResult.failure(str(e), ErrorKind.VALIDATION_ERROR, action="create_match")

        try:
            room_code = self.allocator.allocate()
        except RoomCodeError as e:
            return PlayResult.failure(str(e), ErrorKind.PERSISTENCE_FAILURE, action="create_match")

        record = MatchRecord(
            match_id=str(uuid.uuid4()),
            room_code=room_code,
            creator_id=creator_id,
            setup=setup,
            created_at=self.clock(),
            title=title,
        )
        if not self.store.save_match(record, expected_version=0):
            return PlayResult.failure(
                "Failed to create match",
                ErrorKind.PERSISTENCE_FAILURE,
                match_id=record.match_id,
                action="create_match",
            )

        logger.info("Created match %s with room code %s", record.match_id, room_code)
        return PlayResult.success_with_data(self.store.load_match(record.match_id))

    def join_by_code(
        self,
        room_code: str,
        identity: str,
        display_name: str | None = None,
    ) -> PlayResult:
        """
        Join a match by its room code.

        The participant takes the lowest free position. Joining a
        match one is already in returns the match unchanged.
        """
        code = normalize_room_code(room_code)
        found = self.store.find_by_room_code(code)
        if found is None:
            return PlayResult.failure(
                "Invalid room code",
                ErrorKind.ROOM_CODE_NOT_FOUND,
                room_code=code,
                action="join_by_code",
            )

        match_id = found.match_id
        with self._lock_for(match_id):
            record = self.store.load_match(match_id)
            if record.status not in {MatchStatus.WAITING, MatchStatus.ACTIVE}:
                return PlayResult.failure(
                    "This match is no longer accepting players",
                    ErrorKind.MATCH_NOT_JOINABLE,
                    match_id=match_id,
                    action="join_by_code",
                    status=record.status.value,
                )

            if any(p.identity == identity for p in record.participants):
                return PlayResult.success_with_data(record, state=record.live_state)

            state = self._live_state_for(record)
            if len(state.player_map) >= len(POSITIONS):
                return PlayResult.failure(
                    "Match is full",
                    ErrorKind.MATCH_FULL,
                    match_id=match_id,
                    action="join_by_code",
                )

            name = display_name or self.store.lookup_display_name(identity)
            newcomer = Participant(identity=identity, display_name=name)
            state = initialize_live_match_state(
                record.config(self.recent_plays_limit), [newcomer], existing=state
            )
            position = state.position_of(identity)
            participant = replace(newcomer, team=team_for_position(position).value)

            result = self._commit(
                record,
                state,
                action="join_by_code",
                participants=[*record.participants, participant],
            )
            if result.success:
                logger.info("%s joined match %s at position %d", identity, match_id, position)
            return result

    def join_slot(
        self,
        match_id: str,
        identity: str,
        position: int,
        requested_by: str | None = None,
    ) -> PlayResult:
        """
        Seat an identity at a specific position.

        Only an authorized controller may do this. Counters already
        recorded at the position stay with the position.
        """
        if position not in POSITIONS:
            return PlayResult.failure(
                f"Invalid position: {position}",
                ErrorKind.INVALID_POSITION,
                match_id=match_id,
                action="join_slot",
            )

        lock = self._lock_for(match_id)
        if lock is None:
            return self._not_found(match_id, "join_slot")
        with lock:
            record = self.store.load_match(match_id)
            if not self.authorize(record, requested_by or identity):
                return PlayResult.failure(
                    "Only the match creator can assign slots",
                    ErrorKind.NOT_AUTHORIZED,
                    match_id=match_id,
                    action="join_slot",
                )
            if record.status.is_terminal:
                return PlayResult.failure(
                    "This match is no longer accepting players",
                    ErrorKind.MATCH_NOT_JOINABLE,
                    match_id=match_id,
                    action="join_slot",
                )

            name = (
                self.store.lookup_display_name(identity)
                or record.setup.player_name(position)
            )
            state = self._live_state_for(record).with_assignment(identity, position, name)

            team = team_for_position(position).value
            participants = [p for p in record.participants if p.identity != identity]
            # The previous holder of the position is unseated
            displaced = record.live_state.identity_at(position) if record.live_state else None
            if displaced and displaced != identity:
                participants = [p for p in participants if p.identity != displaced]
            participants.append(Participant(identity=identity, display_name=name, team=team))

            return self._commit(record, state, action="join_slot", participants=participants)

    def leave_match(self, match_id: str, identity: str) -> PlayResult:
        """Free the identity's position; its counters stay behind."""
        lock = self._lock_for(match_id)
        if lock is None:
            return self._not_found(match_id, "leave_match")
        with lock:
            record = self.store.load_match(match_id)
            participants = [p for p in record.participants if p.identity != identity]
            if len(participants) == len(record.participants):
                return PlayResult.failure(
                    f"Player {identity} not found in match",
                    ErrorKind.PLAYER_NOT_FOUND,
                    match_id=match_id,
                    action="leave_match",
                )
            if record.live_state is None:
                return self._save(record, replace(record, participants=participants), "leave_match")
            state = record.live_state.without_identity(identity)
            return self._commit(record, state, action="leave_match", participants=participants)

    # =========================================================================
    # Plays
    # =========================================================================

    def submit_play(self, match_id: str, submission: PlaySubmission) -> PlayResult:
        """
        Apply one play to a match.

        Rejected plays leave the stored match untouched. A play that
        legitimately scores nothing is still a success. If another
        writer commits between our read and our write, the play is
        applied again on top of that writer's row.
        """
        lock = self._lock_for(match_id)
        if lock is None:
            return self._not_found(match_id, "submit_play")
        with lock:
            for attempt in range(1, self.max_write_attempts + 1):
                record = self.store.load_match(match_id)
                if record.status is not MatchStatus.ACTIVE:
                    logger.warning("Rejected play for inactive match %s", match_id)
                    return PlayResult.failure(
                        "Cannot submit plays to an inactive match",
                        ErrorKind.INACTIVE_MATCH,
                        match_id=match_id,
                        action="submit_play",
                        status=record.status.value,
                    )

                state = self._live_state_for(record)
                result = self.reducer.apply(state, submission)
                if not result.success:
                    logger.warning(
                        "Rejected play in match %s: %s", match_id, result.error
                    )
                    return result

                new_state = result.new_state
                extra: dict[str, Any] = {}
                if new_state.status is MatchStatus.ENDED:
                    extra["ended_at"] = self.clock()
                    extra["winner"] = self._self_sink_winner(new_state)

                committed = self._commit(record, new_state, action="submit_play", **extra)
                if committed.success:
                    return replace(result, new_state=committed.new_state)
                if not self._overtaken(record):
                    return committed
                logger.info(
                    "Match %s changed during submit_play, retrying (attempt %d of %d)",
                    match_id, attempt, self.max_write_attempts,
                )
            return committed

    # =========================================================================
    # Status
    # =========================================================================

    def start_match(self, match_id: str, requested_by: str) -> PlayResult:
        return self._change_status(match_id, MatchStatus.ACTIVE, requested_by, "start_match")

    def pause_match(self, match_id: str, requested_by: str) -> PlayResult:
        return self._change_status(match_id, MatchStatus.PAUSED, requested_by, "pause_match")

    def resume_match(self, match_id: str, requested_by: str) -> PlayResult:
        return self._change_status(match_id, MatchStatus.ACTIVE, requested_by, "resume_match")

    def end_match(self, match_id: str, requested_by: str) -> PlayResult:
        return self._change_status(match_id, MatchStatus.ENDED, requested_by, "end_match")

    def abandon_match(self, match_id: str, requested_by: str) -> PlayResult:
        return self._change_status(match_id, MatchStatus.ABANDONED, requested_by, "abandon_match")

    def _change_status(
        self,
        match_id: str,
        target: MatchStatus,
        requested_by: str,
        action: str,
    ) -> PlayResult:
        lock = self._lock_for(match_id)
        if lock is None:
            return self._not_found(match_id, action)
        with lock:
            record = self.store.load_match(match_id)
            if not self.authorize(record, requested_by):
                return PlayResult.failure(
                    "Only the match creator can change match status",
                    ErrorKind.NOT_AUTHORIZED,
                    match_id=match_id,
                    action=action,
                )
            error = self.lifecycle.check(record.status, target)
            if error:
                return PlayResult.failure(
                    error, ErrorKind.INVALID_TRANSITION, match_id=match_id, action=action
                )

            changes: dict[str, Any] = {"status": target}
            now = self.clock()
            if target is MatchStatus.ACTIVE and record.started_at is None:
                changes["started_at"] = now
            elif target.is_terminal:
                changes["ended_at"] = now
                if target is MatchStatus.ENDED and record.live_state is not None:
                    changes["winner"] = determine_winner(record.live_state)

            logger.info("Match %s: %s -> %s", match_id, record.status.value, target.value)
            if record.live_state is None:
                return self._save(record, replace(record, **changes), action)

            transition = self.lifecycle.transition(record.live_state, target)
            if not transition.success:
                return transition
            changes.pop("status")
            return self._commit(record, transition.new_state, action=action, **changes)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_match(self, match_id: str) -> MatchRecord | None:
        return self.store.load_match(match_id)

    def get_live_match_state(self, match_id: str) -> LiveMatchState | None:
        record = self.store.load_match(match_id)
        return record.live_state if record else None

    def get_team_scores(self, match_id: str) -> PlayResult:
        record = self.store.load_match(match_id)
        if record is None:
            return self._not_found(match_id, "get_team_scores")
        state = record.live_state or self._live_state_for(record)
        return PlayResult.success_with_data(compute_team_scores(state), state=state)

    def get_player_match_stats(self, match_id: str, identity: str) -> PlayResult:
        """Counters and performance figures for one participant."""
        record = self.store.load_match(match_id)
        if record is None:
            return self._not_found(match_id, "get_player_match_stats")
        if record.live_state is None:
            return PlayResult.failure(
                "Live match data not found for this match",
                ErrorKind.MATCH_NOT_FOUND,
                match_id=match_id,
                action="get_player_match_stats",
            )
        position = record.live_state.position_of(identity)
        if position is None:
            return PlayResult.failure(
                "Player not found in this match",
                ErrorKind.PLAYER_NOT_FOUND,
                match_id=match_id,
                action="get_player_match_stats",
            )
        stats = player_performance(record.live_state.stats_at(position))
        stats["position"] = position
        stats["team"] = team_for_position(position).value
        return PlayResult.success_with_data(stats, state=record.live_state)

    def get_mvp(self, match_id: str) -> int | None:
        state = self.get_live_match_state(match_id)
        return select_mvp(state) if state else None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _live_state_for(self, record: MatchRecord) -> LiveMatchState:
        """The record's live state, built from its participants if missing."""
        if record.live_state is not None:
            return record.live_state
        return initialize_live_match_state(
            record.config(self.recent_plays_limit), list(record.participants)
        )

    def _commit(
        self,
        record: MatchRecord,
        state: LiveMatchState,
        action: str,
        **changes: Any,
    ) -> PlayResult:
        """Write the live state and row changes as one document."""
        state = state.bumped()
        updated = replace(record, live_state=state, status=state.status, **changes)
        return self._save(record, updated, action)

    def _save(self, record: MatchRecord, updated: MatchRecord, action: str) -> PlayResult:
        if not self.store.save_match(updated, expected_version=record.version):
            logger.warning("Failed to persist match %s during %s", record.match_id, action)
            return PlayResult.failure(
                "Failed to persist match state",
                ErrorKind.PERSISTENCE_FAILURE,
                match_id=record.match_id,
                action=action,
            )
        saved = self.store.load_match(record.match_id)
        return PlayResult.success_with_data(saved, state=saved.live_state)

    def _overtaken(self, record: MatchRecord) -> bool:
        """True if the stored row has moved past the version we read."""
        current = self.store.load_match(record.match_id)
        return current is not None and current.version != record.version

    def _self_sink_winner(self, state: LiveMatchState) -> TeamId | None:
        """The side opposite the thrower of the play that ended the match."""
        play = state.latest_play
        position = state.position_of(play.player_id) if play else None
        if position is None and play is not None:
            ref = parse_player_ref(play.player_id, state.player_map)
            position = position_for_ref(ref, state.player_map)
        if position is None:
            return determine_winner(state)
        return team_for_position(position).opponent

    def _not_found(self, match_id: str, action: str) -> PlayResult:
        return PlayResult.failure(
            "Match not found",
            ErrorKind.MATCH_NOT_FOUND,
            match_id=match_id,
            action=action,
        )

    def list_matches(self, status: MatchStatus | None = None) -> list[str]:
        """IDs of stored matches, optionally filtered by status."""
        ids = []
        for match_id in self.store.list_match_ids():
            record = self.store.load_match(match_id)
            if record and (status is None or record.status is status):
                ids.append(match_id)
        return ids

    def winner_name(self, match_id: str) -> str | None:
        record = self.store.load_match(match_id)
        if record is None or record.winner is None:
            return None
        return record.setup.team_name(record.winner)


__all__ = ["MatchManager", "creator_only", "Authorizer"]
