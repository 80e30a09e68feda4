"""
Tests for the match manager.

Tests:
- Match creation and joining
- Status changes and authorization
- Play submission through the store
- Persistence failures
- Concurrent submissions
"""

import threading

import pytest

from ..engine_core.state import MatchStatus, TeamId
from ..engine_core.play import PlaySubmission, ErrorKind
from ..session import MatchManager, InMemoryMatchStore
from ..session.room_codes import is_valid_room_code


class FlakyStore(InMemoryMatchStore):
    """Store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail_saves = False
        self.failed_saves = 0

    def save_match(self, record, expected_version=None):
        if self.fail_saves:
            self.failed_saves += 1
            return False
        return super().save_match(record, expected_version)


class ContendedStore(InMemoryMatchStore):
    """Store where some other writer always commits just before us."""

    def __init__(self):
        super().__init__()
        self.contended = False
        self.attempts = 0

    def save_match(self, record, expected_version=None):
        if not self.contended:
            return super().save_match(record, expected_version)
        self.attempts += 1
        current = self.load_match(record.match_id)
        super().save_match(current, expected_version=current.version)
        return False


class GatedStore(InMemoryMatchStore):
    """Store that holds the next N saves until all N writers are ready to save."""

    def __init__(self):
        super().__init__()
        self._gate = None
        self._pending = 0
        self._gate_lock = threading.Lock()

    def hold_saves(self, count: int):
        self._gate = threading.Barrier(count)
        self._pending = count

    def save_match(self, record, expected_version=None):
        with self._gate_lock:
            gate = self._gate if self._pending > 0 else None
            self._pending -= 1
        if gate is not None:
            gate.wait(timeout=5)
        return super().save_match(record, expected_version)


class TestCreateAndJoin:
    """Tests for create_match and join_by_code."""

    def test_create_match(self, manager):
        result = manager.create_match(creator_id="host", title="Friday Final", location="Basement")

        assert result.success
        record = result.data
        assert is_valid_room_code(record.room_code)
        assert record.status is MatchStatus.WAITING
        assert record.setup.arena == "Basement"
        assert record.live_state is None
        assert record.participants == []

    def test_create_with_invalid_sink_points(self, manager):
        result = manager.create_match(creator_id="host", sink_points=4)
        assert not result.success
        assert result.error_code is ErrorKind.VALIDATION_ERROR

    def test_create_with_unknown_name_position(self, manager):
        result = manager.create_match(creator_id="host", player_names={7: "Extra"})
        assert result.error_code is ErrorKind.VALIDATION_ERROR

    def test_recent_plays_limit_must_be_positive(self, store):
        with pytest.raises(ValueError):
            MatchManager(store=store, recent_plays_limit=0)

    def test_join_fills_positions(self, manager, active_match):
        state = manager.get_live_match_state(active_match)
        assert state.player_map == {"alice": 1, "bob": 2, "carol": 3, "dave": 4}
        assert state.stats_at(2).name == "Bob"

        teams = {p.identity: p.team for p in manager.get_match(active_match).participants}
        assert teams == {"alice": "team1", "bob": "team1", "carol": "team2", "dave": "team2"}

    def test_join_uses_profile_name(self, manager, store):
        store.register_profile("alice", "Alice A.")
        record = manager.create_match(creator_id="host").data
        manager.join_by_code(record.room_code.lower(), "alice")

        assert manager.get_live_match_state(record.match_id).stats_at(1).name == "Alice A."

    def test_join_twice_is_noop(self, manager):
        record = manager.create_match(creator_id="host").data
        manager.join_by_code(record.room_code, "alice", "Alice")
        result = manager.join_by_code(record.room_code, "alice", "Alice")

        assert result.success
        assert len(manager.get_match(record.match_id).participants) == 1

    def test_join_full_match(self, manager, active_match):
        room_code = manager.get_match(active_match).room_code
        result = manager.join_by_code(room_code, "eve", "Eve")

        assert not result.success
        assert result.error_code is ErrorKind.MATCH_FULL

    def test_join_unknown_code(self, manager):
        result = manager.join_by_code("Z99999", "alice")
        assert result.error_code is ErrorKind.ROOM_CODE_NOT_FOUND

    def test_join_ended_match(self, manager):
        record = manager.create_match(creator_id="host").data
        manager.abandon_match(record.match_id, "host")

        result = manager.join_by_code(record.room_code, "alice")
        assert result.error_code is ErrorKind.MATCH_NOT_JOINABLE


class TestSlots:
    """Tests for join_slot and leave_match."""

    def test_only_creator_assigns_slots(self, manager, active_match):
        result = manager.join_slot(active_match, "eve", 1, requested_by="alice")
        assert result.error_code is ErrorKind.NOT_AUTHORIZED

    def test_invalid_position(self, manager, active_match):
        result = manager.join_slot(active_match, "eve", 5, requested_by="host")
        assert result.error_code is ErrorKind.INVALID_POSITION

    def test_slot_keeps_counters(self, manager, store, active_match):
        manager.submit_play(active_match, PlaySubmission.throw("alice", "goal", "team1"))
        store.register_profile("eve", "Eve")

        result = manager.join_slot(active_match, "eve", 1, requested_by="host")

        assert result.success
        state = manager.get_live_match_state(active_match)
        assert state.position_of("eve") == 1
        assert state.position_of("alice") is None
        assert state.stats_at(1).score == 2
        assert state.stats_at(1).name == "Eve"
        identities = {p.identity for p in manager.get_match(active_match).participants}
        assert identities == {"eve", "bob", "carol", "dave"}

    def test_leave_keeps_counters(self, manager, active_match):
        manager.submit_play(active_match, PlaySubmission.throw("bob", "hit", "team1"))
        result = manager.leave_match(active_match, "bob")

        assert result.success
        state = manager.get_live_match_state(active_match)
        assert "bob" not in state.player_map
        assert state.stats_at(2).score == 1

    def test_leave_unknown_player(self, manager, active_match):
        result = manager.leave_match(active_match, "mallory")
        assert result.error_code is ErrorKind.PLAYER_NOT_FOUND


class TestStatus:
    """Tests for status changes."""

    def test_start(self, manager):
        record = manager.create_match(creator_id="host").data
        result = manager.start_match(record.match_id, "host")

        assert result.success
        record = manager.get_match(record.match_id)
        assert record.status is MatchStatus.ACTIVE
        assert record.started_at == 1700000000.0

    def test_only_creator_starts(self, manager):
        record = manager.create_match(creator_id="host").data
        result = manager.start_match(record.match_id, "alice")
        assert result.error_code is ErrorKind.NOT_AUTHORIZED

    def test_pause_and_resume(self, manager, active_match):
        assert manager.pause_match(active_match, "host").success
        assert manager.get_live_match_state(active_match).status is MatchStatus.PAUSED

        result = manager.submit_play(active_match, PlaySubmission.throw("alice", "hit", "team1"))
        assert result.error_code is ErrorKind.INACTIVE_MATCH

        assert manager.resume_match(active_match, "host").success
        result = manager.submit_play(active_match, PlaySubmission.throw("alice", "hit", "team1"))
        assert result.success

    def test_cannot_end_waiting_match(self, manager):
        record = manager.create_match(creator_id="host").data
        result = manager.end_match(record.match_id, "host")
        assert result.error_code is ErrorKind.INVALID_TRANSITION

    def test_end_records_winner(self, manager, active_match):
        for _ in range(4):
            manager.submit_play(active_match, PlaySubmission.throw("carol", "sink", "team2"))

        assert manager.end_match(active_match, "host").success
        record = manager.get_match(active_match)
        assert record.status is MatchStatus.ENDED
        assert record.winner is TeamId.TEAM2
        assert record.ended_at == 1700000000.0
        assert manager.winner_name(active_match) == "Team 2"

    def test_status_change_unknown_match(self, manager):
        result = manager.start_match("missing", "host")
        assert result.error_code is ErrorKind.MATCH_NOT_FOUND


class TestSubmitPlay:
    """Tests for submit_play."""

    def test_play_persisted(self, manager, active_match):
        result = manager.submit_play(active_match, PlaySubmission.throw("alice", "sink", "team1"))

        assert result.success
        assert result.points == 3
        stored = manager.get_live_match_state(active_match)
        assert stored.stats_at(1).score == 3
        assert stored.version == result.new_state.version

    def test_unknown_match(self, manager):
        result = manager.submit_play("missing", PlaySubmission.throw("alice", "hit", "team1"))
        assert result.error_code is ErrorKind.MATCH_NOT_FOUND

    def test_waiting_match(self, manager):
        record = manager.create_match(creator_id="host").data
        manager.join_by_code(record.room_code, "alice")

        result = manager.submit_play(record.match_id, PlaySubmission.throw("alice", "hit", "team1"))
        assert result.error_code is ErrorKind.INACTIVE_MATCH

    def test_rejected_play_leaves_store_untouched(self, manager, active_match):
        before = manager.get_match(active_match)
        result = manager.submit_play(active_match, PlaySubmission.throw("mallory", "hit", "team1"))

        assert result.error_code is ErrorKind.UNRESOLVED_THROWER
        assert manager.get_match(active_match).version == before.version

    def test_live_state_created_on_first_play(self, manager):
        """A match started before anyone joined still takes slot plays."""
        record = manager.create_match(creator_id="host").data
        manager.start_match(record.match_id, "host")
        slot = f"default_{record.match_id}_3"

        result = manager.submit_play(record.match_id, PlaySubmission.throw(slot, "goal", "team2"))

        assert result.success
        assert manager.get_live_match_state(record.match_id).stats_at(3).score == 2

    def test_self_sink_ends_match(self, manager, active_match):
        result = manager.submit_play(
            active_match, PlaySubmission.throw("alice", "self_sink", "team1")
        )

        assert result.success
        record = manager.get_match(active_match)
        assert record.status is MatchStatus.ENDED
        assert record.winner is TeamId.TEAM2
        assert record.ended_at is not None

    def test_team_scores(self, manager, active_match):
        manager.submit_play(active_match, PlaySubmission.throw("alice", "goal", "team1"))
        manager.submit_play(active_match, PlaySubmission.throw("dave", "hit", "team2"))

        scores = manager.get_team_scores(active_match).data
        assert scores.to_dict() == {"team1": 2, "team2": 1}

    def test_player_match_stats(self, manager, active_match):
        manager.submit_play(active_match, PlaySubmission.throw("carol", "hit", "team2"))
        manager.submit_play(active_match, PlaySubmission.throw("carol", "short", "team2"))

        result = manager.get_player_match_stats(active_match, "carol")

        assert result.success
        assert result.data["position"] == 3
        assert result.data["team"] == "team2"
        assert result.data["throws"] == 2
        assert result.data["hit_rate"] == 0.5

    def test_player_match_stats_unknown_player(self, manager, active_match):
        result = manager.get_player_match_stats(active_match, "mallory")
        assert result.error_code is ErrorKind.PLAYER_NOT_FOUND


class TestPersistence:
    """Tests for write failures."""

    def test_persistence_failure(self, participants):
        store = FlakyStore()
        manager = MatchManager(store=store)
        record = manager.create_match(creator_id="host").data
        for participant in participants:
            manager.join_by_code(record.room_code, participant.identity, participant.display_name)
        manager.start_match(record.match_id, "host")
        before = manager.get_live_match_state(record.match_id)

        store.fail_saves = True
        result = manager.submit_play(
            record.match_id, PlaySubmission.throw("alice", "sink", "team1")
        )

        assert not result.success
        assert result.error_code is ErrorKind.PERSISTENCE_FAILURE
        assert manager.get_live_match_state(record.match_id) == before

    def test_stale_write_rejected(self, manager, store, active_match):
        stale = store.load_match(active_match)
        manager.submit_play(active_match, PlaySubmission.throw("alice", "hit", "team1"))

        assert not store.save_match(stale, expected_version=stale.version)
        assert manager.get_live_match_state(active_match).stats_at(1).score == 1


class TestConcurrency:
    """Tests for concurrent submissions against one match."""

    def test_submissions_serialized(self, manager, active_match):
        throwers = ["alice", "bob", "carol", "dave"] * 10
        results = []

        def submit(identity):
            team = "team1" if identity in ("alice", "bob") else "team2"
            results.append(manager.submit_play(active_match, PlaySubmission.throw(identity, "hit", team)))

        threads = [threading.Thread(target=submit, args=(t,)) for t in throwers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(r.success for r in results)
        state = manager.get_live_match_state(active_match)
        assert sum(state.stats_at(p).throws for p in (1, 2, 3, 4)) == len(throwers)
        assert sum(state.stats_at(p).score for p in (1, 2, 3, 4)) == len(throwers)

    def test_racing_writers_both_commit(self, participants):
        """The writer that loses the race re-applies its play to the winner's row."""
        store = GatedStore()
        first = MatchManager(store=store)
        second = MatchManager(store=store)
        record = first.create_match(creator_id="host").data
        for participant in participants:
            first.join_by_code(record.room_code, participant.identity, participant.display_name)
        first.start_match(record.match_id, "host")

        store.hold_saves(2)
        results = {}

        def submit(name, manager, identity, team):
            results[name] = manager.submit_play(
                record.match_id, PlaySubmission.throw(identity, "goal", team)
            )

        threads = [
            threading.Thread(target=submit, args=("first", first, "alice", "team1")),
            threading.Thread(target=submit, args=("second", second, "carol", "team2")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(r.success for r in results.values())

        state = store.load_match(record.match_id).live_state
        assert state.stats_at(1).throws == 1
        assert state.stats_at(3).throws == 1
        assert state.stats_at(1).score == 2
        assert state.stats_at(3).score == 2
        assert len(state.recent_plays) == 2

        versions = sorted(r.new_state.version for r in results.values())
        assert versions[1] == versions[0] + 1

    def test_retries_are_bounded(self, participants):
        store = ContendedStore()
        manager = MatchManager(store=store, max_write_attempts=3)
        record = manager.create_match(creator_id="host").data
        for participant in participants:
            manager.join_by_code(record.room_code, participant.identity, participant.display_name)
        manager.start_match(record.match_id, "host")

        store.contended = True
        result = manager.submit_play(
            record.match_id, PlaySubmission.throw("alice", "goal", "team1")
        )

        assert not result.success
        assert result.error_code is ErrorKind.PERSISTENCE_FAILURE
        assert store.attempts == 3
        assert manager.get_live_match_state(record.match_id).stats_at(1).throws == 0

    def test_failed_write_not_retried(self, participants):
        store = FlakyStore()
        manager = MatchManager(store=store)
        record = manager.create_match(creator_id="host").data
        for participant in participants:
            manager.join_by_code(record.room_code, participant.identity, participant.display_name)
        manager.start_match(record.match_id, "host")

        store.fail_saves = True
        result = manager.submit_play(
            record.match_id, PlaySubmission.throw("alice", "goal", "team1")
        )

        assert result.error_code is ErrorKind.PERSISTENCE_FAILURE
        assert store.failed_saves == 1

    def test_unknown_match_gets_no_lock(self, manager):
        result = manager.submit_play("no-such-match", PlaySubmission.throw("alice", "hit", "team1"))

        assert result.error_code is ErrorKind.MATCH_NOT_FOUND
        assert manager.pause_match("no-such-match", "host").error_code is ErrorKind.MATCH_NOT_FOUND
        assert manager.leave_match("no-such-match", "alice").error_code is ErrorKind.MATCH_NOT_FOUND
        assert "no-such-match" not in manager._locks

    def test_retry_sees_committed_state(self, participants):
        store = GatedStore()
        first = MatchManager(store=store)
        second = MatchManager(store=store)
        record = first.create_match(creator_id="host").data
        for participant in participants:
            first.join_by_code(record.room_code, participant.identity, participant.display_name)
        first.start_match(record.match_id, "host")

        first.submit_play(record.match_id, PlaySubmission.throw("alice", "goal", "team1"))
        result = second.submit_play(record.match_id, PlaySubmission.throw("carol", "goal", "team2"))

        assert result.success
        state = result.new_state
        assert state.stats_at(1).score == 2
        assert state.stats_at(3).score == 2


class TestStore:
    """Tests for the store contract helpers."""

    def test_load_match_config(self, manager, store, active_match):
        status, setup, participants = store.load_match_config(active_match)

        assert status is MatchStatus.ACTIVE
        assert setup.score_limit == 11
        assert [p.identity for p in participants] == ["alice", "bob", "carol", "dave"]
        assert store.load_match_config("missing") is None

    def test_load_participants(self, store, active_match):
        assert len(store.load_participants(active_match)) == 4
        assert store.load_participants("missing") == []

    def test_persist_live_state(self, manager, store, active_match):
        state = manager.get_live_match_state(active_match).with_status(MatchStatus.PAUSED)

        assert store.persist_live_state(active_match, state)
        assert store.load_match(active_match).status is MatchStatus.PAUSED
        assert not store.persist_live_state("missing", state)

    def test_room_code_lookup_is_case_insensitive(self, manager, store, active_match):
        room_code = store.load_match(active_match).room_code
        assert store.find_by_room_code(room_code.lower()).match_id == active_match
        assert store.room_code_exists(room_code)

    def test_mvp(self, manager, active_match):
        assert manager.get_mvp(active_match) is None
        for _ in range(3):
            manager.submit_play(active_match, PlaySubmission.throw("dave", "goal", "team2"))
            manager.submit_play(active_match, PlaySubmission.throw("bob", "short", "team1"))

        assert manager.get_mvp(active_match) == 4
