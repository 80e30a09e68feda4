"""
Tests for live match state and initialization.

Tests:
- Position and team mapping
- Player references
- State construction
- Immutable updates
"""

import pytest

from ..engine_core.state import (
    LiveMatchState, MatchSetup, MatchStatus, PlayerStats, RecordedPlay, TeamId,
    POSITIONS, team_for_position, positions_for_team, slot_identity,
)
from ..engine_core.play import (
    Registered, UnregisteredSlot, SlotIdentityError, parse_player_ref,
    FifaKick, KickType, DefenseType,
)
from ..engine_core.initialize import Participant, MatchConfig, initialize_live_match_state


class TestTeams:
    """Tests for position to team mapping."""

    def test_positions_one_and_two_are_team1(self):
        assert team_for_position(1) is TeamId.TEAM1
        assert team_for_position(2) is TeamId.TEAM1

    def test_positions_three_and_four_are_team2(self):
        assert team_for_position(3) is TeamId.TEAM2
        assert team_for_position(4) is TeamId.TEAM2

    def test_invalid_position_rejected(self):
        with pytest.raises(ValueError):
            team_for_position(5)

    def test_positions_for_team(self):
        assert positions_for_team(TeamId.TEAM1) == (1, 2)
        assert positions_for_team(TeamId.TEAM2) == (3, 4)

    def test_opponent(self):
        assert TeamId.TEAM1.opponent is TeamId.TEAM2
        assert TeamId.TEAM2.opponent is TeamId.TEAM1


class TestPlayerRefs:
    """Tests for parsing identities into player references."""

    def test_registered_identity(self):
        assert parse_player_ref("alice", {"alice": 1}) == Registered("alice")

    def test_unknown_identity_is_registered(self):
        """Unknown identities parse fine; resolving them is the caller's job."""
        assert parse_player_ref("stranger", {}) == Registered("stranger")

    def test_slot_identity(self):
        assert parse_player_ref("default_match-1_3", {}) == UnregisteredSlot(3)

    def test_temp_slot_identity(self):
        assert parse_player_ref(slot_identity(2), {}) == UnregisteredSlot(2)

    def test_slot_identity_out_of_range(self):
        with pytest.raises(SlotIdentityError):
            parse_player_ref("default_match-1_7", {})

    def test_slot_identity_without_position(self):
        with pytest.raises(SlotIdentityError):
            parse_player_ref("default_abc", {})

    def test_mapped_identity_wins_over_slot_format(self):
        """A registered identity that looks like a slot is still registered."""
        ref = parse_player_ref("default_match-1_9", {"default_match-1_9": 2})
        assert ref == Registered("default_match-1_9")


class TestInitialization:
    """Tests for initialize_live_match_state."""

    def test_four_positions_always_present(self, empty_state):
        assert set(empty_state.player_stats) == set(POSITIONS)
        assert empty_state.player_map == {}

    def test_default_names(self, empty_state):
        assert [empty_state.stats_at(p).name for p in POSITIONS] == [
            "Player 1", "Player 2", "Player 3", "Player 4",
        ]

    def test_configured_names_used_for_empty_slots(self):
        setup = MatchSetup(player_names={1: "Ace", 2: "", 3: "Cy", 4: "Dee"})
        state = initialize_live_match_state(MatchConfig("m", "A00001", setup), [])
        assert state.stats_at(1).name == "Ace"
        assert state.stats_at(2).name == "Player 2"

    def test_participants_fill_positions_in_order(self, full_state):
        assert full_state.player_map == {"alice": 1, "bob": 2, "carol": 3, "dave": 4}
        assert full_state.stats_at(3).name == "Carol"

    def test_all_counters_start_at_zero(self, full_state):
        for position in POSITIONS:
            assert all(v == 0 for v in full_state.stats_at(position).counters().values())
            assert not full_state.stats_at(position).currently_on_fire

    def test_fifth_participant_not_placed(self, match_config, participants):
        state = initialize_live_match_state(
            match_config, participants + [Participant("eve", "Eve")]
        )
        assert "eve" not in state.player_map
        assert len(state.player_map) == 4

    def test_missing_display_name_uses_configured_name(self, match_config):
        state = initialize_live_match_state(match_config, [Participant("alice")])
        assert state.stats_at(1).name == "Player 1"

    def test_extending_keeps_counters(self, match_config):
        state = initialize_live_match_state(match_config, [Participant("alice", "Alice")])
        state = state.with_stats(1, state.stats_at(1).incremented("throws", "hits"))

        extended = initialize_live_match_state(
            match_config, [Participant("alice", "Alice"), Participant("bob", "Bob")],
            existing=state,
        )

        assert extended.player_map == {"alice": 1, "bob": 2}
        assert extended.stats_at(1).throws == 1
        assert extended.stats_at(1).hits == 1

    def test_newcomer_takes_lowest_free_position(self, full_state, match_config):
        state = full_state.without_identity("bob")
        extended = initialize_live_match_state(
            match_config, [Participant("eve", "Eve")], existing=state
        )
        assert extended.position_of("eve") == 2


class TestLiveMatchState:
    """Tests for LiveMatchState updates."""

    def test_with_stats_returns_new_state(self, full_state):
        updated = full_state.with_stats(1, full_state.stats_at(1).with_score(4))
        assert updated.stats_at(1).score == 4
        assert full_state.stats_at(1).score == 0

    def test_score_never_negative(self):
        assert PlayerStats().with_score(-3).score == 0

    def test_duplicate_positions_rejected(self):
        with pytest.raises(ValueError):
            LiveMatchState(match_id="m", room_code="A00001", player_map={"a": 1, "b": 1})

    def test_unknown_positions_rejected(self):
        with pytest.raises(ValueError):
            LiveMatchState(match_id="m", room_code="A00001", player_stats={5: PlayerStats()})

    def test_assignment_evicts_previous_holder(self, full_state):
        updated = full_state.with_assignment("eve", 2, "Eve")
        assert "bob" not in updated.player_map
        assert updated.position_of("eve") == 2
        assert updated.stats_at(2).name == "Eve"

    def test_recent_plays_are_bounded(self, full_state):
        state = full_state
        for i in range(15):
            state = state.with_play(RecordedPlay("alice", "hit", "team1", 1, float(i)))
        assert len(state.recent_plays) == state.recent_plays_limit
        assert state.latest_play.timestamp == 14.0
        assert state.recent_plays[0].timestamp == 5.0

    def test_bumped_increments_version(self, full_state):
        assert full_state.bumped().version == full_state.version + 1

    def test_to_dict(self, full_state):
        data = full_state.to_dict()
        assert data["status"] == "active"
        assert set(data["player_stats"]) == {"1", "2", "3", "4"}
        assert data["player_map"]["carol"] == 3
        assert data["match_setup"]["sink_points"] == 3

    def test_invalid_sink_points(self):
        with pytest.raises(ValueError):
            MatchSetup(sink_points=4)

    def test_player_names_outside_positions(self):
        with pytest.raises(ValueError):
            MatchSetup(player_names={7: "Extra"})

    @pytest.mark.parametrize("limit", [0, -1])
    def test_recent_plays_limit_must_be_positive(self, match_setup, limit):
        with pytest.raises(ValueError):
            MatchConfig("match-1", "K04217", match_setup, recent_plays_limit=limit)
        with pytest.raises(ValueError):
            LiveMatchState("match-1", "K04217", recent_plays_limit=limit)

    def test_feed_of_one(self, full_state):
        state = full_state._copy_with(recent_plays_limit=1)
        for i in range(3):
            state = state.with_play(RecordedPlay("alice", "hit", "team1", 1, float(i)))
        assert len(state.recent_plays) == 1
        assert state.latest_play.timestamp == 2.0


class TestSubmissionParts:
    """Tests for the pieces of a play submission."""

    def test_good_kick_defaults_to_success(self):
        assert FifaKick(KickType.GOOD_KICK).is_success
        assert not FifaKick(KickType.BAD_KICK).is_success

    def test_explicit_kick_success(self):
        assert FifaKick(KickType.BAD_KICK, success=True).is_success

    def test_legacy_two_hands_name(self):
        assert DefenseType.parse("2hands") is DefenseType.TWO_HANDS
        assert DefenseType.parse("two_hands") is DefenseType.TWO_HANDS

    def test_status_terminal(self):
        assert MatchStatus.ENDED.is_terminal
        assert MatchStatus.ABANDONED.is_terminal
        assert not MatchStatus.PAUSED.is_terminal
