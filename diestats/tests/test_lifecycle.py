"""
Tests for match status transitions.
"""

import pytest

from ..engine_core.state import MatchStatus
from ..engine_core.play import ErrorKind
from ..engine_core.lifecycle import MatchLifecycle, accepts_plays


class TestTransitions:
    """Tests for MatchLifecycle."""

    @pytest.fixture
    def lifecycle(self):
        return MatchLifecycle()

    @pytest.mark.parametrize("current,target", [
        (MatchStatus.WAITING, MatchStatus.ACTIVE),
        (MatchStatus.ACTIVE, MatchStatus.PAUSED),
        (MatchStatus.PAUSED, MatchStatus.ACTIVE),
        (MatchStatus.ACTIVE, MatchStatus.ENDED),
        (MatchStatus.WAITING, MatchStatus.ABANDONED),
        (MatchStatus.PAUSED, MatchStatus.ABANDONED),
    ])
    def test_allowed(self, lifecycle, current, target):
        assert lifecycle.check(current, target) is None

    @pytest.mark.parametrize("current,target", [
        (MatchStatus.WAITING, MatchStatus.ENDED),
        (MatchStatus.PAUSED, MatchStatus.ENDED),
        (MatchStatus.ENDED, MatchStatus.ACTIVE),
        (MatchStatus.ABANDONED, MatchStatus.ACTIVE),
        (MatchStatus.ACTIVE, MatchStatus.ACTIVE),
    ])
    def test_rejected(self, lifecycle, current, target):
        assert lifecycle.check(current, target) is not None

    def test_transition_returns_new_state(self, lifecycle, full_state):
        result = lifecycle.transition(full_state, MatchStatus.PAUSED)

        assert result.success
        assert result.new_state.status is MatchStatus.PAUSED
        assert full_state.status is MatchStatus.ACTIVE

    def test_invalid_transition_result(self, lifecycle, full_state):
        ended = full_state.with_status(MatchStatus.ENDED)
        result = lifecycle.transition(ended, MatchStatus.ACTIVE)

        assert not result.success
        assert result.error_code is ErrorKind.INVALID_TRANSITION

    def test_only_active_accepts_plays(self):
        assert accepts_plays(MatchStatus.ACTIVE)
        for status in (MatchStatus.WAITING, MatchStatus.PAUSED,
                       MatchStatus.ENDED, MatchStatus.ABANDONED):
            assert not accepts_plays(status)
