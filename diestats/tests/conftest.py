"""
Pytest fixtures for Die Stats tests.
"""

import pytest

from ..engine_core.state import LiveMatchState, MatchSetup, MatchStatus
from ..engine_core.initialize import Participant, MatchConfig, initialize_live_match_state
from ..session import MatchManager, InMemoryMatchStore


@pytest.fixture
def match_setup() -> MatchSetup:
    """Default setup: first to 11, win by two, sinks worth 3."""
    return MatchSetup()


@pytest.fixture
def match_config(match_setup: MatchSetup) -> MatchConfig:
    return MatchConfig(
        match_id="match-1",
        room_code="K04217",
        setup=match_setup,
        status=MatchStatus.ACTIVE,
    )


@pytest.fixture
def participants() -> list[Participant]:
    """Four players: alice and bob on team 1, carol and dave on team 2."""
    return [
        Participant("alice", "Alice"),
        Participant("bob", "Bob"),
        Participant("carol", "Carol"),
        Participant("dave", "Dave"),
    ]


@pytest.fixture
def full_state(match_config: MatchConfig, participants: list[Participant]) -> LiveMatchState:
    """An active match with all four positions held by registered players."""
    return initialize_live_match_state(match_config, participants)


@pytest.fixture
def empty_state(match_config: MatchConfig) -> LiveMatchState:
    """An active match nobody has joined; every position is an unregistered slot."""
    return initialize_live_match_state(match_config, [])


@pytest.fixture
def store() -> InMemoryMatchStore:
    return InMemoryMatchStore()


@pytest.fixture
def manager(store: InMemoryMatchStore) -> MatchManager:
    return MatchManager(store=store, clock=lambda: 1700000000.0)


@pytest.fixture
def active_match(manager: MatchManager, participants: list[Participant]) -> str:
    """An active managed match with four joined players. Returns the match ID."""
    record = manager.create_match(creator_id="host", title="Friday Final").data
    for participant in participants:
        manager.join_by_code(record.room_code, participant.identity, participant.display_name)
    assert manager.start_match(record.match_id, "host").success
    return record.match_id
