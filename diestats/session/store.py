"""
Match Store - The persistence boundary the engine talks to.

The engine needs four things from storage:
- load the match row (status, settings, participants)
- load the participant list
- write the live state back as one atomic document
- look up a display name for an identity

MatchStore states that contract; InMemoryMatchStore implements it
for tests, the CLI and single-process deployments.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import logging
import threading

from ..engine_core.state import LiveMatchState, MatchSetup, MatchStatus, TeamId
from ..engine_core.initialize import Participant, MatchConfig

logger = logging.getLogger(__name__)


@dataclass
class MatchRecord:
    """
    A persisted match row.

    The live state is stored inside the row, so writing the record
    writes the live state too.
    """
    match_id: str
    room_code: str
    creator_id: str
    setup: MatchSetup
    created_at: float

    title: str = ""
    status: MatchStatus = MatchStatus.WAITING
    participants: list[Participant] = field(default_factory=list)
    live_state: LiveMatchState | None = None

    started_at: float | None = None
    ended_at: float | None = None
    winner: TeamId | None = None

    # Bumped by the store on every successful save
    version: int = 0

    def config(self, recent_plays_limit: int) -> MatchConfig:
        return MatchConfig(
            match_id=self.match_id,
            room_code=self.room_code,
            setup=self.setup,
            status=self.status,
            recent_plays_limit=recent_plays_limit,
        )


class MatchStore(ABC):
    """
    Storage contract used by the match manager.

    The manager only needs the abstract methods. load_match_config,
    load_participants and persist_live_state are narrower views of
    the same row for callers outside the manager, such as importers
    and admin tooling, that do not want to handle MatchRecord.
    """

    @abstractmethod
    def load_match(self, match_id: str) -> MatchRecord | None:
        """Fetch the current match row."""

    @abstractmethod
    def save_match(self, record: MatchRecord, expected_version: int | None = None) -> bool:
        """
        Atomically replace the match row.

        When expected_version is given the write only succeeds if the
        stored row still has that version.
        """

    @abstractmethod
    def find_by_room_code(self, room_code: str) -> MatchRecord | None:
        pass

    @abstractmethod
    def lookup_display_name(self, identity: str) -> str | None:
        """Best-effort profile name for an identity."""

    @abstractmethod
    def list_match_ids(self) -> list[str]:
        pass

    def room_code_exists(self, room_code: str) -> bool:
        return self.find_by_room_code(room_code) is not None

    def load_match_config(
        self, match_id: str
    ) -> tuple[MatchStatus, MatchSetup, list[Participant]] | None:
        record = self.load_match(match_id)
        if record is None:
            return None
        return record.status, record.setup, list(record.participants)

    def load_participants(self, match_id: str) -> list[Participant]:
        record = self.load_match(match_id)
        return list(record.participants) if record else []

    def persist_live_state(self, match_id: str, state: LiveMatchState) -> bool:
        """Write the live state back, mirroring its status onto the row."""
        record = self.load_match(match_id)
        if record is None:
            return False
        return self.save_match(
            replace(record, live_state=state, status=state.status),
            expected_version=record.version,
        )


class InMemoryMatchStore(MatchStore):
    """
    Dict-backed store.

    Rows are replaced wholesale on save; readers always see either
    the previous or the next committed row.
    """

    def __init__(self):
        self._records: dict[str, MatchRecord] = {}
        self._room_codes: dict[str, str] = {}
        self._profiles: dict[str, str] = {}
        self._lock = threading.Lock()

    def load_match(self, match_id: str) -> MatchRecord | None:
        return self._records.get(match_id)

    def save_match(self, record: MatchRecord, expected_version: int | None = None) -> bool:
        with self._lock:
            current = self._records.get(record.match_id)
            if expected_version is not None:
                current_version = current.version if current else 0
                if current_version != expected_version:
                    logger.warning(
                        "Stale write to match %s: expected version %d, found %d",
                        record.match_id, expected_version, current_version,
                    )
                    return False
            next_version = (current.version if current else 0) + 1
            self._records[record.match_id] = replace(record, version=next_version)
            self._room_codes[record.room_code] = record.match_id
            return True

    def find_by_room_code(self, room_code: str) -> MatchRecord | None:
        match_id = self._room_codes.get(room_code.strip().upper())
        return self._records.get(match_id) if match_id else None

    def lookup_display_name(self, identity: str) -> str | None:
        return self._profiles.get(identity)

    def register_profile(self, identity: str, display_name: str):
        """Record a display name for an identity."""
        self._profiles[identity] = display_name

    def list_match_ids(self) -> list[str]:
        return list(self._records)
