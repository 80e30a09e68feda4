"""
Session - Match records, room codes and the match manager.

The manager owns every write to a match: joins, status changes and
plays all run through it one at a time per match.
"""

from .store import MatchStore, MatchRecord, InMemoryMatchStore
from .room_codes import RoomCodeAllocator, RoomCodeError, normalize_room_code, is_valid_room_code
from .manager import MatchManager, creator_only

__all__ = [
    "MatchStore",
    "MatchRecord",
    "InMemoryMatchStore",
    "RoomCodeAllocator",
    "RoomCodeError",
    "normalize_room_code",
    "is_valid_room_code",
    "MatchManager",
    "creator_only",
]
