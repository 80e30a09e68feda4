"""
Room codes - Short join tokens for matches.

Format: one uppercase letter followed by five digits, e.g. "K04217".
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import random
import re
import string


ROOM_CODE_LETTERS = string.ascii_uppercase
ROOM_CODE_PATTERN = re.compile(r"^[A-Z]\d{5}$")
MAX_ATTEMPTS = 10


class RoomCodeError(RuntimeError):
    """No free room code could be found."""


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


def is_valid_room_code(code: str) -> bool:
    return bool(ROOM_CODE_PATTERN.match(normalize_room_code(code)))


@dataclass
class RoomCodeAllocator:
    """
    Generates room codes that are not in use yet.

    Usage:
        allocator = RoomCodeAllocator(exists=store.room_code_exists)
        code = allocator.allocate()
    """
    exists: Callable[[str], bool]
    rng: random.Random = field(default_factory=random.Random)
    max_attempts: int = MAX_ATTEMPTS

    def generate(self) -> str:
        letter = self.rng.choice(ROOM_CODE_LETTERS)
        return f"{letter}{self.rng.randrange(100000):05d}"

    def allocate(self) -> str:
        """
        Return an unused code.

        Raises:
            RoomCodeError: every attempt collided
        """
        for _ in range(self.max_attempts):
            code = self.generate()
            if not self.exists(code):
                return code
        raise RoomCodeError(
            f"Failed to generate unique room code after {self.max_attempts} attempts"
        )
