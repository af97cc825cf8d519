"""Six-digit one-time verification codes.

Codes are not checked for collisions with other live codes: with a million
possible values, a five-minute lifetime and low issue volume, a clash is an
accepted risk rather than a correctness problem.
"""

from __future__ import annotations

import re
import secrets

CODE_LENGTH = 6

_CODE_PATTERN = re.compile(r"^\d{6}$")


def generate_code() -> str:
    """Return a random 6-digit decimal code, leading zeros preserved."""
    return f"{secrets.randbelow(10**CODE_LENGTH):0{CODE_LENGTH}d}"


def is_valid_code(code: str) -> bool:
    return bool(_CODE_PATTERN.match(code))
