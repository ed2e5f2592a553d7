"""Claim code generation.

A claim code is a 4-digit shared secret the receiver shows the giver at
handoff. It is drawn uniformly from 1000-9999 using the OS CSPRNG.
"""

import secrets
from collections.abc import Container

CODE_MIN = 1000
CODE_MAX = 9999
_MAX_DRAWS = 32


def draw_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def draw_unique_code(in_use: Container[str]) -> str:
    """Draw a code not currently held by another claimed listing.

    With at most a few hundred live claims in the 9000-code space the first
    draw almost always succeeds; after _MAX_DRAWS the last draw is returned
    and verification stays scoped by owner.
    """
    code = draw_code()
    for _ in range(_MAX_DRAWS):
        if code not in in_use:
            return code
        code = draw_code()
    return code


def is_well_formed(code: str) -> bool:
    return len(code) == 4 and code.isdigit() and CODE_MIN <= int(code) <= CODE_MAX
