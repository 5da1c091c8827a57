"""
Boundary generation for multipart/form-data bodies.

Generated boundaries follow curl's layout: 24 dashes followed by 16
alphanumeric characters, e.g. ``------------------------afb08437765cfecd``.
"""

import random
import re
import string
from typing import Optional, Tuple


BOUNDARY_PREFIX = "-" * 24
BOUNDARY_RANDOM_LENGTH = 16
BOUNDARY_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase

# RFC 2046 boundary characters: DIGIT / ALPHA / "'" / "(" / ")" / "+" / "_" / "," / "-" / "." / "/" / ":" / "=" / "?"
# Plus space (but not as last char). Max 70 chars.
BOUNDARY_CHAR_PATTERN = re.compile(r"^[0-9A-Za-z'()+_,\-./:=? ]{1,70}$")


def generate() -> str:
    """
    Return a fresh 40 character boundary.

    Uses the process-wide ``random`` generator. Boundaries only need to avoid
    colliding with field content, so a non-cryptographic source is enough.
    """
    suffix = "".join(random.choices(BOUNDARY_ALPHABET, k=BOUNDARY_RANDOM_LENGTH))
    return BOUNDARY_PREFIX + suffix


def validate_boundary(boundary: str) -> Tuple[bool, Optional[str]]:
    """
    Validate boundary string per RFC 2046.

    Returns (is_valid, error_message).
    """
    if not boundary:
        return False, "Boundary cannot be empty"

    if len(boundary) > 70:
        return False, f"Boundary exceeds maximum length of 70 (got {len(boundary)})"

    if boundary.endswith(' '):
        return False, "Boundary cannot end with a space"

    if not BOUNDARY_CHAR_PATTERN.fullmatch(boundary):
        invalid_chars = sorted(set(c for c in boundary if not re.match(r"[0-9A-Za-z'()+_,\-./:=? ]", c)))
        return False, f"Boundary contains invalid characters: {''.join(invalid_chars)!r}"

    return True, None
