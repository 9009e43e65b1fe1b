"""
detpass - Strength Classifier

Coarse three-level label for a password, computed from the password text
alone. This is a display hint, not an entropy estimate.
"""

import enum
import re

_PREDICATES = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"[0-9]"),
    re.compile(r"[^a-zA-Z0-9]"),
)


class Strength(str, enum.Enum):
    WEAK = "Weak"
    MODERATE = "Moderate"
    STRONG = "Strong"

    def __str__(self) -> str:
        return self.value


def classify_strength(password: str) -> Strength:
    """
    Label a password Weak, Moderate or Strong.

    - shorter than 8            -> Weak
    - 12+ and 3+ classes present -> Strong
    - 8+ and 2+ classes present  -> Moderate
    - anything else              -> Weak

    Classes counted: lowercase, uppercase, digit, non-alphanumeric (ASCII).
    """
    if len(password) < 8:
        return Strength.WEAK

    score = sum(1 for pattern in _PREDICATES if pattern.search(password))

    if len(password) >= 12 and score >= 3:
        return Strength.STRONG
    if score >= 2:
        return Strength.MODERATE
    return Strength.WEAK
