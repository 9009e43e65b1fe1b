"""
detpass - Deterministic Password Generator

Regenerate a strong, site-specific password from memory instead of storing it.

Key Features:
- Deterministic: same inputs -> same password, every time
- Nothing stored: no vault, no files, no network
- Strong stretching: PBKDF2-HMAC-SHA256, 100,000 iterations
- Policy aware: length 8-128, any mix of upper/lower/digit/special,
  one guaranteed character per enabled class

Components:
- normalize.py: URL -> domain key (also the salt)
- crypto.py: PBKDF2 key stretching (one file!)
- charset.py: Character classes and alphabets
- mapper.py: Derived block -> password
- strength.py: Weak / Moderate / Strong label
- generator.py: The public derive_password() operation
- config.py / clipboard.py: Settings and display helpers for the CLI

Usage:
    from detpass import derive_password, classify_strength

    pw = derive_password("master", "https://www.example.com/login", "key")
    classify_strength(pw)       # Strength.STRONG

    dpw                         # interactive menu (dpw_main.py)
"""

from .charset import CharClass, PasswordPolicy
from .errors import (
    DerivationError,
    DerivationUnavailable,
    EmptyCharsetPolicy,
    InvalidLength,
)
from .generator import LatestRequest, derive_password, derive_password_async
from .mapper import Keystream
from .normalize import normalize_identifier
from .strength import Strength, classify_strength

__version__ = "1.0.0"
__author__ = "detpass Team"

__all__ = [
    "CharClass",
    "DerivationError",
    "DerivationUnavailable",
    "EmptyCharsetPolicy",
    "InvalidLength",
    "Keystream",
    "LatestRequest",
    "PasswordPolicy",
    "Strength",
    "classify_strength",
    "derive_password",
    "derive_password_async",
    "normalize_identifier",
]
