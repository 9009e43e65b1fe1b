"""
detpass - Error Kinds

Every failure the derivation core can report. Error values carry only the
kind of failure, never any of the caller's input text.

    EmptyCharsetPolicy     -> no character class enabled (re-prompt)
    InvalidLength          -> length outside the supported bounds (re-prompt)
    DerivationUnavailable  -> the PBKDF2 primitive failed or is missing (fatal)
"""

from typing import Optional


class DerivationError(Exception):
    """Base class for all derivation failures."""


class EmptyCharsetPolicy(DerivationError, ValueError):
    """No character class is enabled, so there is nothing to draw from."""

    def __init__(self):
        super().__init__("At least one character type must be selected")


class InvalidLength(DerivationError, ValueError):
    """Requested password length is outside the supported range."""

    def __init__(self, length: object, minimum: int = 1, maximum: Optional[int] = None):
        self.length = length
        self.minimum = minimum
        self.maximum = maximum
        if maximum is None:
            msg = f"Password length must be at least {minimum} (got {length!r})"
        else:
            msg = f"Password length must be between {minimum} and {maximum} (got {length!r})"
        super().__init__(msg)


class DerivationUnavailable(DerivationError, RuntimeError):
    """The key-stretching primitive is unavailable or rejected the call."""

    def __init__(self):
        super().__init__("Failed to generate password")
