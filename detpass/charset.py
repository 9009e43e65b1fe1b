"""
detpass - Charset Policy

Which character classes a password may use, and the alphabets behind them.

Two alphabets exist for the Special class:
- ALPHABETS[SPECIAL]           "!@#$%^&*()_+-=[]{}|;:,.<>?"  (base mapping)
- GUARANTEE_ALPHABETS[SPECIAL] "!@#$%^&*"                    (inclusion slot)

Existing passwords depend on both, so they must stay different.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from .errors import EmptyCharsetPolicy

logger = logging.getLogger("detpass.charset")


class CharClass(enum.Enum):
    """Character classes, declared in their canonical order."""

    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    DIGIT = "digit"
    SPECIAL = "special"


ALPHABETS: Dict[CharClass, str] = {
    CharClass.UPPERCASE: "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    CharClass.LOWERCASE: "abcdefghijklmnopqrstuvwxyz",
    CharClass.DIGIT: "0123456789",
    CharClass.SPECIAL: "!@#$%^&*()_+-=[]{}|;:,.<>?",
}

GUARANTEE_ALPHABETS: Dict[CharClass, str] = dict(ALPHABETS)
GUARANTEE_ALPHABETS[CharClass.SPECIAL] = "!@#$%^&*"

# Accepted keys for PasswordPolicy.from_mapping(): wire name -> field name
_FIELD_ALIASES = {
    "length": "length",
    "includeUppercase": "include_uppercase",
    "includeLowercase": "include_lowercase",
    "includeNumbers": "include_numbers",
    "includeSpecial": "include_special",
}


@dataclass(frozen=True)
class PasswordPolicy:
    """
    Length and enabled classes of a derived password.

    Nothing is checked at construction time: build_charset() rejects a
    policy without classes and the generator checks the length bounds, both
    before any key stretching happens.
    """

    length: int = 16
    include_uppercase: bool = True
    include_lowercase: bool = True
    include_numbers: bool = True
    include_special: bool = True

    def enabled_classes(self) -> List[CharClass]:
        """Enabled classes in canonical order (this order is their rank)."""
        flags = {
            CharClass.UPPERCASE: self.include_uppercase,
            CharClass.LOWERCASE: self.include_lowercase,
            CharClass.DIGIT: self.include_numbers,
            CharClass.SPECIAL: self.include_special,
        }
        return [cls for cls in CharClass if flags[cls]]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PasswordPolicy":
        """
        Build a policy from a dict using either wire names
        (includeUppercase, ...) or field names (include_uppercase, ...).
        Missing keys keep their defaults; unknown keys raise TypeError.
        """
        kwargs = {}
        for key, value in data.items():
            field = _FIELD_ALIASES.get(key, key)
            if field not in cls.__dataclass_fields__:
                raise TypeError(f"Unknown policy option: {key}")
            kwargs[field] = value
        return cls(**kwargs)


def build_charset(policy: PasswordPolicy) -> Tuple[str, Dict[CharClass, str]]:
    """
    Build the alphabets for a policy.

    Returns:
        (full_alphabet, per_class) where
        - full_alphabet concatenates the enabled classes' base alphabets in
          canonical order
        - per_class maps each enabled class to the alphabet used for its
          inclusion slot (narrow Special set)

    Raises:
        EmptyCharsetPolicy: If no class is enabled
    """
    enabled = policy.enabled_classes()
    if not enabled:
        logger.debug("Rejected policy: no character class enabled")
        raise EmptyCharsetPolicy()

    full_alphabet = "".join(ALPHABETS[cls] for cls in enabled)
    per_class = {cls: GUARANTEE_ALPHABETS[cls] for cls in enabled}
    return full_alphabet, per_class
