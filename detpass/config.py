"""
detpass - Settings

User-facing defaults for the interactive generator, read from environment
variables:

    DETPASS_DEFAULT_LENGTH    = <8..128>           (default 16)
    DETPASS_UPPERCASE         = <bool>             (default true)
    DETPASS_LOWERCASE         = <bool>             (default true)
    DETPASS_NUMBERS           = <bool>             (default true)
    DETPASS_SPECIAL           = <bool>             (default true)
    DETPASS_CLEAR_SECONDS     = <seconds>          (default 30)
    DETPASS_MIN_MASTER_LENGTH = <chars>            (default 8)
    DETPASS_KEYSTREAM         = raw | base64       (default raw)
    DETPASS_LOG_LEVEL         = DEBUG | INFO | ... (default WARNING)

The PBKDF2 parameters are NOT settings; see crypto.py.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .charset import PasswordPolicy
from .generator import MAX_LENGTH, MIN_LENGTH
from .mapper import Keystream

logger = logging.getLogger("detpass.config")

_ENV_PREFIX = "DETPASS_"
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_flag(name: str) -> Optional[bool]:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{_ENV_PREFIX}{name} must be a boolean, got {raw!r}")


class GeneratorSettings(BaseModel):
    """Validated generator settings."""

    default_length: int = Field(default=16, ge=MIN_LENGTH, le=MAX_LENGTH)
    include_uppercase: bool = True
    include_lowercase: bool = True
    include_numbers: bool = True
    include_special: bool = True
    clear_after_seconds: float = Field(default=30.0, gt=0)
    min_master_length: int = Field(default=8, ge=1)
    keystream: str = Field(default="raw")
    log_level: str = Field(default="WARNING")

    @field_validator("keystream")
    @classmethod
    def validate_keystream(cls, v: str) -> str:
        """Keystream must name a Keystream mode."""
        v = v.lower()
        if v not in {mode.value for mode in Keystream}:
            raise ValueError(f"Unsupported keystream mode: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @model_validator(mode="after")
    def validate_some_class_enabled(self) -> "GeneratorSettings":
        """Defaults must describe a usable policy."""
        if not (self.include_uppercase or self.include_lowercase
                or self.include_numbers or self.include_special):
            raise ValueError("At least one character type must be enabled")
        return self

    def policy(self) -> PasswordPolicy:
        """Default PasswordPolicy described by these settings."""
        return PasswordPolicy(
            length=self.default_length,
            include_uppercase=self.include_uppercase,
            include_lowercase=self.include_lowercase,
            include_numbers=self.include_numbers,
            include_special=self.include_special,
        )

    def keystream_mode(self) -> Keystream:
        return Keystream(self.keystream)

    @classmethod
    def from_env(cls) -> "GeneratorSettings":
        """Create settings from DETPASS_* environment variables.

        Unset variables keep their defaults.

        Raises:
            pydantic.ValidationError: If a value is out of range.
            ValueError: If a boolean variable cannot be parsed.
        """
        values = {}
        env = {
            "default_length": "DEFAULT_LENGTH",
            "clear_after_seconds": "CLEAR_SECONDS",
            "min_master_length": "MIN_MASTER_LENGTH",
            "keystream": "KEYSTREAM",
            "log_level": "LOG_LEVEL",
        }
        for field, name in env.items():
            raw = os.environ.get(_ENV_PREFIX + name)
            if raw is not None:
                values[field] = raw.strip()

        flags = {
            "include_uppercase": "UPPERCASE",
            "include_lowercase": "LOWERCASE",
            "include_numbers": "NUMBERS",
            "include_special": "SPECIAL",
        }
        for field, name in flags.items():
            flag = _env_flag(name)
            if flag is not None:
                values[field] = flag

        settings = cls(**values)
        logger.debug("Loaded settings from environment: %s", sorted(values))
        return settings
