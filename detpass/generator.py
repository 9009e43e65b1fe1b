"""
detpass - Derivation Orchestrator

The public entry points. One derivation runs strictly in this order:

    validate policy -> normalize identifier -> PBKDF2 -> map -> (classify)

Validation is synchronous and happens before any key stretching, so a bad
policy never costs a PBKDF2 run. PBKDF2 is the only step that may suspend
(derive_password_async). Nothing is cached or kept between calls.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from . import crypto
from .charset import PasswordPolicy, build_charset
from .errors import InvalidLength
from .mapper import Keystream, keystream_from_block, map_password
from .normalize import normalize_identifier

logger = logging.getLogger("detpass.generator")

MIN_LENGTH = 8
MAX_LENGTH = 128

PolicyLike = Union[PasswordPolicy, Mapping[str, Any], None]


def _coerce_policy(policy: PolicyLike) -> PasswordPolicy:
    if policy is None:
        return PasswordPolicy()
    if isinstance(policy, PasswordPolicy):
        return policy
    return PasswordPolicy.from_mapping(policy)


def validate_policy(policy: PolicyLike) -> PasswordPolicy:
    """
    Check a policy before derivation.

    Raises:
        EmptyCharsetPolicy: No class enabled (checked first)
        InvalidLength: Length not an integer in [MIN_LENGTH, MAX_LENGTH]
    """
    policy = _coerce_policy(policy)
    build_charset(policy)

    length = policy.length
    if isinstance(length, bool) or not isinstance(length, int) \
            or not MIN_LENGTH <= length <= MAX_LENGTH:
        logger.debug("Rejected policy: length out of bounds")
        raise InvalidLength(length, MIN_LENGTH, MAX_LENGTH)
    return policy


def _finish(block: bytes, policy: PasswordPolicy, keystream: Keystream) -> str:
    buf = bytearray(block)
    try:
        stream = buf if keystream is Keystream.RAW else keystream_from_block(buf, keystream)
        return map_password(stream, policy)
    finally:
        crypto.wipe(buf)


def _log_request(policy: PasswordPolicy, keystream: Keystream) -> None:
    logger.debug(
        "Deriving password: length=%d classes=%s keystream=%s iterations=%d",
        policy.length,
        ",".join(cls.value for cls in policy.enabled_classes()),
        keystream.value,
        crypto.PBKDF2_ITERATIONS,
    )


def derive_password(
    master_secret: str,
    site_identifier: str,
    secret_key: str,
    username: Optional[str] = "",
    policy: PolicyLike = None,
    keystream: Union[Keystream, str] = Keystream.RAW,
) -> str:
    """
    Derive the password for one site. Blocks for the duration of PBKDF2.

    Args:
        master_secret: The user's master password
        site_identifier: URL or domain as typed (normalized internally)
        secret_key: Second user-held secret
        username: Optional account name, "" when absent
        policy: PasswordPolicy, a mapping of its options, or None for the
            default (16 chars, all classes)
        keystream: Keystream.RAW (default) or Keystream.BASE64 to match the
            original browser generator

    Returns:
        The password (exactly policy.length characters)

    Raises:
        EmptyCharsetPolicy, InvalidLength: Before any key stretching
        DerivationUnavailable: PBKDF2 failed; never retried here
    """
    policy = validate_policy(policy)
    keystream = Keystream(keystream)
    _log_request(policy, keystream)

    domain = normalize_identifier(site_identifier)
    material = crypto.secret_material(master_secret, domain, secret_key, username)
    block = crypto.derive_block(material, domain)
    return _finish(block, policy, keystream)


async def derive_password_async(
    master_secret: str,
    site_identifier: str,
    secret_key: str,
    username: Optional[str] = "",
    policy: PolicyLike = None,
    keystream: Union[Keystream, str] = Keystream.RAW,
) -> str:
    """
    Asynchronous derive_password(). PBKDF2 runs in a worker thread and is
    the only await; cancelling the task while it runs returns nothing.
    """
    policy = validate_policy(policy)
    keystream = Keystream(keystream)
    _log_request(policy, keystream)

    domain = normalize_identifier(site_identifier)
    material = crypto.secret_material(master_secret, domain, secret_key, username)
    block = await crypto.derive_block_async(material, domain)
    return _finish(block, policy, keystream)


class LatestRequest:
    """
    Last-requested-wins wrapper around derive_password_async().

    Each submit() cancels the derivation still in flight from an earlier
    submit(). A superseded call raises asyncio.CancelledError instead of
    returning, and `result` only ever holds the newest completed password.

    Usage:
        latest = LatestRequest()
        password = await latest.submit(master, url, key, policy=policy)
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.result: Optional[str] = None

    async def submit(self, *args, **kwargs) -> str:
        self._generation += 1
        generation = self._generation
        self.cancel()

        task = asyncio.ensure_future(derive_password_async(*args, **kwargs))
        self._task = task
        password = await task

        if generation != self._generation:
            # Finished after a newer request was made
            raise asyncio.CancelledError()
        self.result = password
        return password

    def cancel(self) -> None:
        """Cancel the in-flight derivation, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def clear(self) -> None:
        """Forget the last result."""
        self.result = None
