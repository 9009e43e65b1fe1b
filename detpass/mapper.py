"""
detpass - Password Mapper

Turns a derived block into a password that satisfies a PasswordPolicy.

Algorithm:
    1. Position i takes full_alphabet[ks[i % len(ks)] % len(full_alphabet)].
       The keystream is reused cyclically for long passwords, never
       re-derived.
    2. The k-th enabled class (canonical order) overwrites position k with
       per_class[cls][ks[k] % len(per_class[cls])].

When the password is shorter than the number of enabled classes, the
lowest-ranked classes get no slot and may be missing from the result. This
is observed behavior that existing passwords rely on; it is kept as is.
"""

import base64
import enum
from typing import Union

from .charset import PasswordPolicy, build_charset
from .errors import InvalidLength

BytesLike = Union[bytes, bytearray, memoryview]


class Keystream(enum.Enum):
    """How a derived block is presented to the mapper."""

    RAW = "raw"        # the 32 block bytes
    BASE64 = "base64"  # ASCII codes of the block's base64 text (44 values)


def keystream_from_block(block: BytesLike, mode: Keystream = Keystream.RAW) -> bytes:
    """
    Produce the mapper keystream for a derived block.

    Keystream.BASE64 reproduces passwords made by the original browser
    generator, which indexed its alphabets with the characters of
    btoa(derivedBits) instead of the raw bytes.
    """
    if mode is Keystream.BASE64:
        return base64.b64encode(bytes(block))
    return bytes(block)


def map_password(block: BytesLike, policy: PasswordPolicy) -> str:
    """
    Map a keystream onto the policy's alphabets.

    Pure and deterministic: same (block, policy) -> same password.

    Args:
        block: Derived block (or a keystream from keystream_from_block())
        policy: Length and enabled classes

    Returns:
        Password of exactly policy.length characters

    Raises:
        EmptyCharsetPolicy: No class enabled
        InvalidLength: Length below 1
        ValueError: Empty block
    """
    full_alphabet, per_class = build_charset(policy)
    length = policy.length
    if length < 1:
        raise InvalidLength(length)
    if not block:
        raise ValueError("Derived block is empty")

    size = len(block)
    chars = [full_alphabet[block[i % size] % len(full_alphabet)] for i in range(length)]

    # Give every enabled class one slot, by rank
    for rank, cls in enumerate(policy.enabled_classes()):
        if rank >= length:
            break
        alphabet = per_class[cls]
        chars[rank] = alphabet[block[rank % size] % len(alphabet)]

    return "".join(chars)
