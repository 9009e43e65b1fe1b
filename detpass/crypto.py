"""
detpass - Cryptography Module

This file contains the one cryptographic operation of the generator: key
stretching. It is deliberately small:
- One primitive (PBKDF2-HMAC-SHA256 from the 'cryptography' library)
- Fixed parameters (they ARE the algorithm version)
- No state, no caching, no randomness

Derivation Architecture:
    1. master secret + normalized domain + secret key + username -> input
    2. input + salt (normalized domain) -> PBKDF2 -> 32-byte derived block
    3. derived block -> mapper.py -> password

Why the parameters are frozen:
    - The same inputs must give the same password forever
    - Changing hash, iterations or length changes EVERY derived password
    - A change therefore means a new ALGORITHM_VERSION, never a silent upgrade
"""

import asyncio
import logging
from typing import Optional

from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DerivationUnavailable
from .normalize import salt_for

logger = logging.getLogger("detpass.crypto")


# =============================================================================
# Configuration
# =============================================================================

ALGORITHM_VERSION = "pbkdf2-sha256-100k-v1"

BLOCK_SIZE = 32              # 256-bit derived block
PBKDF2_ITERATIONS = 100_000  # tens of milliseconds on a modern CPU


# =============================================================================
# Secret Material
# =============================================================================

def secret_material(
    master_secret: str,
    normalized_domain: str,
    secret_key: str,
    username: Optional[str] = "",
) -> str:
    """
    Assemble the PBKDF2 input from the caller's secrets.

    Order is part of the contract: master secret, normalized domain, secret
    key, username. No separators. Inserting a delimiter (or reordering)
    changes every password ever derived.

    Args:
        master_secret: The user's master password
        normalized_domain: Output of normalize_identifier()
        secret_key: Second, user-held secret
        username: Optional account name (None is treated as "")

    Returns:
        Concatenated input text
    """
    return master_secret + normalized_domain + secret_key + (username or "")


# =============================================================================
# Key Derivation
# =============================================================================

def encode_text(text: str) -> bytes:
    """
    UTF-8 bytes of text, encoded the way a browser TextEncoder does.

    Lone surrogates (e.g. from surrogateescape'd terminal input) become
    U+FFFD instead of failing, so such input still derives a password.
    """
    utf16 = text.encode("utf-16-le", "surrogatepass")
    return utf16.decode("utf-16-le", "replace").encode("utf-8")


def derive_block(material: str, salt: str) -> bytes:
    """
    Stretch secret material into a 32-byte pseudorandom block with PBKDF2.

    Why PBKDF2-HMAC-SHA256?
    - Available everywhere (browsers ship it in WebCrypto, Python via OpenSSL)
    - 100,000 iterations make each offline guess cost real CPU time
    - Deterministic: same material + salt -> same block

    Args:
        material: Output of secret_material()
        salt: Normalized domain (or the fallback salt, see salt_for())

    Returns:
        32-byte derived block

    Raises:
        DerivationUnavailable: If the primitive is missing or rejects the call.
            Never replaced by a weaker mechanism.
    """
    # Encoded outside the try: nothing chained below may carry the secret
    material_bytes = encode_text(material)
    salt_bytes = encode_text(salt_for(salt))

    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=BLOCK_SIZE,
            salt=salt_bytes,
            iterations=PBKDF2_ITERATIONS,
        )
        return kdf.derive(material_bytes)
    except (UnsupportedAlgorithm, InternalError) as exc:
        logger.debug("PBKDF2 failed: %s", type(exc).__name__)
        raise DerivationUnavailable() from exc
    except (TypeError, ValueError) as exc:
        # Class name only, the message could echo arguments
        rejected = type(exc).__name__

    # Raised outside the handler so the rejection is not kept as __context__
    logger.debug("PBKDF2 rejected the call: %s", rejected)
    raise DerivationUnavailable()


async def derive_block_async(material: str, salt: str) -> bytes:
    """
    Same as derive_block(), run in a worker thread.

    This is the single suspension point of an asynchronous derivation. If the
    awaiting task is cancelled, the result of the worker is simply dropped.
    """
    return await asyncio.to_thread(derive_block, material, salt)


# =============================================================================
# Helpers
# =============================================================================

def wipe(block: bytearray) -> None:
    """
    Overwrite a derived block with zeros.

    Best effort only: Python may have copied the bytes elsewhere already, but
    the buffer we hold no longer carries key material once this returns.
    """
    for i in range(len(block)):
        block[i] = 0
