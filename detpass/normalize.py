"""
detpass - Identifier Normalizer

Turns whatever the user typed into the "website" field into a stable domain
key. The key doubles as the PBKDF2 salt, so two spellings of the same site
must normalize to the same string:

    "https://www.Example.com/login"  -> "example.com"
    "example.com"                    -> "example.com"
    "mail.google.com/?q=1#top"       -> "google.com"

Known limitation: only the last two labels are kept, no public-suffix list
is consulted, so "bbc.co.uk" becomes "co.uk".
"""

import re

# Salt used when the identifier normalizes to nothing
FALLBACK_SALT = "DeterministicPasswordGenSalt"

_SCHEME = re.compile(r"^https?://")
_WWW = re.compile(r"^www\.")


def _normalize_once(raw: str) -> str:
    host = _SCHEME.sub("", raw.lower(), count=1)
    host = _WWW.sub("", host, count=1)
    host = host.split("/")[0].split("?")[0].split("#")[0]

    labels = host.split(".")
    if len(labels) > 2:
        host = ".".join(labels[-2:])
    return host


def normalize_identifier(raw: str) -> str:
    """
    Reduce a URL-like site identifier to its (approximate) registrable domain.

    Never raises. Empty input gives the empty string; anything that is not
    text falls back to its lower-cased string form.

    The single pass is repeated until the result is stable, which makes the
    function idempotent even for hosts like "a.www.com".
    """
    if not raw:
        return ""

    try:
        current = _normalize_once(raw)
        while True:
            again = _normalize_once(current)
            if again == current:
                return current
            current = again
    except (AttributeError, TypeError):
        return str(raw).lower()


def salt_for(normalized_domain: str) -> str:
    """Salt text for a normalized domain (fixed fallback when empty)."""
    return normalized_domain or FALLBACK_SALT
