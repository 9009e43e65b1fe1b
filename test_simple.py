"""
detpass - Self-Tests

Run with: python test_simple.py   (or simply: pytest)

Proves the properties the generator promises:
- Determinism and exact length
- Every character comes from the enabled alphabets
- One guaranteed character per enabled class
- URL normalization is stable (and idempotent)
- Bad policies fail before PBKDF2 runs
- PBKDF2 failures surface as DerivationUnavailable, never a weaker fallback
"""

import asyncio
import base64
import hashlib
import threading
import time

import pytest
from cryptography.exceptions import UnsupportedAlgorithm
from pydantic import ValidationError

from detpass import (
    CharClass,
    DerivationError,
    DerivationUnavailable,
    EmptyCharsetPolicy,
    InvalidLength,
    Keystream,
    LatestRequest,
    PasswordPolicy,
    Strength,
    classify_strength,
    derive_password,
    derive_password_async,
    normalize_identifier,
)
from detpass import crypto
from detpass.charset import ALPHABETS, GUARANTEE_ALPHABETS, build_charset
from detpass.clipboard import ClearTimer
from detpass.config import GeneratorSettings
from detpass.mapper import keystream_from_block, map_password


MASTER = "CorrectHorse1!"
URL = "https://www.Example.com/login"
KEY = "k1"

NO_CLASSES = PasswordPolicy(
    include_uppercase=False,
    include_lowercase=False,
    include_numbers=False,
    include_special=False,
)


def reference_block(master, domain, key, username="", salt=None):
    """PBKDF2 computed independently with hashlib."""
    material = (master + domain + key + username).encode("utf-8")
    return hashlib.pbkdf2_hmac("sha256", material, (salt or domain).encode("utf-8"), 100_000, 32)


def classes_present(password):
    return {cls for cls in CharClass if any(c in ALPHABETS[cls] for c in password)}


# =============================================================================
# Identifier Normalizer
# =============================================================================

@pytest.mark.parametrize("raw, expected", [
    ("https://www.Example.com/login", "example.com"),
    ("example.com", "example.com"),
    ("http://example.com", "example.com"),
    ("HTTP://Sub.Example.COM?x=1#top", "example.com"),
    ("mail.google.com/?q=1#top", "google.com"),
    ("www.github.com", "github.com"),
    ("deep.sub.domain.example.org/path", "example.org"),
    ("localhost:8080/admin", "localhost:8080"),
    ("bbc.co.uk", "co.uk"),
    ("ftp://files.example.com", "ftp:"),
    ("", ""),
])
def test_normalize(raw, expected):
    assert normalize_identifier(raw) == expected


def test_normalize_idempotent():
    corpus = [
        "https://www.Example.com/login", "a.www.com", "www.www.foo",
        "https://https://x.y.z", "WWW.", "http://", "#frag", "?q", "a.b.c.d.e",
        "https://www.www.example.co.uk/path?x#y", "  spaced.example.com ",
    ]
    for raw in corpus:
        once = normalize_identifier(raw)
        assert normalize_identifier(once) == once, raw


def test_normalize_never_raises():
    assert normalize_identifier(None) == ""
    assert normalize_identifier(12345) == "12345"


# =============================================================================
# KDF Adapter
# =============================================================================

def test_kdf():
    """Test key stretching against an independent PBKDF2."""
    material = crypto.secret_material(MASTER, "example.com", KEY, "")
    block1 = crypto.derive_block(material, "example.com")
    block2 = crypto.derive_block(material, "example.com")

    assert block1 == block2, "KDF should be deterministic"
    assert len(block1) == crypto.BLOCK_SIZE == 32
    assert block1 == reference_block(MASTER, "example.com", KEY)


def test_kdf_fallback_salt():
    material = crypto.secret_material(MASTER, "", KEY)
    expected = reference_block(MASTER, "", KEY, salt="DeterministicPasswordGenSalt")
    assert crypto.derive_block(material, "") == expected


def test_secret_material_order():
    assert crypto.secret_material("m", "d", "k", "u") == "mdku"
    assert crypto.secret_material("m", "d", "k", None) == "mdk"


def test_kdf_unavailable(monkeypatch):
    def broken(**kwargs):
        raise UnsupportedAlgorithm("PBKDF2 not supported")

    monkeypatch.setattr(crypto, "PBKDF2HMAC", broken)
    with pytest.raises(DerivationUnavailable) as info:
        derive_password(MASTER, URL, KEY)
    assert MASTER not in str(info.value)
    assert isinstance(info.value, RuntimeError)
    assert isinstance(info.value.__cause__, UnsupportedAlgorithm)


def exception_chain(exc):
    seen = []
    while exc is not None and exc not in seen:
        seen.append(exc)
        exc = exc.__cause__ or exc.__context__
    return seen


def test_kdf_rejection_carries_no_secret(monkeypatch):
    class Echoing:
        """Stand-in primitive whose error message repeats its input."""

        def __init__(self, **kwargs):
            pass

        def derive(self, data):
            raise ValueError(f"rejected {data!r}")

    monkeypatch.setattr(crypto, "PBKDF2HMAC", Echoing)
    with pytest.raises(DerivationUnavailable) as info:
        derive_password(MASTER, URL, KEY, "alice")

    chain = exception_chain(info.value)
    assert chain == [info.value]
    for exc in chain:
        assert "CorrectHorse" not in repr(exc) and "CorrectHorse" not in str(exc.args)


def test_lone_surrogate_input():
    """Surrogate-escaped terminal input is encoded like a browser TextEncoder."""
    master = "pass\udce9word"
    assert crypto.encode_text(master) == "pass\ufffdword".encode("utf-8")
    # A surrogate pair joins into one character
    assert crypto.encode_text("\ud83d\ude00") == "\U0001F600".encode("utf-8")

    policy = PasswordPolicy(length=16)
    pw = derive_password(master, "example.com", KEY, "", policy)
    expected = map_password(reference_block("pass\ufffdword", "example.com", KEY), policy)
    assert pw == expected


def test_wipe():
    buf = bytearray(b"secret bytes")
    crypto.wipe(buf)
    assert buf == bytearray(len(b"secret bytes"))


# =============================================================================
# Charset Policy
# =============================================================================

def test_build_charset_order():
    full, per_class = build_charset(PasswordPolicy())
    assert full == (ALPHABETS[CharClass.UPPERCASE] + ALPHABETS[CharClass.LOWERCASE]
                    + ALPHABETS[CharClass.DIGIT] + ALPHABETS[CharClass.SPECIAL])
    assert len(full) == 26 + 26 + 10 + 26
    assert per_class[CharClass.SPECIAL] == "!@#$%^&*"
    assert ALPHABETS[CharClass.SPECIAL] == "!@#$%^&*()_+-=[]{}|;:,.<>?"


def test_build_charset_subset():
    full, per_class = build_charset(PasswordPolicy(include_uppercase=False, include_special=False))
    assert full == "abcdefghijklmnopqrstuvwxyz0123456789"
    assert list(per_class) == [CharClass.LOWERCASE, CharClass.DIGIT]


def test_build_charset_empty():
    with pytest.raises(EmptyCharsetPolicy):
        build_charset(NO_CLASSES)


def test_policy_from_mapping():
    wire = PasswordPolicy.from_mapping({
        "length": 20, "includeUppercase": True, "includeLowercase": False,
        "includeNumbers": True, "includeSpecial": False,
    })
    snake = PasswordPolicy.from_mapping({"length": 20, "include_lowercase": False,
                                         "include_special": False})
    assert wire == snake
    assert wire.enabled_classes() == [CharClass.UPPERCASE, CharClass.DIGIT]
    with pytest.raises(TypeError):
        PasswordPolicy.from_mapping({"includeEmoji": True})


# =============================================================================
# Password Mapper
# =============================================================================

def test_mapper_formula():
    block = bytes(range(32))
    # Base pass gives "ABCDEFGHIJ", then slots 0-3 get A, b, 2, $
    assert map_password(block, PasswordPolicy(length=10)) == "Ab2$EFGHIJ"


def test_mapper_reuses_block_cyclically():
    policy = PasswordPolicy(length=6, include_lowercase=False,
                            include_numbers=False, include_special=False)
    assert map_password(bytes([0, 1]), policy) == "ABABAB"


def test_mapper_special_asymmetry():
    policy = PasswordPolicy(length=3, include_uppercase=False,
                            include_lowercase=False, include_numbers=False)
    # Base alphabet: [10]='_', [11]='+', [25]='?'; slot 0 uses narrow set [10 % 8]='#'
    assert map_password(bytes([10, 11, 25]), policy) == "#+?"


def test_mapper_short_length_slots():
    """Length 4, all classes: slot 0 uppercase ... slot 3 special."""
    block = bytes(range(7, 39))
    pw = map_password(block, PasswordPolicy(length=4))
    assert pw[0] in GUARANTEE_ALPHABETS[CharClass.UPPERCASE]
    assert pw[1] in GUARANTEE_ALPHABETS[CharClass.LOWERCASE]
    assert pw[2] in GUARANTEE_ALPHABETS[CharClass.DIGIT]
    assert pw[3] in GUARANTEE_ALPHABETS[CharClass.SPECIAL]
    assert pw == "Hi9#"


def test_mapper_shorter_than_classes():
    # Only uppercase and lowercase get slots
    assert map_password(bytes(range(32)), PasswordPolicy(length=2)) == "Ab"


def test_mapper_rejects():
    with pytest.raises(InvalidLength):
        map_password(bytes(32), PasswordPolicy(length=0))
    with pytest.raises(EmptyCharsetPolicy):
        map_password(bytes(32), NO_CLASSES)
    with pytest.raises(ValueError):
        map_password(b"", PasswordPolicy())


def test_keystream_base64():
    block = bytes(range(32))
    stream = keystream_from_block(block, Keystream.BASE64)
    assert stream == base64.b64encode(block)
    assert len(stream) == 44
    assert keystream_from_block(block) == block


# =============================================================================
# Strength Classifier
# =============================================================================

@pytest.mark.parametrize("password, expected", [
    ("", Strength.WEAK),
    ("Ab1!", Strength.WEAK),
    ("Ab1!Ab1", Strength.WEAK),
    ("abcdefgh", Strength.WEAK),
    ("abcdefgH", Strength.MODERATE),
    ("abcDEF12!@", Strength.MODERATE),
    ("abcdefghijk1", Strength.MODERATE),
    ("abcdefghiJ1", Strength.MODERATE),
    ("abcdefghiJ12", Strength.STRONG),
    ("abcDEF12!@#$", Strength.STRONG),
    ("12345678", Strength.WEAK),
    ("        ", Strength.WEAK),
])
def test_strength(password, expected):
    assert classify_strength(password) is expected


def test_strength_labels():
    assert str(Strength.MODERATE) == "Moderate"
    assert Strength.STRONG == "Strong"


# =============================================================================
# Derivation Orchestrator
# =============================================================================

def test_scenario_full_policy():
    """Example URL, 16 chars, all classes."""
    policy = PasswordPolicy(length=16)
    pw = derive_password(MASTER, URL, KEY, "", policy)

    assert len(pw) == 16
    assert classes_present(pw) == set(CharClass)
    assert derive_password(MASTER, URL, KEY, "", policy) == pw

    expected = map_password(reference_block(MASTER, "example.com", KEY), policy)
    assert pw == expected


def test_scenario_scheme_is_irrelevant():
    policy = PasswordPolicy(length=16)
    assert derive_password(MASTER, "example.com", KEY, "", policy) == \
        derive_password(MASTER, URL, KEY, "", policy)


def test_scenario_no_special():
    full = derive_password(MASTER, URL, KEY, "", PasswordPolicy(length=16))
    pw = derive_password(MASTER, URL, KEY, "", PasswordPolicy(length=16, include_special=False))
    assert not any(c in ALPHABETS[CharClass.SPECIAL] for c in pw)
    assert pw != full


def test_scenario_empty_policy_skips_kdf(monkeypatch):
    calls = []

    def counting(material, salt):
        calls.append(1)
        return bytes(32)

    monkeypatch.setattr(crypto, "derive_block", counting)
    with pytest.raises(EmptyCharsetPolicy):
        derive_password(MASTER, URL, KEY, "", NO_CLASSES)
    with pytest.raises(InvalidLength):
        derive_password(MASTER, URL, KEY, "", PasswordPolicy(length=7))
    assert calls == []

    derive_password(MASTER, URL, KEY, "", PasswordPolicy())
    assert calls == [1]


def test_policy_validation():
    for length in (0, 7, 129, True, "16"):
        with pytest.raises(InvalidLength):
            derive_password(MASTER, URL, KEY, policy=PasswordPolicy(length=length))
    # Empty charset is reported first
    with pytest.raises(EmptyCharsetPolicy):
        derive_password(MASTER, URL, KEY, policy=PasswordPolicy(
            length=0, include_uppercase=False, include_lowercase=False,
            include_numbers=False, include_special=False))
    assert issubclass(EmptyCharsetPolicy, DerivationError)
    assert issubclass(InvalidLength, ValueError)


def test_length_and_containment():
    policies = [
        PasswordPolicy(length=8),
        PasswordPolicy(length=32, include_uppercase=False),
        PasswordPolicy(length=40, include_lowercase=False, include_special=False),
        PasswordPolicy(length=128, include_uppercase=False, include_lowercase=False,
                       include_numbers=False),
    ]
    for policy in policies:
        pw = derive_password(MASTER, URL, KEY, "bob", policy)
        allowed = "".join(ALPHABETS[cls] for cls in policy.enabled_classes())
        assert len(pw) == policy.length
        assert all(c in allowed for c in pw)
        assert classes_present(pw) >= set(policy.enabled_classes())


def test_mapping_policy_and_default():
    as_dict = derive_password(MASTER, URL, KEY, policy={
        "length": 16, "includeUppercase": True, "includeLowercase": True,
        "includeNumbers": True, "includeSpecial": True,
    })
    assert as_dict == derive_password(MASTER, URL, KEY, policy=PasswordPolicy())
    assert as_dict == derive_password(MASTER, URL, KEY)


def test_sensitivity():
    policy = PasswordPolicy(length=16)
    results = {
        derive_password(MASTER, URL, KEY, "", policy),
        derive_password(MASTER + "x", URL, KEY, "", policy),
        derive_password(MASTER, "example.org", KEY, "", policy),
        derive_password(MASTER, URL, "k2", "", policy),
        derive_password(MASTER, URL, KEY, "alice", policy),
        derive_password(MASTER, URL, KEY, "", PasswordPolicy(length=16, include_uppercase=False)),
        derive_password(MASTER, URL, KEY, "", PasswordPolicy(length=16, include_lowercase=False)),
        derive_password(MASTER, URL, KEY, "", PasswordPolicy(length=16, include_numbers=False)),
    }
    assert len(results) == 8


def test_base64_keystream_matches_browser():
    policy = PasswordPolicy(length=16)
    expected = map_password(base64.b64encode(reference_block(MASTER, "example.com", KEY)), policy)
    assert derive_password(MASTER, URL, KEY, policy=policy, keystream=Keystream.BASE64) == expected
    assert derive_password(MASTER, URL, KEY, policy=policy, keystream="base64") == expected


def test_empty_identifier_uses_fallback_salt():
    policy = PasswordPolicy(length=12)
    expected = map_password(reference_block(MASTER, "", KEY, salt="DeterministicPasswordGenSalt"), policy)
    assert derive_password(MASTER, "", KEY, policy=policy) == expected


# =============================================================================
# Async + last-requested-wins
# =============================================================================

def test_async_matches_sync():
    policy = PasswordPolicy(length=20)
    pw = asyncio.run(derive_password_async(MASTER, URL, KEY, "", policy))
    assert pw == derive_password(MASTER, URL, KEY, "", policy)


def test_async_validation_is_synchronous(monkeypatch):
    calls = []
    monkeypatch.setattr(crypto, "derive_block", lambda m, s: calls.append(1) or bytes(32))
    with pytest.raises(EmptyCharsetPolicy):
        asyncio.run(derive_password_async(MASTER, URL, KEY, "", NO_CLASSES))
    assert calls == []


def test_async_kdf_unavailable(monkeypatch):
    def broken(**kwargs):
        raise UnsupportedAlgorithm("PBKDF2 not supported")

    monkeypatch.setattr(crypto, "PBKDF2HMAC", broken)
    with pytest.raises(DerivationUnavailable) as info:
        asyncio.run(derive_password_async(MASTER, URL, KEY))
    assert MASTER not in str(info.value)
    with pytest.raises(DerivationUnavailable):
        asyncio.run(crypto.derive_block_async(crypto.secret_material(MASTER, "example.com", KEY),
                                              "example.com"))


def slow_kdf(material, salt):
    time.sleep(0.3 if material.startswith("slow") else 0.0)
    return hashlib.sha256(material.encode("utf-8")).digest()


def test_async_cancel(monkeypatch):
    monkeypatch.setattr(crypto, "derive_block", slow_kdf)

    async def scenario():
        task = asyncio.ensure_future(derive_password_async("slow", URL, KEY))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())


def test_latest_request_wins(monkeypatch):
    monkeypatch.setattr(crypto, "derive_block", slow_kdf)

    async def scenario():
        latest = LatestRequest()
        stale = asyncio.ensure_future(latest.submit("slow", URL, KEY))
        await asyncio.sleep(0.05)
        newest = await latest.submit("fast", URL, KEY)
        with pytest.raises(asyncio.CancelledError):
            await stale
        return latest, newest

    latest, newest = asyncio.run(scenario())
    assert latest.result == newest
    assert newest == derive_password("fast", URL, KEY)
    latest.clear()
    assert latest.result is None


# =============================================================================
# Settings + display helpers
# =============================================================================

def test_settings_defaults():
    settings = GeneratorSettings()
    assert settings.policy() == PasswordPolicy()
    assert settings.keystream_mode() is Keystream.RAW
    assert settings.clear_after_seconds == 30


def test_settings_validation():
    with pytest.raises(ValidationError):
        GeneratorSettings(default_length=4)
    with pytest.raises(ValidationError):
        GeneratorSettings(keystream="hex")
    with pytest.raises(ValidationError):
        GeneratorSettings(include_uppercase=False, include_lowercase=False,
                          include_numbers=False, include_special=False)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DETPASS_DEFAULT_LENGTH", "20")
    monkeypatch.setenv("DETPASS_SPECIAL", "false")
    monkeypatch.setenv("DETPASS_KEYSTREAM", "BASE64")
    monkeypatch.setenv("DETPASS_CLEAR_SECONDS", "5")
    monkeypatch.setenv("DETPASS_MIN_MASTER_LENGTH", "12")
    settings = GeneratorSettings.from_env()
    assert settings.policy() == PasswordPolicy(length=20, include_special=False)
    assert settings.keystream_mode() is Keystream.BASE64
    assert settings.clear_after_seconds == 5
    assert settings.min_master_length == 12

    monkeypatch.setenv("DETPASS_NUMBERS", "maybe")
    with pytest.raises(ValueError):
        GeneratorSettings.from_env()


def test_clear_timer_fires():
    fired = threading.Event()
    with ClearTimer(0.05, fired.set) as timer:
        timer.start()
        assert fired.wait(2)
        assert not timer.pending


def test_clear_timer_cancel_and_restart():
    count = []
    timer = ClearTimer(0.1, lambda: count.append(1))
    timer.start()
    timer.start()
    time.sleep(0.3)
    assert count == [1]

    timer.start()
    timer.cancel()
    time.sleep(0.2)
    assert count == [1]


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main([__file__, "-v"]))
