"""
detpass - Guided CLI Journey (single run, no user input)

Run: python demo.py

This script simulates what a user would see in the interactive menu
(`dpw_main.py`) and explains what happens under the hood. It walks through:
 - URL normalization (the domain key and salt)
 - Generating a password, and regenerating the same one later
 - The same site typed differently
 - Changing options (no special characters, short lengths)
 - Validation failures (no character type selected, bad length)
 - Strength labels
 - Browser-compatible keystream

All steps print the UI-style output plus a short "behind the scenes" note.
"""

import time
from textwrap import indent

from detpass import (
    EmptyCharsetPolicy,
    InvalidLength,
    Keystream,
    PasswordPolicy,
    classify_strength,
    derive_password,
    normalize_identifier,
)
from detpass import crypto
from detpass.mapper import map_password


LINE = "=" * 70

MASTER = "CorrectHorse1!"
SECRET_KEY = "k1"


def step(title: str, menu_option: str, code_path: str):
    print(f"\n{LINE}\n{title}  (menu option {menu_option}, code: {code_path})\n{LINE}")


def explain(title: str, body: str):
    print(f"\n[Behind the scenes] {title}")
    print(indent(body.strip(), "  "))


def main():
    step("detpass - Guided CLI Journey", "-", "dpw_main.py")

    # 1) Normalization (option 3)
    step("Normalize URL", "3", "detpass/normalize.py:normalize_identifier")
    for url in ["https://www.Example.com/login", "example.com",
                "mail.google.com/?q=1#top", "bbc.co.uk"]:
        print(f"  {url:<32} -> {normalize_identifier(url)}")
    explain(
        "Domain key",
        "Scheme, 'www.', path, query and fragment are dropped and only the last two labels kept. "
        "The result is both part of the PBKDF2 input and the PBKDF2 salt. "
        "No public-suffix list: 'bbc.co.uk' becomes 'co.uk'.",
    )

    # 2) Generate (option 1)
    step("Generate password", "1", "detpass/generator.py:derive_password")
    url = "https://www.Example.com/login"
    policy = PasswordPolicy(length=16)
    started = time.perf_counter()
    pw = derive_password(MASTER, url, SECRET_KEY, "", policy=policy)
    elapsed = (time.perf_counter() - started) * 1000
    print(f"Prompts: url={url}, master=typed, secret key=typed, username=(empty)")
    print(f"Output: Generated: {pw}")
    print(f"        Strength: {classify_strength(pw)}")
    explain(
        "Key stretching",
        f"PBKDF2-HMAC-SHA256 with {crypto.PBKDF2_ITERATIONS:,} iterations turned "
        f"master+domain+key+username into a {crypto.BLOCK_SIZE}-byte block ({elapsed:.0f} ms). "
        "Each block byte picks a character; the first slots are then overwritten so every "
        "enabled character type appears at least once.",
    )

    # 3) Regenerate later
    step("Regenerate (next week, other machine)", "1", "detpass/generator.py:derive_password")
    again = derive_password(MASTER, "example.com", SECRET_KEY, "", policy=policy)
    print("Prompts: url=example.com (typed differently)")
    print(f"Output: Generated: {again}")
    print(f"Same password: {again == pw}")
    explain(
        "Nothing stored",
        "Determinism replaces storage: the same inputs always give the same password.",
    )

    # 4) Options (option 5)
    step("Change options", "5", "detpass/charset.py:build_charset")
    no_special = derive_password(MASTER, url, SECRET_KEY, "",
                                 policy=PasswordPolicy(length=16, include_special=False))
    print(f"Without special characters: {no_special}")
    with_user = derive_password(MASTER, url, SECRET_KEY, "alice", policy=policy)
    print(f"Second account (username=alice): {with_user}")

    block = crypto.derive_block(crypto.secret_material(MASTER, "example.com", SECRET_KEY), "example.com")
    short = map_password(block, PasswordPolicy(length=4))
    print(f"Mapper at length 4 (below the UI minimum): {short}")
    explain(
        "Guaranteed slots",
        "Slot 0 is uppercase, 1 lowercase, 2 digit, 3 special (in that order, for enabled types). "
        "When the length is smaller than the number of enabled types, the last types get no slot.",
    )

    # 5) Validation failures
    step("Validation failures", "1", "detpass/generator.py:validate_policy")
    try:
        derive_password(MASTER, url, SECRET_KEY, policy=PasswordPolicy(
            include_uppercase=False, include_lowercase=False,
            include_numbers=False, include_special=False))
    except EmptyCharsetPolicy as e:
        print(f"Expected failure: {e}")
    try:
        derive_password(MASTER, url, SECRET_KEY, policy=PasswordPolicy(length=4))
    except InvalidLength as e:
        print(f"Expected failure: {e}")
    explain(
        "Fail fast",
        "Policies are checked before PBKDF2 runs; errors never contain any of the inputs.",
    )

    # 6) Strength (option 4)
    step("Check strength", "4", "detpass/strength.py:classify_strength")
    for sample in ["abc", "abcdefgh", "abcDEF12!@", "abcDEF12!@#$"]:
        print(f"  {sample:<14} -> {classify_strength(sample)}")

    # 7) Browser-compatible keystream
    step("Browser-compatible keystream", "5", "detpass/mapper.py:keystream_from_block")
    legacy = derive_password(MASTER, url, SECRET_KEY, policy=policy, keystream=Keystream.BASE64)
    print(f"Output: Generated: {legacy}")
    explain(
        "Keystream",
        "The original browser generator indexed its alphabets with the base64 text of the "
        "derived block. Keystream.BASE64 reproduces those passwords.",
    )

    step("Exit", "0", "dpw_main.py:main_menu")
    print("Goodbye!")


if __name__ == "__main__":
    main()
