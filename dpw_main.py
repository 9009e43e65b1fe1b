"""
detpass - Interactive Menu

Main user interface for the deterministic password generator.
Features:
- Generate a site password from master password + secret key (+ username)
- Show the normalized domain for a URL
- Copy the last password to the clipboard
- Check the strength of any password
- Change password options (length, character types, keystream)
- Auto-clear of the last password after a fixed delay
"""

import os
import sys
import getpass
import logging
from dataclasses import replace
from typing import Dict, Optional

from detpass import (
    DerivationError,
    DerivationUnavailable,
    Keystream,
    PasswordPolicy,
    classify_strength,
    derive_password,
    normalize_identifier,
)
from detpass.clipboard import ClearTimer, clear_clipboard, copy_to_clipboard
from detpass.config import GeneratorSettings
from detpass.generator import MAX_LENGTH, MIN_LENGTH


class MenuState:
    """What the menu remembers between commands. Never written to disk."""

    def __init__(self, settings: GeneratorSettings):
        self.settings = settings
        self.policy: PasswordPolicy = settings.policy()
        self.keystream: Keystream = settings.keystream_mode()
        self.password: Optional[str] = None
        self.copied: Optional[str] = None
        self.timer = ClearTimer(settings.clear_after_seconds, self.forget)

    def remember(self, password: str) -> None:
        self.password = password
        self.timer.start()

    def forget(self) -> None:
        if self.copied is not None:
            clear_clipboard(self.copied)
            self.copied = None
        if self.password is not None:
            self.password = None
            print("\n[Password cleared for security]")


def clear_screen():
    os.system("cls" if os.name == "nt" else "clear")


def pause():
    input("\nPress Enter to continue...")


def yes_no(prompt: str, default: bool) -> bool:
    hint = "Y/n" if default else "y/N"
    answer = input(f"{prompt} [{hint}]: ").strip().lower()
    if not answer:
        return default
    return answer in ('y', 'yes')


def describe_policy(policy: PasswordPolicy) -> str:
    names = [cls.value for cls in policy.enabled_classes()] or ["none"]
    return f"length {policy.length}, {', '.join(names)}"


def validate_inputs(url: str, master: str, secret_key: str,
                    policy: PasswordPolicy, min_master: int) -> Dict[str, str]:
    """Form-level checks done before calling into detpass."""
    errors = {}
    if not url.strip():
        errors['url'] = "Website URL is required"
    if not master:
        errors['master'] = "Master password is required"
    elif len(master) < min_master:
        errors['master'] = f"Master password should be at least {min_master} characters"
    if not secret_key.strip():
        errors['secret_key'] = "Secret key is required"
    if not policy.enabled_classes():
        errors['options'] = "At least one character type must be selected"
    return errors


def cmd_generate(state: MenuState):
    clear_screen()
    print("=== Generate Password ===\n")
    print(f"Options: {describe_policy(state.policy)}\n")
    url = input("Website URL: ").strip()
    normalized = normalize_identifier(url)
    if normalized:
        print(f"Normalized: {normalized}")
    master = getpass.getpass("Master password: ")
    secret_key = getpass.getpass("Secret key: ")
    username = input("Username (optional): ").strip()

    errors = validate_inputs(url, master, secret_key, state.policy,
                             state.settings.min_master_length)
    if errors:
        print()
        for msg in errors.values():
            print(f"ERROR: {msg}")
        pause()
        return

    try:
        pw = derive_password(master, url, secret_key, username,
                             policy=state.policy, keystream=state.keystream)
    except DerivationUnavailable:
        print("\nERROR: Failed to generate password. Please try again.")
        pause()
        return
    except DerivationError as e:
        print(f"\nERROR: {e}")
        pause()
        return

    state.remember(pw)
    print(f"\nGenerated: {pw}")
    print(f"Strength: {classify_strength(pw)}")
    print(f"\nPassword will be cleared automatically in {state.settings.clear_after_seconds:g} seconds.")
    if yes_no("Copy to clipboard?", False):
        copy_last(state)
    pause()


def copy_last(state: MenuState):
    if not state.password:
        print("Nothing to copy (generate a password first).")
        return
    if copy_to_clipboard(state.password):
        state.copied = state.password
        print("✓ Copied to clipboard!")
    else:
        print("Copy failed: no clipboard available.")


def cmd_copy(state: MenuState):
    clear_screen()
    print("=== Copy Last Password ===\n")
    copy_last(state)
    pause()


def cmd_normalize(state: MenuState):
    clear_screen()
    print("=== Normalize URL ===\n")
    url = input("Website URL: ").strip()
    normalized = normalize_identifier(url)
    print(f"\nNormalized: {normalized or '(empty)'}")
    pause()


def cmd_strength(state: MenuState):
    clear_screen()
    print("=== Check Strength ===\n")
    pw = getpass.getpass("Password to check: ")
    print(f"\nStrength: {classify_strength(pw)}")
    pause()


def cmd_options(state: MenuState):
    clear_screen()
    print("=== Password Options ===\n")
    policy = state.policy
    raw = input(f"Length ({MIN_LENGTH}-{MAX_LENGTH}) [{policy.length}]: ").strip()
    try:
        length = int(raw) if raw else policy.length
    except ValueError:
        print("Not a number, keeping current length.")
        length = policy.length
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        print(f"Out of range, keeping {policy.length}.")
        length = policy.length

    new_policy = replace(
        policy,
        length=length,
        include_uppercase=yes_no("Uppercase (A-Z)?", policy.include_uppercase),
        include_lowercase=yes_no("Lowercase (a-z)?", policy.include_lowercase),
        include_numbers=yes_no("Numbers (0-9)?", policy.include_numbers),
        include_special=yes_no("Special (!@#$...)?", policy.include_special),
    )
    if not new_policy.enabled_classes():
        print("\nERROR: At least one character type must be selected. Options unchanged.")
        pause()
        return

    compat = yes_no("Browser-compatible keystream (base64)?",
                    state.keystream is Keystream.BASE64)
    state.keystream = Keystream.BASE64 if compat else Keystream.RAW
    state.policy = new_policy
    print(f"\n✓ Options: {describe_policy(new_policy)}, keystream {state.keystream.value}")
    pause()


def cmd_clear(state: MenuState):
    clear_screen()
    print("=== Clear Now ===\n")
    state.timer.cancel()
    if state.password is None and state.copied is None:
        print("Nothing to clear.")
    state.forget()
    pause()


def printMenu(state: MenuState):
    print("detpass - Deterministic Password Generator")
    print("=" * 44)
    print(f"Options: {describe_policy(state.policy)}")
    print(f"Keystream: {state.keystream.value}")
    print(f"Last password: {'held' if state.password else '-'}")
    print("\n 1) Generate password")
    print(" 2) Copy last password")
    print(" 3) Normalize URL")
    print(" 4) Check password strength")
    print(" 5) Password options")
    print(" 6) Clear now")
    print(" 0) Exit")


def main_menu(settings: GeneratorSettings):
    state = MenuState(settings)
    commands = {
        '1': cmd_generate,
        '2': cmd_copy,
        '3': cmd_normalize,
        '4': cmd_strength,
        '5': cmd_options,
        '6': cmd_clear,
    }
    with state.timer:
        try:
            while True:
                clear_screen()
                printMenu(state)
                c = input("\n> ").strip()
                if c == '0':
                    break
                cmd = commands.get(c)
                if cmd:
                    cmd(state)
        finally:
            state.forget()
    print("\nGoodbye!")


def main():
    try:
        settings = GeneratorSettings.from_env()
    except ValueError as e:
        # pydantic's ValidationError is a ValueError
        print(f"ERROR: invalid DETPASS_* setting: {e}")
        sys.exit(2)
    logging.basicConfig(level=settings.log_level)
    try:
        main_menu(settings)
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
