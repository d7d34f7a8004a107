"""Masking helpers for identities that end up in log lines."""

import hashlib
import re

_PHONE_DIGIT_BEFORE_LAST_FOUR = re.compile(r"\d(?=\d{4})")
_EMAIL_PARTS = re.compile(r"^(.{1,2})[^@]*(@.*)$")


def mask_email(email: str) -> str:
    """Keep the first two characters and the domain: "al***@x.ac.uk"."""
    match = _EMAIL_PARTS.fullmatch(email)
    if match is None:
        return "***"
    return f"{match.group(1)}***{match.group(2)}"


def mask_phone(phone: str) -> str:
    """Replace all but the last four digits: "+********0123"."""
    return _PHONE_DIGIT_BEFORE_LAST_FOUR.sub("*", phone)


def token_fingerprint(token: str) -> str:
    """Short one-way reference for correlating log lines about a token."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]
