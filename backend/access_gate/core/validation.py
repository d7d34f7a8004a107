"""Input validators for access submissions.

Format checks only: no carrier lookup for phones, no MX lookup for
emails. Institutional-domain matching works on the parsed domain, never
on the whole address string.
"""

import re

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from access_gate.core.config import settings

# local@domain with no whitespace and a dot somewhere in the domain
_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_university_email(email: str, suffix: str | None = None) -> bool:
    """Check that an email belongs to the institutional domain.

    The domain must equal the suffix or end with "." + suffix after
    case-folding. "a@x.ac.uk" passes, "a@ac.uk.com" and
    "a@x.ac.uk.evil.com" do not.

    Args:
        email: Submitted email address.
        suffix: Domain suffix; defaults to settings.institutional_email_suffix.

    Returns:
        True if the address is well-formed and institutional.
    """
    if not isinstance(email, str):
        return False

    candidate = email.strip()
    if not _EMAIL_SHAPE.fullmatch(candidate):
        return False

    _, domain = candidate.casefold().split("@")
    expected = (suffix or settings.institutional_email_suffix).casefold().strip(".")
    return domain == expected or domain.endswith(f".{expected}")


def normalize_email(email: str) -> str | None:
    """Validate general email syntax and return the lower-cased address.

    Args:
        email: Submitted email address.

    Returns:
        Normalized address, or None if the syntax is invalid.
    """
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return None
    return result.normalized.lower()


def normalize_phone(phone: str) -> str | None:
    """Parse an international phone number into E.164 form.

    Numbers must carry their country code ("+44 7911 123123"). Only the
    numbering-plan format is checked.

    Args:
        phone: Submitted phone number.

    Returns:
        E.164 string (e.g. "+447911123123"), or None if invalid.
    """
    if not isinstance(phone, str) or not phone.strip():
        return None
    try:
        parsed = phonenumbers.parse(phone.strip(), None)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
