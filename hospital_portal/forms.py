"""
Per-field checks for the portal's create/update forms.
"""

import re
from typing import Dict, Iterable, Mapping, Optional, Sequence

from hospital_portal.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^(?:2547|07)\d{8}$")     # 2547XXXXXXXX or 07XXXXXXXX
PHONE_STRIP_RE = re.compile(r"[\s\-+]")


def clean_phone(phone: str) -> str:
    return PHONE_STRIP_RE.sub("", phone or "")


def is_valid_phone(phone: str) -> bool:
    return bool(phone) and bool(PHONE_RE.match(clean_phone(phone)))


def is_valid_email(email: str) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email.strip()))


def validate(data: Mapping[str, str], required: Iterable[str] = (), email: Iterable[str] = (),
             phone: Iterable[str] = (), choices: Optional[Mapping[str, Sequence[str]]] = None) -> Dict[str, str]:
    """Return ``{field: message}`` for every failing field (empty when valid)."""
    errors: Dict[str, str] = {}
    for name in required:
        if not str(data.get(name) or "").strip():
            errors[name] = f"{name.replace('_', ' ').capitalize()} is required"
    for name in email:
        value = data.get(name)
        if name not in errors and value and not is_valid_email(value):
            errors[name] = "Enter a valid email address"
    for name in phone:
        value = data.get(name)
        if name not in errors and value and not is_valid_phone(value):
            errors[name] = "Enter a valid phone number (2547XXXXXXXX or 07XXXXXXXX)"
    for name, allowed in (choices or {}).items():
        value = data.get(name)
        if name not in errors and value and value not in allowed:
            errors[name] = "Choose one of: " + ", ".join(allowed)
    return errors


def require_valid(data: Mapping[str, str], **rules) -> None:
    errors = validate(data, **rules)
    if errors:
        raise ValidationError(errors)
