import html
import re

import bleach

from registry.exceptions import InvalidInput
from registry.models import BLOOD_GROUP_CHOICES, MIN_DONOR_AGE

# optional leading +, then 6-15 digits
PHONE_RE = re.compile(r'^\+?[0-9]{6,15}$')

BLOOD_GROUPS = [value for value, _ in BLOOD_GROUP_CHOICES]


def clean_text(v) -> str:
    """Plain text with markup removed; entities are decoded, never stored escaped."""
    return html.unescape(bleach.clean(str(v or ''), tags=set(), strip=True)).strip()


def validate_phone(phone) -> str:
    phone = str(phone or '').strip()
    if not PHONE_RE.match(phone):
        raise InvalidInput('Phone format invalid')
    return phone


def validate_age(age) -> int:
    try:
        age = int(age)
    except (TypeError, ValueError):
        raise InvalidInput('Age must be a whole number')
    if age < MIN_DONOR_AGE:
        raise InvalidInput(f'Donor must be at least {MIN_DONOR_AGE} years old')
    return age


def validate_blood_group(value) -> str:
    value = str(value or '').strip().upper()
    if value not in BLOOD_GROUPS:
        raise InvalidInput(f'Blood group must be one of {", ".join(BLOOD_GROUPS)}')
    return value
