"""
Shape checks shared by the schema builder and the admin edit models
"""
import re
from typing import Optional

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_DIGITS = 10

_url_adapter = TypeAdapter(AnyUrl)


def is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def digit_count(value: str) -> int:
    return sum(1 for ch in value or "" if ch.isdigit())


def is_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Optional form inputs arrive as "" when left empty"""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value
