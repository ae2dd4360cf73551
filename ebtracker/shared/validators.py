"""Shared validation utilities"""

import re
from datetime import date, datetime, timezone
from typing import Any, Optional, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ValidationError

from .roles import ALL_ROLES

M = TypeVar("M", bound=BaseModel)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: Any) -> Optional[datetime]:
    """
    Normalize a stored or submitted date to an aware UTC datetime.

    Accepts datetimes (naive ones are treated as UTC), dates, ISO 8601 strings
    and None. Unparseable strings return None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")
    return email


def validate_role(role: Optional[str]) -> Optional[str]:
    if role is not None and role not in ALL_ROLES:
        raise ValueError(f"Invalid role. Must be one of: {', '.join(ALL_ROLES)}")
    return role


def parse_payload(model: type[M], data: Optional[dict]) -> M:
    """Validate an action payload, turning pydantic errors into a 400"""
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "data"
        raise HTTPException(status_code=400, detail=f"Invalid {field}: {first.get('msg')}") from e


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def timestamp_key(field: str = "createdAt"):
    """Sort key for documents by a timestamp field; missing values sort oldest"""
    return lambda doc: to_utc(doc.get(field)) or EPOCH


def round_money(amount: float) -> float:
    return round(float(amount or 0), 2)
