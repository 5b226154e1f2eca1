"""Field validation shared by request schemas."""
import re
from datetime import date, datetime, time, timezone
from typing import Annotated

from pydantic import AfterValidator

FULL_NAME_RE = re.compile(r"^[a-zA-Z\s]{2,100}$")
PHONE_RE = re.compile(r"^[0-9]{10}$")
# 8+ chars with a lowercase, an uppercase, a digit and a special character
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


def check_full_name(value: str) -> str:
    if not FULL_NAME_RE.match(value):
        raise ValueError("Full name must be 2-100 characters and contain only letters and spaces")
    return value


def check_phone(value: str) -> str:
    if not PHONE_RE.match(value):
        raise ValueError("Phone must be exactly 10 digits")
    return value


def check_password(value: str) -> str:
    if not PASSWORD_RE.match(value):
        raise ValueError(
            "Password must be at least 8 characters with 1 uppercase, 1 number, and 1 special character"
        )
    return value


def check_not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def check_not_future(value: date) -> date:
    """Reject dates after the end of the current UTC day."""
    if value > datetime.now(timezone.utc).date():
        raise ValueError("Transaction date cannot be in the future")
    return value


FullName = Annotated[str, AfterValidator(check_full_name)]
Phone = Annotated[str, AfterValidator(check_phone)]
Password = Annotated[str, AfterValidator(check_password)]
NonBlank = Annotated[str, AfterValidator(check_not_blank)]
PastOrToday = Annotated[date, AfterValidator(check_not_future)]


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar month in UTC."""
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def year_range(year: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar year in UTC."""
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )
