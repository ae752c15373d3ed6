"""
Proleptic ISO-8601 calendar arithmetic on integer nanoseconds.

Everything here is exact integer math so that years far from the epoch
convert without drift. Day numbers count days since 1970-01-01.
"""

from .exceptions import RangeError
from .instant import NS_PER_DAY, NS_PER_SECOND
from .models import CalendarFields, IsoDateTime

ISO_CALENDAR = "iso8601"

NS_PER_MICROSECOND = 1_000
NS_PER_MILLISECOND = 1_000_000
NS_PER_MINUTE = 60 * NS_PER_SECOND
NS_PER_HOUR = 60 * NS_PER_MINUTE

DAYS_IN_WEEK = 7
MONTHS_IN_YEAR = 12

_DAYS_PER_400_YEARS = 146_097
# days from 0000-03-01 to 1970-01-01
_EPOCH_SHIFT = 719_468

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

_TIME_BOUNDS = (
    ("hour", 23),
    ("minute", 59),
    ("second", 59),
    ("millisecond", 999),
    ("microsecond", 999),
    ("nanosecond", 999),
)


def canonicalize_calendar(calendar: str) -> str:
    if not isinstance(calendar, str):
        raise TypeError(f"Calendar must be a str, not {type(calendar).__name__}")
    if calendar.lower() != ISO_CALENDAR:
        raise RangeError(f"Unsupported calendar: {calendar!r}")
    return ISO_CALENDAR


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def days_in_month(year: int, month: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _DAYS_IN_MONTH[month - 1]


def days_from_civil(year: int, month: int, day: int) -> int:
    # Eras are 400-year cycles starting on March 1st so that the leap day
    # is the last day of each computational year.
    if month <= 2:
        year -= 1
    era = year // 400
    year_of_era = year - era * 400
    day_of_year = (153 * ((month + 9) % 12) + 2) // 5 + day - 1
    day_of_era = (
        year_of_era * 365 + year_of_era // 4 - year_of_era // 100 + day_of_year
    )
    return era * _DAYS_PER_400_YEARS + day_of_era - _EPOCH_SHIFT


def civil_from_days(days: int) -> tuple[int, int, int]:
    days += _EPOCH_SHIFT
    era = days // _DAYS_PER_400_YEARS
    day_of_era = days - era * _DAYS_PER_400_YEARS
    year_of_era = (
        day_of_era
        - day_of_era // 1460
        + day_of_era // 36524
        - day_of_era // (_DAYS_PER_400_YEARS - 1)
    ) // 365
    day_of_year = day_of_era - (365 * year_of_era + year_of_era // 4 - year_of_era // 100)
    month_index = (5 * day_of_year + 2) // 153  # March=0
    day = day_of_year - (153 * month_index + 2) // 5 + 1
    month = month_index + 3 if month_index < 10 else month_index - 9
    year = year_of_era + era * 400 + (1 if month <= 2 else 0)
    return year, month, day


def day_of_week(days: int) -> int:
    """ISO weekday for a day number, Monday=1 ... Sunday=7."""
    # 1970-01-01 was a Thursday
    return (days + 3) % 7 + 1


def day_of_year(year: int, month: int, day: int) -> int:
    return days_from_civil(year, month, day) - days_from_civil(year, 1, 1) + 1


def weeks_in_year(year: int) -> int:
    jan1 = day_of_week(days_from_civil(year, 1, 1))
    if jan1 == 4 or (jan1 == 3 and is_leap_year(year)):
        return 53
    return 52


def iso_week_of_year(year: int, month: int, day: int) -> tuple[int, int]:
    """
    Return ``(year_of_week, week_of_year)`` in the ISO-8601 week-numbering
    calendar, where week 1 is the week containing the first Thursday.
    """
    days = days_from_civil(year, month, day)
    week = (day_of_year(year, month, day) - day_of_week(days) + 10) // 7
    if week < 1:
        return year - 1, weeks_in_year(year - 1)
    if week > weeks_in_year(year):
        return year + 1, 1
    return year, week


def instant_to_fields(local_nanoseconds: int) -> CalendarFields:
    """
    Break nanoseconds since the epoch, already shifted by the UTC offset,
    into calendar fields.
    """
    days, ns_of_day = divmod(local_nanoseconds, NS_PER_DAY)
    year, month, day = civil_from_days(days)
    hour, rem = divmod(ns_of_day, NS_PER_HOUR)
    minute, rem = divmod(rem, NS_PER_MINUTE)
    second, rem = divmod(rem, NS_PER_SECOND)
    millisecond, rem = divmod(rem, NS_PER_MILLISECOND)
    microsecond, nanosecond = divmod(rem, NS_PER_MICROSECOND)
    return CalendarFields(
        year=year,
        month=month,
        day=day,
        hour=hour,
        minute=minute,
        second=second,
        millisecond=millisecond,
        microsecond=microsecond,
        nanosecond=nanosecond,
        day_of_week=day_of_week(days),
        day_of_year=days - days_from_civil(year, 1, 1) + 1,
    )


def validate_iso_date_time(fields: IsoDateTime | CalendarFields) -> None:
    for name in ("year", "month", "day") + tuple(name for name, _ in _TIME_BOUNDS):
        value = getattr(fields, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{name} must be an int, not {type(value).__name__}")

    if not 1 <= fields.month <= MONTHS_IN_YEAR:
        raise RangeError(f"month must be in 1..12, got {fields.month}")
    max_day = days_in_month(fields.year, fields.month)
    if not 1 <= fields.day <= max_day:
        raise RangeError(
            f"day must be in 1..{max_day} for {fields.year}-{fields.month:02d}, "
            f"got {fields.day}"
        )
    for name, upper in _TIME_BOUNDS:
        value = getattr(fields, name)
        if not 0 <= value <= upper:
            raise RangeError(f"{name} must be in 0..{upper}, got {value}")


def fields_to_instant(fields: IsoDateTime | CalendarFields) -> int:
    """
    Inverse of :func:`instant_to_fields`. Returns local nanoseconds since the
    epoch. Fields outside their unit's range raise ``RangeError``; nothing
    rolls over.
    """
    validate_iso_date_time(fields)
    days = days_from_civil(fields.year, fields.month, fields.day)
    return (
        days * NS_PER_DAY
        + fields.hour * NS_PER_HOUR
        + fields.minute * NS_PER_MINUTE
        + fields.second * NS_PER_SECOND
        + fields.millisecond * NS_PER_MILLISECOND
        + fields.microsecond * NS_PER_MICROSECOND
        + fields.nanosecond
    )
