from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TimeZoneResolution:
    """
    Resolution of a timezone at a specific instant.

    The offset is constant over ``[interval_start, interval_end)``, both given
    in epoch seconds. ``None`` means the interval is unbounded on that side.
    """

    timezone_name: str
    utc_offset_secs: int
    is_dst: bool
    abbreviation: str | None
    interval_start: int | None
    interval_end: int | None

    def contains(self, epoch_seconds: int) -> bool:
        return (self.interval_start is None or self.interval_start <= epoch_seconds) and (
            self.interval_end is None or epoch_seconds < self.interval_end
        )


@dataclass(frozen=True)
class TimeTypeInfo:
    """
    Represents a ttinfo structure in a TZif file.
    """

    utc_offset_secs: int
    is_dst: bool
    abbrev_index: int


@dataclass(frozen=True)
class OffsetResolution:
    offset_nanoseconds: int
    is_gap: bool = False
    is_overlap: bool = False


@dataclass(frozen=True)
class TimeZoneIdentifier:
    """
    A validated time zone: a named rule set or a fixed offset in minutes.
    """

    identifier: str
    offset_minutes: int | None = None

    @property
    def is_offset(self) -> bool:
        return self.offset_minutes is not None

    def __str__(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class IsoDateTime:
    """
    A wall-clock date and time in the proleptic ISO-8601 calendar.
    """

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    millisecond: int = 0
    microsecond: int = 0
    nanosecond: int = 0

    def __str__(self) -> str:
        sign = "-" if self.year < 0 else ""
        fraction = self.millisecond * 1_000_000 + self.microsecond * 1_000 + self.nanosecond
        text = (
            f"{sign}{abs(self.year):04d}-{self.month:02d}-{self.day:02d}"
            f"T{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        )
        if fraction:
            text += f".{fraction:09d}".rstrip("0")
        return text


@dataclass(frozen=True)
class CalendarFields:
    """
    The full calendar breakdown of a local instant.
    """

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    millisecond: int
    microsecond: int
    nanosecond: int
    day_of_week: int  # Monday=1 ... Sunday=7
    day_of_year: int

    def to_iso_date_time(self) -> IsoDateTime:
        return IsoDateTime(
            self.year,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
            self.millisecond,
            self.microsecond,
            self.nanosecond,
        )


class Disambiguation(Enum):
    """
    How to pick an instant for a wall-clock time that is skipped or repeated.
    """

    COMPATIBLE = "compatible"
    EARLIER = "earlier"
    LATER = "later"
    REJECT = "reject"
