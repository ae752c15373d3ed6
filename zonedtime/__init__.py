from .exceptions import (
    AmbiguityPolicyError,
    InvalidReceiver,
    InvalidTimeZoneData,
    RangeError,
    RepeatedTime,
    SkippedTime,
    UnknownTimeZoneError,
)
from .instant import EpochInstant
from .models import (
    CalendarFields,
    Disambiguation,
    IsoDateTime,
    OffsetResolution,
    TimeZoneIdentifier,
)
from .resolver import TimeZoneResolver, default_resolver
from .tzif import TimeZoneInfo
from .zoned import ZonedDateTime, get_field, is_zoned_date_time

__all__ = [
    "AmbiguityPolicyError",
    "CalendarFields",
    "Disambiguation",
    "EpochInstant",
    "InvalidReceiver",
    "InvalidTimeZoneData",
    "IsoDateTime",
    "OffsetResolution",
    "RangeError",
    "RepeatedTime",
    "SkippedTime",
    "TimeZoneIdentifier",
    "TimeZoneInfo",
    "TimeZoneResolver",
    "UnknownTimeZoneError",
    "ZonedDateTime",
    "default_resolver",
    "get_field",
    "is_zoned_date_time",
]
