from typing import Any, Callable

from .exceptions import InvalidReceiver
from .instant import EpochInstant
from .isocalendar import (
    DAYS_IN_WEEK,
    MONTHS_IN_YEAR,
    canonicalize_calendar,
    days_in_month,
    days_in_year,
    instant_to_fields,
    is_leap_year,
    iso_week_of_year,
)
from .models import (
    CalendarFields,
    Disambiguation,
    IsoDateTime,
    TimeZoneIdentifier,
)
from .resolver import TimeZoneResolver, default_resolver, format_utc_offset

TYPE_NAME = "ZonedDateTime"

# Set by the constructor only; accessors check for it instead of the
# object's shape.
_BRAND = object()


def is_zoned_date_time(value: object) -> bool:
    return getattr(value, "_brand", None) is _BRAND


def _require_zoned(value: object) -> "ZonedDateTime":
    if not is_zoned_date_time(value):
        raise InvalidReceiver(TYPE_NAME)
    return value  # type: ignore[return-value]


_CALENDAR_FIELDS = frozenset(
    (
        "year",
        "month",
        "day",
        "hour",
        "minute",
        "second",
        "millisecond",
        "microsecond",
        "nanosecond",
        "day_of_week",
        "day_of_year",
    )
)

_DERIVED_FIELDS: dict[str, Callable[["ZonedDateTime", CalendarFields], Any]] = {
    "week_of_year": lambda zdt, f: iso_week_of_year(f.year, f.month, f.day)[1],
    "year_of_week": lambda zdt, f: iso_week_of_year(f.year, f.month, f.day)[0],
    "days_in_week": lambda zdt, f: DAYS_IN_WEEK,
    "days_in_month": lambda zdt, f: days_in_month(f.year, f.month),
    "days_in_year": lambda zdt, f: days_in_year(f.year),
    "months_in_year": lambda zdt, f: MONTHS_IN_YEAR,
    "in_leap_year": lambda zdt, f: is_leap_year(f.year),
}


def get_field(receiver: object, name: str) -> Any:
    """
    Read one field of a zoned date/time, checking the receiver first.
    """
    zdt = _require_zoned(receiver)
    if name == "offset_nanoseconds":
        return zdt._offset_nanoseconds()
    if name == "epoch_nanoseconds":
        return zdt._instant.to_nanoseconds()
    if name == "epoch_milliseconds":
        return zdt._instant.epoch_milliseconds

    fields = zdt._calendar_fields()
    if name in _CALENDAR_FIELDS:
        return getattr(fields, name)
    derived = _DERIVED_FIELDS.get(name)
    if derived is None:
        raise ValueError(f"Unknown field: {name!r}")
    return derived(zdt, fields)


def _field_property(name: str) -> property:
    def getter(self: object) -> Any:
        return get_field(self, name)

    getter.__name__ = name
    getter.__doc__ = f"The {name.replace('_', ' ')} in the value's time zone."
    return property(getter)


class ZonedDateTime:
    """
    An exact instant bound to a time zone and calendar.

    Values are immutable. Calendar fields are computed on first access and
    kept; since every computation of them yields the same result, the cache
    needs no locking.
    """

    __slots__ = (
        "_instant",
        "_time_zone",
        "_calendar",
        "_resolver",
        "_fields",
        "_offset",
        "_brand",
    )

    def __init__(
        self,
        epoch_nanoseconds: EpochInstant | int,
        time_zone: TimeZoneIdentifier | str,
        calendar: str = "iso8601",
        *,
        resolver: TimeZoneResolver | None = None,
    ) -> None:
        if is_zoned_date_time(self):
            raise AttributeError(f"{TYPE_NAME} is immutable")
        resolver = resolver or default_resolver
        instant = (
            epoch_nanoseconds
            if isinstance(epoch_nanoseconds, EpochInstant)
            else EpochInstant.from_nanoseconds(epoch_nanoseconds)
        )
        zone = resolver.parse_time_zone_identifier(time_zone)
        calendar_id = canonicalize_calendar(calendar)

        set_slot = object.__setattr__
        set_slot(self, "_instant", instant)
        set_slot(self, "_time_zone", zone)
        set_slot(self, "_calendar", calendar_id)
        set_slot(self, "_resolver", resolver)
        set_slot(self, "_fields", None)
        set_slot(self, "_offset", None)
        set_slot(self, "_brand", _BRAND)

    @classmethod
    def from_fields(
        cls,
        fields: IsoDateTime | CalendarFields,
        time_zone: TimeZoneIdentifier | str,
        calendar: str = "iso8601",
        *,
        disambiguation: Disambiguation | str = Disambiguation.COMPATIBLE,
        resolver: TimeZoneResolver | None = None,
    ) -> "ZonedDateTime":
        """
        Build a value from wall-clock fields. Skipped or repeated times are
        settled by ``disambiguation``.
        """
        resolver = resolver or default_resolver
        zone = resolver.parse_time_zone_identifier(time_zone)
        epoch_ns = resolver.get_epoch_nanoseconds_for(fields, zone, disambiguation)
        return cls(epoch_ns, zone, calendar, resolver=resolver)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{TYPE_NAME} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{TYPE_NAME} is immutable")

    def _offset_nanoseconds(self) -> int:
        offset = self._offset
        if offset is None:
            offset = self._resolver.resolve_offset(
                self._instant, self._time_zone
            ).offset_nanoseconds
            object.__setattr__(self, "_offset", offset)
        return offset

    def _calendar_fields(self) -> CalendarFields:
        fields = self._fields
        if fields is None:
            local_ns = self._instant.to_nanoseconds() + self._offset_nanoseconds()
            fields = instant_to_fields(local_ns)
            object.__setattr__(self, "_fields", fields)
        return fields

    def get_field(self, name: str) -> Any:
        return get_field(self, name)

    def calendar_fields(self) -> CalendarFields:
        return _require_zoned(self)._calendar_fields()

    def to_instant(self) -> EpochInstant:
        return _require_zoned(self)._instant

    def get_zone_id(self) -> TimeZoneIdentifier:
        return _require_zoned(self)._time_zone

    @property
    def time_zone_id(self) -> str:
        return _require_zoned(self)._time_zone.identifier

    @property
    def calendar_id(self) -> str:
        return _require_zoned(self)._calendar

    @property
    def offset(self) -> str:
        return format_utc_offset(get_field(self, "offset_nanoseconds"))

    year = _field_property("year")
    month = _field_property("month")
    day = _field_property("day")
    hour = _field_property("hour")
    minute = _field_property("minute")
    second = _field_property("second")
    millisecond = _field_property("millisecond")
    microsecond = _field_property("microsecond")
    nanosecond = _field_property("nanosecond")
    day_of_week = _field_property("day_of_week")
    day_of_year = _field_property("day_of_year")
    week_of_year = _field_property("week_of_year")
    year_of_week = _field_property("year_of_week")
    days_in_week = _field_property("days_in_week")
    days_in_month = _field_property("days_in_month")
    days_in_year = _field_property("days_in_year")
    months_in_year = _field_property("months_in_year")
    in_leap_year = _field_property("in_leap_year")
    offset_nanoseconds = _field_property("offset_nanoseconds")
    epoch_nanoseconds = _field_property("epoch_nanoseconds")
    epoch_milliseconds = _field_property("epoch_milliseconds")

    def with_time_zone(self, time_zone: TimeZoneIdentifier | str) -> "ZonedDateTime":
        zdt = _require_zoned(self)
        return ZonedDateTime(
            zdt._instant, time_zone, zdt._calendar, resolver=zdt._resolver
        )

    def start_of_day(self) -> "ZonedDateTime":
        """
        The first instant of this value's calendar day in its time zone. When
        midnight is skipped, the first instant after the gap is used.
        """
        zdt = _require_zoned(self)
        fields = zdt._calendar_fields()
        midnight = IsoDateTime(fields.year, fields.month, fields.day)
        resolver = zdt._resolver
        possible = resolver.get_possible_epoch_nanoseconds(midnight, zdt._time_zone)
        if possible:
            epoch_ns = possible[0]
        else:
            epoch_ns = resolver.disambiguate_possible_epoch_nanoseconds(
                possible, zdt._time_zone, midnight, Disambiguation.COMPATIBLE
            )
        return ZonedDateTime(epoch_ns, zdt._time_zone, zdt._calendar, resolver=resolver)

    def get_time_zone_transition(self, direction: str) -> "ZonedDateTime | None":
        """
        The nearest offset change strictly after (``"next"``) or before
        (``"previous"``) this instant, or ``None`` if there is none.
        """
        zdt = _require_zoned(self)
        resolver = zdt._resolver
        if direction == "next":
            transition = resolver.get_next_transition(zdt._instant, zdt._time_zone)
        elif direction == "previous":
            transition = resolver.get_previous_transition(zdt._instant, zdt._time_zone)
        else:
            raise ValueError(f"direction must be 'next' or 'previous', not {direction!r}")
        if transition is None:
            return None
        return ZonedDateTime(transition, zdt._time_zone, zdt._calendar, resolver=resolver)

    def equals(self, other: "ZonedDateTime") -> bool:
        zdt = _require_zoned(self)
        other = _require_zoned(other)
        return (
            zdt._instant == other._instant
            and zdt._time_zone == other._time_zone
            and zdt._calendar == other._calendar
        )

    def __eq__(self, other: object) -> bool:
        if not is_zoned_date_time(other):
            return NotImplemented
        return self.equals(other)  # type: ignore[arg-type]

    def __hash__(self) -> int:
        zdt = _require_zoned(self)
        return hash((zdt._instant, zdt._time_zone, zdt._calendar))

    def __repr__(self) -> str:
        zdt = _require_zoned(self)
        return (
            f"ZonedDateTime({zdt._instant.to_nanoseconds()}, "
            f"{zdt._time_zone.identifier!r}, {zdt._calendar!r})"
        )
