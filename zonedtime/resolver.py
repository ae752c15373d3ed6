import logging
import re
import threading
from typing import Callable

from .exceptions import RangeError, RepeatedTime, SkippedTime, UnknownTimeZoneError
from .instant import NS_PER_DAY, NS_PER_SECOND, EpochInstant, is_valid_epoch_nanoseconds
from .isocalendar import fields_to_instant
from .models import (
    CalendarFields,
    Disambiguation,
    IsoDateTime,
    OffsetResolution,
    TimeZoneIdentifier,
)
from .tzif import TimeZoneInfo

logger = logging.getLogger(__name__)

UTC = "UTC"

NS_PER_MINUTE = 60 * NS_PER_SECOND

# tzdata links to Etc/UTC and Etc/GMT, compared case-insensitively. Other
# zone names are looked up with their exact case.
_UTC_ALIASES = frozenset(
    {
        "utc",
        "etc/utc",
        "uct",
        "etc/uct",
        "universal",
        "etc/universal",
        "zulu",
        "etc/zulu",
        "gmt",
        "etc/gmt",
        "gmt0",
        "etc/gmt0",
        "gmt+0",
        "etc/gmt+0",
        "gmt-0",
        "etc/gmt-0",
        "greenwich",
        "etc/greenwich",
    }
)

_OFFSET_IDENTIFIER = re.compile(
    r"(?P<sign>[+-])(?P<h>\d{2})(?::?(?P<m>\d{2}))?",
    re.ASCII,
)

TimeZoneLike = TimeZoneIdentifier | str
InstantLike = EpochInstant | int
WallClock = IsoDateTime | CalendarFields


def format_offset_time_zone_identifier(offset_minutes: int) -> str:
    sign = "-" if offset_minutes < 0 else "+"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def format_utc_offset(offset_nanoseconds: int) -> str:
    """Exact offset string, e.g. ``+05:30`` or ``-00:25:21``."""
    sign = "-" if offset_nanoseconds < 0 else "+"
    seconds, fraction = divmod(abs(offset_nanoseconds), NS_PER_SECOND)
    minutes, second = divmod(seconds, 60)
    hour, minute = divmod(minutes, 60)
    text = f"{sign}{hour:02d}:{minute:02d}"
    if second or fraction:
        text += f":{second:02d}"
    if fraction:
        text += f".{fraction:09d}".rstrip("0")
    return text


def format_utc_offset_rounded(offset_nanoseconds: int) -> str:
    """Offset string rounded half away from zero to whole minutes."""
    minutes, remainder = divmod(abs(offset_nanoseconds), NS_PER_MINUTE)
    if 2 * remainder >= NS_PER_MINUTE:
        minutes += 1
    if offset_nanoseconds < 0:
        minutes = -minutes
    return format_offset_time_zone_identifier(minutes)


def _epoch_nanoseconds(instant: InstantLike) -> int:
    if isinstance(instant, EpochInstant):
        return instant.to_nanoseconds()
    return EpochInstant.from_nanoseconds(instant).to_nanoseconds()


class TimeZoneResolver:
    """
    Maps instants to UTC offsets and wall-clock times back to instants.

    Zone rule tables are loaded on first use and shared for the lifetime of
    the resolver; they are never modified after loading.
    """

    def __init__(self, loader: Callable[[str], TimeZoneInfo] = TimeZoneInfo.read) -> None:
        self._loader = loader
        self._zones: dict[str, TimeZoneInfo] = {}
        self._lock = threading.Lock()

    def get_time_zone_info(self, name: str) -> TimeZoneInfo:
        zone = self._zones.get(name)
        if zone is not None:
            return zone

        with self._lock:
            zone = self._zones.get(name)
            if zone is None:
                try:
                    zone = self._loader(name)
                except (OSError, ValueError) as exc:
                    raise UnknownTimeZoneError(f"Unknown time zone: {name!r}") from exc
                logger.debug("Loaded time zone %s from %s", name, zone.filepath)
                self._zones[name] = zone
        return zone

    def parse_time_zone_identifier(self, identifier: TimeZoneLike) -> TimeZoneIdentifier:
        if isinstance(identifier, TimeZoneIdentifier):
            identifier = identifier.identifier
        if not isinstance(identifier, str):
            raise TypeError(
                f"Time zone identifier must be a str, not {type(identifier).__name__}"
            )

        if identifier[:1] in ("+", "-"):
            match = _OFFSET_IDENTIFIER.fullmatch(identifier)
            if match is None:
                raise UnknownTimeZoneError(
                    f"Invalid offset time zone identifier: {identifier!r}"
                )
            hours, minutes = int(match.group("h")), int(match.group("m") or 0)
            if hours > 23 or minutes > 59:
                raise UnknownTimeZoneError(
                    f"Offset time zone identifier out of range: {identifier!r}"
                )
            offset_minutes = hours * 60 + minutes
            if match.group("sign") == "-":
                offset_minutes = -offset_minutes
            return TimeZoneIdentifier(
                format_offset_time_zone_identifier(offset_minutes), offset_minutes
            )

        if identifier.lower() in _UTC_ALIASES:
            return TimeZoneIdentifier(UTC)

        self.get_time_zone_info(identifier)
        return TimeZoneIdentifier(identifier)

    def _is_fixed(self, zone: TimeZoneIdentifier) -> bool:
        return zone.offset_minutes is not None or zone.identifier == UTC

    def _offset_nanoseconds(self, epoch_nanoseconds: int, zone: TimeZoneIdentifier) -> int:
        if zone.offset_minutes is not None:
            return zone.offset_minutes * NS_PER_MINUTE
        if zone.identifier == UTC:
            return 0
        info = self.get_time_zone_info(zone.identifier)
        return info.utc_offset_secs(epoch_nanoseconds // NS_PER_SECOND) * NS_PER_SECOND

    def offset_nanoseconds_for(self, instant: InstantLike, time_zone: TimeZoneLike) -> int:
        zone = self.parse_time_zone_identifier(time_zone)
        return self._offset_nanoseconds(_epoch_nanoseconds(instant), zone)

    def resolve_offset(
        self, instant: InstantLike, time_zone: TimeZoneLike
    ) -> OffsetResolution:
        """
        The UTC offset in effect at ``instant``. ``is_overlap`` is set when
        the resulting wall-clock time also occurs under another offset.
        """
        zone = self.parse_time_zone_identifier(time_zone)
        epoch_ns = _epoch_nanoseconds(instant)
        offset = self._offset_nanoseconds(epoch_ns, zone)
        if self._is_fixed(zone):
            return OffsetResolution(offset)

        possible = self._possible_for_local(epoch_ns + offset, zone)
        return OffsetResolution(offset, is_gap=False, is_overlap=len(possible) > 1)

    def _possible_for_local(self, local_nanoseconds: int, zone: TimeZoneIdentifier) -> list[int]:
        if self._is_fixed(zone):
            return [local_nanoseconds - self._offset_nanoseconds(0, zone)]

        # Offsets never change more than once within a day either side, so
        # the offsets a day before and after are the only candidates.
        before = self._offset_nanoseconds(local_nanoseconds - NS_PER_DAY, zone)
        after = self._offset_nanoseconds(local_nanoseconds + NS_PER_DAY, zone)
        candidates = sorted({local_nanoseconds - before, local_nanoseconds - after})
        return [
            candidate
            for candidate in candidates
            if self._offset_nanoseconds(candidate, zone) == local_nanoseconds - candidate
        ]

    def get_possible_epoch_nanoseconds(
        self, fields: WallClock, time_zone: TimeZoneLike
    ) -> list[int]:
        """
        Every instant at which the wall clock reads ``fields``, ascending.
        Empty for a gap, two entries for an overlap.
        """
        zone = self.parse_time_zone_identifier(time_zone)
        possible = self._possible_for_local(fields_to_instant(fields), zone)
        for candidate in possible:
            if not is_valid_epoch_nanoseconds(candidate):
                raise RangeError(f"{fields} in {zone} is outside of supported range")
        return possible

    def possible_offsets_for_wall_clock(
        self, fields: WallClock, time_zone: TimeZoneLike
    ) -> list[OffsetResolution]:
        local_ns = fields_to_instant(fields)
        possible = self.get_possible_epoch_nanoseconds(fields, time_zone)
        overlap = len(possible) > 1
        return [
            OffsetResolution(local_ns - candidate, is_gap=False, is_overlap=overlap)
            for candidate in possible
        ]

    def disambiguate_possible_epoch_nanoseconds(
        self,
        possible: list[int],
        time_zone: TimeZoneLike,
        fields: WallClock,
        disambiguation: Disambiguation | str = Disambiguation.COMPATIBLE,
    ) -> int:
        zone = self.parse_time_zone_identifier(time_zone)
        disambiguation = Disambiguation(disambiguation)

        if len(possible) == 1:
            return possible[0]

        if possible:
            if disambiguation in (Disambiguation.EARLIER, Disambiguation.COMPATIBLE):
                return possible[0]
            if disambiguation is Disambiguation.LATER:
                return possible[-1]
            raise RepeatedTime._for_tz(fields, zone.identifier)

        if disambiguation is Disambiguation.REJECT:
            raise SkippedTime._for_tz(fields, zone.identifier)

        # Shift the wall clock across the gap by the size of the gap.
        local_ns = fields_to_instant(fields)
        before = self._offset_nanoseconds(local_ns - NS_PER_DAY, zone)
        after = self._offset_nanoseconds(local_ns + NS_PER_DAY, zone)
        gap = after - before
        if disambiguation is Disambiguation.EARLIER:
            result = self._possible_for_local(local_ns - gap, zone)[0]
        else:
            result = self._possible_for_local(local_ns + gap, zone)[-1]
        if not is_valid_epoch_nanoseconds(result):
            raise RangeError(f"{fields} in {zone} is outside of supported range")
        return result

    def get_epoch_nanoseconds_for(
        self,
        fields: WallClock,
        time_zone: TimeZoneLike,
        disambiguation: Disambiguation | str = Disambiguation.COMPATIBLE,
    ) -> int:
        zone = self.parse_time_zone_identifier(time_zone)
        possible = self.get_possible_epoch_nanoseconds(fields, zone)
        return self.disambiguate_possible_epoch_nanoseconds(
            possible, zone, fields, disambiguation
        )

    def get_next_transition(
        self, instant: InstantLike, time_zone: TimeZoneLike
    ) -> EpochInstant | None:
        zone = self.parse_time_zone_identifier(time_zone)
        if self._is_fixed(zone):
            return None
        epoch_ns = _epoch_nanoseconds(instant)
        info = self.get_time_zone_info(zone.identifier)
        return self._transition_instant(info.next_transition(epoch_ns // NS_PER_SECOND))

    def get_previous_transition(
        self, instant: InstantLike, time_zone: TimeZoneLike
    ) -> EpochInstant | None:
        zone = self.parse_time_zone_identifier(time_zone)
        if self._is_fixed(zone):
            return None
        epoch_ns = _epoch_nanoseconds(instant)
        # Latest whole second strictly before the instant
        before = -(-epoch_ns // NS_PER_SECOND) - 1
        info = self.get_time_zone_info(zone.identifier)
        return self._transition_instant(info.previous_transition(before))

    @staticmethod
    def _transition_instant(epoch_seconds: int | None) -> EpochInstant | None:
        if epoch_seconds is None:
            return None
        epoch_ns = epoch_seconds * NS_PER_SECOND
        if not is_valid_epoch_nanoseconds(epoch_ns):
            return None
        return EpochInstant(epoch_ns)


default_resolver = TimeZoneResolver()
