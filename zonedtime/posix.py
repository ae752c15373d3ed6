import re
from dataclasses import dataclass
from typing import IO

from .exceptions import InvalidTimeZoneData
from .isocalendar import civil_from_days, days_from_civil, days_in_month, is_leap_year

_SECS_PER_DAY = 86_400


def _wall_seconds(days: int, hour: int, minute: int, second: int) -> int:
    return days * _SECS_PER_DAY + hour * 3600 + minute * 60 + second


@dataclass(frozen=True)
class PosixTzJulianDateTime:
    day_of_year: int
    hour: int
    minute: int
    second: int

    def to_local_seconds(self, year: int) -> int:
        # Jn excludes Feb 29. On leap years, days >= 60 are shifted by +1.
        day_index = self.day_of_year - 1
        if is_leap_year(year) and self.day_of_year >= 60:
            day_index += 1
        return _wall_seconds(
            days_from_civil(year, 1, 1) + day_index, self.hour, self.minute, self.second
        )


@dataclass(frozen=True)
class PosixTzOrdinalDateTime:
    day_index: int  # 0..365 (includes Feb 29)
    hour: int
    minute: int
    second: int

    def to_local_seconds(self, year: int) -> int:
        return _wall_seconds(
            days_from_civil(year, 1, 1) + self.day_index,
            self.hour,
            self.minute,
            self.second,
        )


@dataclass(frozen=True)
class PosixTzDateTime:
    month: int
    week: int  # 1..5 (5 = last)
    weekday: int  # POSIX: Sunday=0 ... Saturday=6
    hour: int
    minute: int
    second: int

    def to_local_seconds(self, year: int) -> int:
        first_of_month = days_from_civil(year, self.month, 1)
        # 1970-01-01 was a Thursday (POSIX weekday 4)
        first_weekday = (first_of_month + 4) % 7
        day = 1 + (self.weekday - first_weekday) % 7 + 7 * (self.week - 1)
        last_day = days_in_month(year, self.month)
        while day > last_day:
            day -= 7
        return _wall_seconds(
            first_of_month + day - 1, self.hour, self.minute, self.second
        )


PosixTzRuleDate = PosixTzDateTime | PosixTzJulianDateTime | PosixTzOrdinalDateTime


@dataclass(frozen=True)
class PosixTzInfo:
    posix_string: str
    standard_abbrev: str
    utc_offset_secs: int
    dst_abbrev: str | None
    dst_offset_secs: int | None
    dst_start: PosixTzRuleDate | None
    dst_end: PosixTzRuleDate | None

    @property
    def effective_dst_offset_secs(self) -> int:
        if self.dst_offset_secs is None:
            return self.utc_offset_secs + 3600
        return self.dst_offset_secs

    @property
    def dst_difference_secs(self) -> int | None:
        if self.dst_offset_secs is None:
            return None
        return self.dst_offset_secs - self.utc_offset_secs

    def transitions_in_year(self, year: int) -> tuple[int, int] | None:
        """
        UTC epoch seconds at which DST starts and ends in ``year``, or ``None``
        when the rule has no DST.
        """
        if self.dst_start is None or self.dst_end is None:
            return None
        # Start is expressed in standard wall time, end in DST wall time.
        start = self.dst_start.to_local_seconds(year) - self.utc_offset_secs
        end = self.dst_end.to_local_seconds(year) - self.effective_dst_offset_secs
        return start, end

    def is_dst_at(self, epoch_seconds: int) -> bool:
        year = self._standard_year(epoch_seconds)
        bounds = self.transitions_in_year(year)
        if bounds is None:
            return False
        start, end = bounds
        if start < end:
            return start <= epoch_seconds < end
        # wrap over new year (southern hemisphere rule)
        return epoch_seconds >= start or epoch_seconds < end

    def offset_at(self, epoch_seconds: int) -> tuple[int, bool, str]:
        if self.is_dst_at(epoch_seconds):
            return (
                self.effective_dst_offset_secs,
                True,
                self.dst_abbrev or self.standard_abbrev,
            )
        return self.utc_offset_secs, False, self.standard_abbrev

    def surrounding_transitions(self, epoch_seconds: int) -> tuple[int | None, int | None]:
        """
        The latest rule transition at or before ``epoch_seconds`` and the
        earliest one strictly after it, both in UTC epoch seconds.
        """
        year = self._standard_year(epoch_seconds)
        candidates: list[int] = []
        for y in (year - 1, year, year + 1):
            bounds = self.transitions_in_year(y)
            if bounds is None:
                return None, None
            candidates.extend(bounds)

        previous = max((t for t in candidates if t <= epoch_seconds), default=None)
        following = min((t for t in candidates if t > epoch_seconds), default=None)
        return previous, following

    def _standard_year(self, epoch_seconds: int) -> int:
        # POSIX rules are evaluated against the local standard-time year.
        local_days = (epoch_seconds + self.utc_offset_secs) // _SECS_PER_DAY
        return civil_from_days(local_days)[0]

    @classmethod
    def read(cls, file: IO[bytes]) -> "PosixTzInfo | None":
        # The footer is framed by newlines: "\n<TZ string>\n"
        _ = file.readline()
        posix_line = file.readline()
        if posix_line == b"":
            return None

        posix_string = posix_line.rstrip(b"\n\x00")
        if not posix_string:
            return None
        return cls.parse(posix_string.decode("ascii"))

    @classmethod
    def parse(cls, posix_string: str) -> "PosixTzInfo":
        # Adapted from zoneinfo._zoneinfo._parse_tz_str
        local_tz_parser = re.compile(
            r"""
            (?P<std>[^<0-9:.+-]+|<[a-zA-Z0-9+-]+>)
            (?:
                (?P<stdoff>[+-]?\d{1,3}(?::\d{2}(?::\d{2})?)?)
                (?:
                    (?P<dst>[^0-9:.+-]+|<[a-zA-Z0-9+-]+>)
                    (?P<dstoff>[+-]?\d{1,3}(?::\d{2}(?::\d{2})?)?)?
                )? # dst
            )? # stdoff
            """,
            re.ASCII | re.VERBOSE,
        )
        local_tz, _, rules = posix_string.partition(",")
        dst_start, _, dst_end = rules.partition(",")
        local_tz_match = local_tz_parser.fullmatch(local_tz)
        if local_tz_match is None:
            raise InvalidTimeZoneData(f"{local_tz!r} is not a valid TZ string")

        standard_abbrev = local_tz_match.group("std").strip("<>")
        utc_offset = local_tz_match.group("stdoff")
        if utc_offset is None:
            raise InvalidTimeZoneData(
                f"{local_tz!r} is missing required standard offset"
            )
        utc_offset_secs = cls._read_offset(utc_offset)
        dst_abbrev = local_tz_match.group("dst")
        if dst_abbrev:
            dst_abbrev = dst_abbrev.strip("<>")
        dst_offset = local_tz_match.group("dstoff")
        if dst_offset:
            dst_offset_secs = cls._read_offset(dst_offset)
        elif dst_abbrev:
            dst_offset_secs = utc_offset_secs + 3600
        else:
            dst_offset_secs = None

        return cls(
            posix_string,
            standard_abbrev,
            utc_offset_secs,
            dst_abbrev,
            dst_offset_secs,
            cls._read_dst_transition_datetime(dst_start),
            cls._read_dst_transition_datetime(dst_end),
        )

    @classmethod
    def _read_offset(cls, posix_offset: str) -> int:
        # Adapted from zoneinfo._zoneinfo._parse_tz_delta
        offset_match = re.fullmatch(
            r"(?P<sign>[+-])?(?P<h>\d{1,3})(:(?P<m>\d{2})(:(?P<s>\d{2}))?)?",
            posix_offset,
            re.ASCII,
        )
        if offset_match is None:
            raise InvalidTimeZoneData(f"{posix_offset} is not a valid offset")

        h, m, s = (int(v or 0) for v in offset_match.group("h", "m", "s"))

        # POSIX constraints:
        # - hours 0..24 (not >24)
        # - minutes/seconds 0..59
        # - if hours == 24, then minutes == seconds == 0
        if h > 24:
            raise InvalidTimeZoneData(f"Offset hours must be in [0, 24]: {posix_offset}")
        if not (0 <= m < 60 and 0 <= s < 60):
            raise InvalidTimeZoneData(
                f"Offset minutes/seconds must be in [0, 59]: {posix_offset}"
            )
        if h == 24 and (m != 0 or s != 0):
            raise InvalidTimeZoneData(
                f"24-hour offsets must be 24:00[:00]: {posix_offset}"
            )

        total = h * 3600 + m * 60 + s
        # POSIX sign convention: positive means WEST of UTC => negative seconds
        if offset_match.group("sign") != "-":
            total = -total

        return total

    @classmethod
    def _read_dst_transition_datetime(cls, posix_datetime: str) -> PosixTzRuleDate | None:
        date, *time = posix_datetime.split("/", 1)
        trans_time = cls._read_dst_transition_time(time[0]) if time else (2, 0, 0)

        if not date:
            return None

        if date.startswith("M"):
            m = re.fullmatch(r"M(\d{1,2})\.(\d)\.(\d)", date)
            if m is None:
                raise InvalidTimeZoneData(f"Invalid dst start/end date: {posix_datetime}")
            month, week, weekday = (int(x) for x in m.groups())
            if not (1 <= month <= 12 and 1 <= week <= 5 and 0 <= weekday <= 6):
                raise InvalidTimeZoneData(f"Invalid M<m>.<w>.<d>: {posix_datetime}")
            return PosixTzDateTime(month, week, weekday, *trans_time)

        if date.startswith("J"):
            if not date[1:].isdigit():
                raise InvalidTimeZoneData(f"Invalid J<n>: {posix_datetime}")
            n = int(date[1:])
            if not (1 <= n <= 365):
                raise InvalidTimeZoneData(f"J<n> must be 1..365: {posix_datetime}")
            return PosixTzJulianDateTime(n, *trans_time)

        # Plain numeric day-of-year (0..365), includes Feb 29
        if date.isdigit():
            n = int(date)
            if not (0 <= n <= 365):
                raise InvalidTimeZoneData(f"<n> must be 0..365: {posix_datetime}")
            return PosixTzOrdinalDateTime(n, *trans_time)

        raise InvalidTimeZoneData(f"Invalid dst start/end date: {posix_datetime}")

    @classmethod
    def _read_dst_transition_time(cls, time_str: str) -> tuple[int, int, int]:
        # Adapted from zoneinfo._zoneinfo._parse_transition_time
        match = re.fullmatch(
            r"(?P<sign>[+-])?(?P<h>\d{1,3})(:(?P<m>\d{2})(:(?P<s>\d{2}))?)?",
            time_str,
            re.ASCII,
        )
        if match is None:
            raise InvalidTimeZoneData(f"Invalid time: {time_str}")

        h, m, s = (int(v or 0) for v in match.group("h", "m", "s"))

        # bounds: hours 0..167, minutes/seconds 0..59
        if h > 167:
            raise InvalidTimeZoneData(f"Hour must be in [0, 167]: {time_str}")
        if not (0 <= m < 60 and 0 <= s < 60):
            raise InvalidTimeZoneData(f"Minutes/seconds must be in [0, 59]: {time_str}")

        if match.group("sign") == "-":
            h, m, s = -h, -m, -s

        return h, m, s
