import logging
import os
import sysconfig
from importlib import resources
from typing import IO

from .exceptions import InvalidTimeZoneData
from .models import TimeTypeInfo, TimeZoneResolution
from .posix import PosixTzInfo
from .tzif_body import TimeZoneInfoBody
from .tzif_header import TimeZoneInfoHeader

logger = logging.getLogger(__name__)


class TimeZoneInfo:
    """
    The offset rules of one named zone, read from a TZif file.

    All instants are integer UTC epoch seconds. Transitions listed in the
    file are used first; past the last one the POSIX TZ footer takes over.
    """

    def __init__(
        self,
        timezone_name: str,
        filepath: str,
        header_data: TimeZoneInfoHeader,
        body_data: TimeZoneInfoBody,
        posix_tz_info: PosixTzInfo | None = None,
    ) -> None:
        self.timezone_name = timezone_name
        self.filepath = filepath
        self._header_data = header_data
        self._body_data = body_data
        self._posix_tz_info = posix_tz_info
        # Replaced as a whole, never mutated, so concurrent readers always
        # see a consistent resolution.
        self._last_resolution: TimeZoneResolution | None = None

    @property
    def version(self) -> int:
        return self._header_data.version

    @property
    def header(self) -> TimeZoneInfoHeader:
        return self._header_data

    @property
    def body(self) -> TimeZoneInfoBody:
        return self._body_data

    @property
    def footer(self) -> PosixTzInfo | None:
        return self._posix_tz_info

    def resolve(self, epoch_seconds: int) -> TimeZoneResolution:
        """
        Resolve this timezone at a given instant.

        The returned resolution carries the interval around ``epoch_seconds``
        over which the offset stays constant; it is kept and reused for any
        later instant that falls in the same interval.
        """
        cached = self._last_resolution
        if cached is not None and cached.contains(epoch_seconds):
            return cached

        resolution = self._resolve_uncached(epoch_seconds)
        self._last_resolution = resolution
        return resolution

    def _resolve_uncached(self, epoch_seconds: int) -> TimeZoneResolution:
        body = self.body
        times = body.transition_times

        # Case 0: No transitions at all => footer rules or a single ttinfo
        if not times:
            if self.footer is not None:
                return self._footer_resolution(epoch_seconds)
            return self._make_resolution(body.initial_time_type(), None, None)

        # Case 1: Before first transition
        if epoch_seconds < times[0]:
            initial = body.initial_time_type()
            end = self._next_meaningful_transition(0, initial)
            return self._make_resolution(initial, None, end)

        # Case 2: After the last transition, use POSIX footer if present
        if epoch_seconds > times[-1] and self.footer is not None:
            return self._footer_resolution(epoch_seconds)

        # Case 3: Between transitions (inclusive of the last transition instant),
        # or past the end with no footer: the last known ttinfo persists.
        index = body.find_transition_index(epoch_seconds)
        if index is None:
            raise InvalidTimeZoneData("No valid transition found for the given instant")
        tti = body.time_type_at(index)
        start = self._previous_meaningful_transition(index, tti)
        end = self._next_meaningful_transition(index + 1, tti)
        return self._make_resolution(tti, start, end)

    def _ttinfo_key(self, tti: TimeTypeInfo) -> tuple[int, bool, str]:
        # Some TZif files carry duplicate ttinfos; equality is on
        # utcoff/isdst/abbreviation, like zoneinfo.
        return (
            tti.utc_offset_secs,
            tti.is_dst,
            self.body.get_abbrev_by_index(tti.abbrev_index),
        )

    def _previous_meaningful_transition(
        self, index: int, tti: TimeTypeInfo
    ) -> int | None:
        body = self.body
        key = self._ttinfo_key(tti)
        while index > 0 and self._ttinfo_key(body.time_type_at(index - 1)) == key:
            index -= 1
        if index == 0 and self._ttinfo_key(body.initial_time_type()) == key:
            return None
        return body.transition_times[index]

    def _next_meaningful_transition(
        self, start_index: int, tti: TimeTypeInfo
    ) -> int | None:
        body = self.body
        key = self._ttinfo_key(tti)
        for i in range(start_index, len(body.transition_times)):
            if self._ttinfo_key(body.time_type_at(i)) != key:
                return body.transition_times[i]

        # The body ends in this ttinfo; the footer decides when it changes.
        if self.footer is None:
            return None
        _, following = self.footer.surrounding_transitions(body.transition_times[-1])
        return following

    def _footer_resolution(self, epoch_seconds: int) -> TimeZoneResolution:
        footer = self.footer
        if footer is None:
            raise InvalidTimeZoneData("No POSIX TZ footer available")
        offset, is_dst, abbreviation = footer.offset_at(epoch_seconds)
        start, end = footer.surrounding_transitions(epoch_seconds)

        times = self.body.transition_times
        if times and (start is None or start < times[-1]):
            start = times[-1]

        return TimeZoneResolution(
            self.timezone_name, offset, is_dst, abbreviation, start, end
        )

    def _make_resolution(
        self, tti: TimeTypeInfo, start: int | None, end: int | None
    ) -> TimeZoneResolution:
        return TimeZoneResolution(
            self.timezone_name,
            tti.utc_offset_secs,
            tti.is_dst,
            self.body.get_abbrev_by_index(tti.abbrev_index),
            start,
            end,
        )

    def utc_offset_secs(self, epoch_seconds: int) -> int:
        return self.resolve(epoch_seconds).utc_offset_secs

    def is_dst(self, epoch_seconds: int) -> bool:
        return self.resolve(epoch_seconds).is_dst

    def abbreviation(self, epoch_seconds: int) -> str | None:
        return self.resolve(epoch_seconds).abbreviation

    def next_transition(self, epoch_seconds: int) -> int | None:
        """First offset change strictly after ``epoch_seconds``."""
        return self.resolve(epoch_seconds).interval_end

    def previous_transition(self, epoch_seconds: int) -> int | None:
        """Last offset change at or before ``epoch_seconds``."""
        return self.resolve(epoch_seconds).interval_start

    @classmethod
    def _read_from_fileobj(
        cls, file: IO[bytes], timezone_name: str, filepath: str
    ) -> "TimeZoneInfo":
        header_data = TimeZoneInfoHeader.read(file)
        if header_data.version < 2:
            body_data = TimeZoneInfoBody.read(file, header_data)
            return cls(timezone_name, filepath, header_data, body_data)

        # Version 2+ files repeat the data with 64-bit times; the 32-bit
        # block is skipped.
        skipped = file.read(header_data.data_block_size(1))
        if len(skipped) != header_data.data_block_size(1):
            raise InvalidTimeZoneData("Invalid TZif file: Unexpected end of data.")
        v2_header_data = TimeZoneInfoHeader.read(file)
        v2_body_data = TimeZoneInfoBody.read(
            file, v2_header_data, v2_header_data.version
        )
        posix_tz_info = PosixTzInfo.read(file)

        return cls(
            timezone_name,
            filepath,
            v2_header_data,
            v2_body_data,
            posix_tz_info,
        )

    @classmethod
    def read(cls, timezone_name: str) -> "TimeZoneInfo":
        if os.path.isabs(timezone_name):
            raise ValueError(
                "Absolute paths are not allowed in TimeZoneInfo.read(); use from_path() instead."
            )

        normalized_name = cls._validate_timezone_key(timezone_name)

        search_paths: list[str] = []
        tzdir_override = os.environ.get("TZDIR")
        if tzdir_override:
            search_paths.append(os.path.realpath(tzdir_override))
        search_paths.extend(cls._compute_default_tzpath())

        for tz_root in search_paths:
            candidate = os.path.join(tz_root, normalized_name)
            if os.path.isfile(candidate):
                real = os.path.realpath(candidate)
                logger.debug("Reading time zone %s from %s", timezone_name, real)
                with open(real, "rb") as file:
                    return cls._read_from_fileobj(file, timezone_name, real)

        # Fallback to tzdata package if present
        logger.debug("Time zone %s not found on disk, trying tzdata", timezone_name)
        file = cls._load_tzdata_from_package(normalized_name)
        with file as f:
            return cls._read_from_fileobj(f, timezone_name, f"tzdata:{normalized_name}")

    @classmethod
    def from_path(cls, path: str, timezone_name: str | None = None) -> "TimeZoneInfo":
        """Read a TZif file directly from an absolute filesystem path."""
        real = os.path.realpath(path)
        with open(real, "rb") as file:
            return cls._read_from_fileobj(file, timezone_name or real, real)

    def __repr__(self) -> str:
        return (
            f"TimeZoneInfo(timezone_name={self.timezone_name!r}, "
            f"filepath={self.filepath!r}, "
            f"header_data={self._header_data!r}, "
            f"body_data={self._body_data!r}, "
            f"posix_tz_info={self._posix_tz_info!r})"
        )

    @staticmethod
    def _compute_default_tzpath() -> tuple[str, ...]:
        env_var = os.environ.get("PYTHONTZPATH") or sysconfig.get_config_var("TZPATH")
        if env_var:
            return tuple(path for path in env_var.split(os.pathsep) if path)

        # Fallback paths align with CPython's defaults
        return (
            "/usr/share/zoneinfo",
            "/usr/share/lib/zoneinfo",
            "/etc/zoneinfo",
        )

    @staticmethod
    def _validate_timezone_key(key: str) -> str:
        if os.path.isabs(key):
            raise ValueError("Absolute paths are not allowed as timezone keys")

        # Normalize and ensure the normalized form does not change length (prevents ../)
        normalized = os.path.normpath(key)
        if len(normalized) != len(key) or normalized in (os.curdir, os.pardir, ""):
            raise ValueError(f"Invalid timezone name: {key!r}")

        # Ensure the path stays within a sentinel base
        _base = os.path.normpath(os.path.join("_", "_"))[:-1]
        resolved = os.path.normpath(os.path.join(_base, normalized))
        if not resolved.startswith(_base):
            raise ValueError(f"Invalid timezone name: {key!r}")

        return normalized

    @staticmethod
    def _load_tzdata_from_package(key: str) -> IO[bytes]:
        components = key.split("/")
        package_name = ".".join(["tzdata.zoneinfo"] + components[:-1])
        resource_name = components[-1]
        try:
            return resources.files(package_name).joinpath(resource_name).open("rb")
        except (ImportError, FileNotFoundError, UnicodeEncodeError) as exc:
            raise FileNotFoundError(f"No time zone found with key {key!r}") from exc
