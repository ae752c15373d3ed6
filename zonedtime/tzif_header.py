import struct
from dataclasses import dataclass
from typing import IO

from .exceptions import InvalidTimeZoneData

# Big endian: magic, version, 15 reserved bytes, six unsigned counts
_HEADER_FORMAT = ">4s1c15x6I"
_HEADER_SIZE = struct.calcsize(_HEADER_FORMAT)


@dataclass(frozen=True)
class TimeZoneInfoHeader:
    version: int
    is_utc_flag_count: int
    wall_standard_flag_count: int
    leap_second_transitions_count: int
    transitions_count: int
    local_time_type_count: int
    timezone_abbrev_byte_count: int

    def data_block_size(self, version: int) -> int:
        """Size in bytes of the data block following this header."""
        time_size = 8 if version >= 2 else 4
        return (
            self.transitions_count * (time_size + 1)
            + self.local_time_type_count * 6
            + self.timezone_abbrev_byte_count
            + self.leap_second_transitions_count * (time_size + 4)
            + self.wall_standard_flag_count
            + self.is_utc_flag_count
        )

    @classmethod
    def read(cls, file: IO[bytes]) -> "TimeZoneInfoHeader":
        raw = file.read(_HEADER_SIZE)
        if len(raw) != _HEADER_SIZE:
            raise InvalidTimeZoneData("Invalid TZif file: Truncated header.")
        (
            magic,
            version_byte,
            is_utc_flag_count,
            wall_standard_flag_count,
            leap_second_count,
            transitions_count,
            local_time_type_count,
            timezone_abbrev_byte_count,
        ) = struct.unpack(_HEADER_FORMAT, raw)

        if magic != b"TZif":
            raise InvalidTimeZoneData("Invalid TZif file: Magic sequence not found.")
        if version_byte == b"\x00":
            version = 1
        elif version_byte.isdigit():
            version = int(version_byte.decode("ascii"))
        else:
            raise InvalidTimeZoneData(f"Invalid TZif file: Unknown version {version_byte!r}.")
        if local_time_type_count == 0:
            raise InvalidTimeZoneData("Invalid TZif file: No local time types.")

        return cls(
            version,
            is_utc_flag_count,
            wall_standard_flag_count,
            leap_second_count,
            transitions_count,
            local_time_type_count,
            timezone_abbrev_byte_count,
        )
