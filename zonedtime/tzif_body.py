import bisect
import struct
from typing import IO

from .exceptions import InvalidTimeZoneData
from .models import TimeTypeInfo
from .tzif_header import TimeZoneInfoHeader


class TimeZoneInfoBody:
    """
    Transition data of a TZif file. Transition times are UTC epoch seconds.
    """

    def __init__(
        self,
        transition_times: list[int],
        time_type_infos: list[TimeTypeInfo],
        time_type_indices: list[int],
        timezone_abbrevs: str,
    ) -> None:
        if len(transition_times) != len(time_type_indices):
            raise InvalidTimeZoneData(
                "Invalid TZif file: Transition and type index counts differ."
            )
        if any(index >= len(time_type_infos) for index in time_type_indices):
            raise InvalidTimeZoneData("Invalid TZif file: Type index out of range.")
        self.transition_times = transition_times
        self.time_type_infos = time_type_infos
        self.time_type_indices = time_type_indices
        self._timezone_abbrevs = timezone_abbrevs

    def get_abbrev_by_index(self, index: int) -> str:
        if index < 0 or index >= len(self._timezone_abbrevs):
            raise IndexError("Index out of range")
        return self._timezone_abbrevs[index:].partition("\x00")[0]

    def time_type_at(self, transition_index: int) -> TimeTypeInfo:
        return self.time_type_infos[self.time_type_indices[transition_index]]

    def initial_time_type(self) -> TimeTypeInfo:
        """
        The ttinfo in effect before the first transition: the first standard
        ttinfo if present, otherwise the first one.
        """
        return next(
            (tti for tti in self.time_type_infos if not tti.is_dst),
            self.time_type_infos[0],
        )

    def find_transition_index(self, epoch_seconds: int) -> int | None:
        # Index of the last transition at or before the given instant
        index = bisect.bisect_right(self.transition_times, epoch_seconds)
        if index == 0:
            return None
        return index - 1

    @classmethod
    def read(
        cls, file: IO[bytes], header_data: TimeZoneInfoHeader, version=1
    ) -> "TimeZoneInfoBody":
        transition_times = cls._read_transition_times(
            file, header_data.transitions_count, version
        )
        time_type_indices = cls._read_exact(file, header_data.transitions_count)
        time_type_infos = cls._read_ttinfo_structures(
            file, header_data.local_time_type_count
        )
        timezone_abbrevs = cls._read_exact(
            file, header_data.timezone_abbrev_byte_count
        ).decode("ascii")

        # Leap second records and the standard/wall and UT/local indicators
        # do not affect offsets computed from UTC transition times.
        time_size = 8 if version >= 2 else 4
        cls._read_exact(
            file,
            header_data.leap_second_transitions_count * (time_size + 4)
            + header_data.wall_standard_flag_count
            + header_data.is_utc_flag_count,
        )

        return TimeZoneInfoBody(
            transition_times,
            time_type_infos,
            list(time_type_indices),
            timezone_abbrevs,
        )

    @classmethod
    def _read_transition_times(
        cls, file: IO[bytes], timecnt: int, version: int
    ) -> list[int]:
        fmt = f">{timecnt}q" if version >= 2 else f">{timecnt}i"
        return list(struct.unpack(fmt, cls._read_exact(file, struct.calcsize(fmt))))

    @classmethod
    def _read_ttinfo_structures(
        cls, file: IO[bytes], typecnt: int
    ) -> list[TimeTypeInfo]:
        ttinfo_format = (
            ">i?B"  # 4-byte signed integer, 1-byte boolean, 1-byte unsigned integer
        )
        ttinfo_size = struct.calcsize(ttinfo_format)
        return [
            TimeTypeInfo(
                *struct.unpack(ttinfo_format, cls._read_exact(file, ttinfo_size))
            )
            for _ in range(typecnt)
        ]

    @staticmethod
    def _read_exact(file: IO[bytes], size: int) -> bytes:
        data = file.read(size)
        if len(data) != size:
            raise InvalidTimeZoneData("Invalid TZif file: Unexpected end of data.")
        return data

    def __repr__(self) -> str:
        return (
            f"TimeZoneInfoBody(transition_times={self.transition_times!r}, "
            f"time_type_infos={self.time_type_infos!r}, "
            f"time_type_indices={self.time_type_indices!r}, "
            f"timezone_abbrevs={self._timezone_abbrevs!r})"
        )
