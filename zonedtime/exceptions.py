class RangeError(ValueError):
    """
    A value lies outside the range it is allowed to take.
    """


class UnknownTimeZoneError(RangeError):
    """
    A time zone identifier does not name a known offset or rule set.
    """


class InvalidTimeZoneData(ValueError):
    """
    A TZif file or POSIX TZ string could not be parsed.
    """


class InvalidReceiver(TypeError):
    """
    An accessor was invoked on something that is not the expected type.
    """

    def __init__(self, expected_type: str) -> None:
        super().__init__(f"Not an object of type {expected_type}")
        self.expected_type = expected_type


class AmbiguityPolicyError(ValueError):
    """
    A wall-clock time is skipped or repeated and the caller chose to reject it.
    """


class SkippedTime(AmbiguityPolicyError):
    """A wall-clock time falls in a gap and never occurs in the zone"""

    @classmethod
    def _for_tz(cls, wall_clock: object, time_zone: str) -> "SkippedTime":
        return cls(f"{wall_clock} is skipped in time zone {time_zone!r}")


class RepeatedTime(AmbiguityPolicyError):
    """A wall-clock time falls in an overlap and occurs twice in the zone"""

    @classmethod
    def _for_tz(cls, wall_clock: object, time_zone: str) -> "RepeatedTime":
        return cls(f"{wall_clock} is repeated in time zone {time_zone!r}")
