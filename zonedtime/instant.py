from dataclasses import dataclass

from .exceptions import RangeError

NS_PER_SECOND = 1_000_000_000
NS_PER_DAY = 86_400 * NS_PER_SECOND

# 10^8 days either side of the epoch
NS_MAX_INSTANT = 100_000_000 * NS_PER_DAY
NS_MIN_INSTANT = -NS_MAX_INSTANT


def is_valid_epoch_nanoseconds(nanoseconds: int) -> bool:
    return NS_MIN_INSTANT <= nanoseconds <= NS_MAX_INSTANT


@dataclass(frozen=True, order=True)
class EpochInstant:
    """
    An exact point in time as nanoseconds since 1970-01-01T00:00:00Z.
    """

    nanoseconds: int

    def __post_init__(self) -> None:
        if isinstance(self.nanoseconds, bool) or not isinstance(self.nanoseconds, int):
            raise TypeError(
                f"Epoch nanoseconds must be an int, not {type(self.nanoseconds).__name__}"
            )
        if not is_valid_epoch_nanoseconds(self.nanoseconds):
            raise RangeError(
                f"Epoch nanoseconds {self.nanoseconds} outside of supported range"
            )

    @classmethod
    def from_nanoseconds(cls, nanoseconds: int) -> "EpochInstant":
        return cls(nanoseconds)

    def to_nanoseconds(self) -> int:
        return self.nanoseconds

    @property
    def epoch_seconds(self) -> int:
        return self.nanoseconds // NS_PER_SECOND

    @property
    def epoch_milliseconds(self) -> int:
        return self.nanoseconds // 1_000_000

    @property
    def epoch_microseconds(self) -> int:
        return self.nanoseconds // 1_000
