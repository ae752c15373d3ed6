import argparse
import logging
import sys

from .exceptions import RangeError
from .zoned import ZonedDateTime

_FIELDS = (
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
    "week_of_year",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="zonedtime",
        description="Show the calendar fields of an instant in a time zone.",
    )
    parser.add_argument("epoch_nanoseconds", type=int)
    parser.add_argument("time_zone", nargs="?", default="UTC")
    parser.add_argument("--calendar", default="iso8601")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        zdt = ZonedDateTime(args.epoch_nanoseconds, args.time_zone, args.calendar)
    except (RangeError, TypeError) as exc:
        print(f"zonedtime: {exc}", file=sys.stderr)
        return 2

    print(f"time_zone: {zdt.time_zone_id}")
    print(f"offset: {zdt.offset}")
    for name in _FIELDS:
        print(f"{name}: {zdt.get_field(name)}")
    next_transition = zdt.get_time_zone_transition("next")
    if next_transition is not None:
        print(f"next_transition: {next_transition.epoch_nanoseconds}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
