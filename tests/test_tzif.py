import io
import os
import struct
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from zonedtime.exceptions import InvalidTimeZoneData
from zonedtime.isocalendar import days_from_civil
from zonedtime.models import TimeTypeInfo
from zonedtime.posix import PosixTzInfo
from zonedtime.tzif import TimeZoneInfo
from zonedtime.tzif_body import TimeZoneInfoBody
from zonedtime.tzif_header import TimeZoneInfoHeader

HOUR = 3600


def _utc(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def _zoneinfo_offset(name: str, epoch_seconds: int) -> int:
    dt = datetime.fromtimestamp(epoch_seconds, tz=ZoneInfo(name))
    return int(dt.utcoffset().total_seconds())


def _make_zone(
    transition_times: list[int],
    time_type_infos: list[TimeTypeInfo],
    time_type_indices: list[int],
    timezone_abbrevs: str,
    posix_tz_info: PosixTzInfo | None = None,
    name: str = "Test/Zone",
) -> TimeZoneInfo:
    header = TimeZoneInfoHeader(
        version=2,
        is_utc_flag_count=0,
        wall_standard_flag_count=0,
        leap_second_transitions_count=0,
        transitions_count=len(transition_times),
        local_time_type_count=len(time_type_infos),
        timezone_abbrev_byte_count=len(timezone_abbrevs),
    )
    body = TimeZoneInfoBody(
        transition_times, time_type_infos, time_type_indices, timezone_abbrevs
    )
    return TimeZoneInfo(name, f"/tmp/{name}", header, body, posix_tz_info)


SPRING_2024 = _utc(2024, 3, 10, 7)
FALL_2024 = _utc(2024, 11, 3, 6)
SPRING_2025 = _utc(2025, 3, 9, 7)
FALL_2025 = _utc(2025, 11, 2, 6)


def _eastern_zone(with_footer: bool = True) -> TimeZoneInfo:
    return _make_zone(
        [SPRING_2024, FALL_2024],
        [
            TimeTypeInfo(utc_offset_secs=-17762, is_dst=False, abbrev_index=0),
            TimeTypeInfo(utc_offset_secs=-4 * HOUR, is_dst=True, abbrev_index=4),
            TimeTypeInfo(utc_offset_secs=-5 * HOUR, is_dst=False, abbrev_index=8),
        ],
        [1, 2],
        "LMT\x00EDT\x00EST\x00",
        PosixTzInfo.parse("EST5EDT,M3.2.0,M11.1.0") if with_footer else None,
        name="Test/Eastern",
    )


def _tzif_bytes(
    transition_times: list[int],
    ttinfos: list[tuple[int, bool, int]],
    indices: list[int],
    abbrevs: bytes,
    footer: bytes = b"",
    version: bytes = b"2",
    leap_seconds: list[tuple[int, int]] = (),
) -> bytes:
    def header(version_byte, timecnt, typecnt, charcnt, leapcnt=0, isutcnt=0, isstdcnt=0):
        return struct.pack(
            ">4s1c15x6I",
            b"TZif",
            version_byte,
            isutcnt,
            isstdcnt,
            leapcnt,
            timecnt,
            typecnt,
            charcnt,
        )

    def block(time_format, leap_format):
        data = b"".join(struct.pack(time_format, t) for t in transition_times)
        data += bytes(indices)
        data += b"".join(struct.pack(">i?B", *tti) for tti in ttinfos)
        data += abbrevs
        data += b"".join(struct.pack(leap_format, *leap) for leap in leap_seconds)
        data += b"\x00" * len(ttinfos) * 2  # std/wall and UT/local indicators
        return data

    counts = (len(transition_times), len(ttinfos), len(abbrevs), len(leap_seconds))
    indicator_counts = dict(isutcnt=len(ttinfos), isstdcnt=len(ttinfos))
    if version == b"\x00":
        return header(version, *counts, **indicator_counts) + block(">i", ">ii")

    v1 = header(version, 0, 1, 1) + struct.pack(">i?B", 0, False, 0) + b"\x00"
    v2 = header(version, *counts, **indicator_counts) + block(">q", ">qi")
    return v1 + v2 + b"\n" + footer + b"\n"


_EASTERN_TZIF = _tzif_bytes(
    [SPRING_2024, FALL_2024],
    [(-17762, False, 0), (-4 * HOUR, True, 4), (-5 * HOUR, False, 8)],
    [1, 2],
    b"LMT\x00EDT\x00EST\x00",
    footer=b"EST5EDT,M3.2.0,M11.1.0",
)


# -------------------------
# Resolution on synthetic zones
# -------------------------


def test_resolve_before_first_transition_uses_standard_ttinfo():
    res = _eastern_zone().resolve(SPRING_2024 - 1)

    assert res.utc_offset_secs == -17762
    assert res.abbreviation == "LMT"
    assert res.is_dst is False
    assert res.interval_start is None
    assert res.interval_end == SPRING_2024


def test_resolve_exactly_at_transition_uses_new_ttinfo():
    res = _eastern_zone().resolve(SPRING_2024)

    assert res.utc_offset_secs == -4 * HOUR
    assert res.is_dst is True
    assert res.abbreviation == "EDT"
    assert (res.interval_start, res.interval_end) == (SPRING_2024, FALL_2024)


def test_resolve_last_transition_ends_at_footer_transition():
    res = _eastern_zone().resolve(FALL_2024)

    assert res.utc_offset_secs == -5 * HOUR
    assert (res.interval_start, res.interval_end) == (FALL_2024, SPRING_2025)


@pytest.mark.parametrize(
    "epoch_seconds, offset, is_dst, start, end",
    [
        (FALL_2024 + 1, -5 * HOUR, False, FALL_2024, SPRING_2025),
        (_utc(2025, 7, 1), -4 * HOUR, True, SPRING_2025, FALL_2025),
        (FALL_2025, -5 * HOUR, False, FALL_2025, _utc(2026, 3, 8, 7)),
    ],
)
def test_resolve_after_last_transition_uses_footer(epoch_seconds, offset, is_dst, start, end):
    res = _eastern_zone().resolve(epoch_seconds)

    assert res.utc_offset_secs == offset
    assert res.is_dst is is_dst
    assert (res.interval_start, res.interval_end) == (start, end)


def test_resolve_after_last_transition_without_footer_keeps_last_ttinfo():
    res = _eastern_zone(with_footer=False).resolve(_utc(2090, 7, 1))

    assert res.utc_offset_secs == -5 * HOUR
    assert res.abbreviation == "EST"
    assert res.interval_start == FALL_2024
    assert res.interval_end is None


def test_resolve_without_transitions_and_footer():
    tz_info = _make_zone(
        [], [TimeTypeInfo(utc_offset_secs=7200, is_dst=False, abbrev_index=0)], [], "FOO\x00"
    )
    res = tz_info.resolve(_utc(2025, 1, 1))

    assert res.utc_offset_secs == 7200
    assert res.abbreviation == "FOO"
    assert res.is_dst is False
    assert res.interval_start is None
    assert res.interval_end is None


def test_resolve_uses_posix_footer_without_transitions():
    tz_info = _make_zone(
        [],
        [TimeTypeInfo(utc_offset_secs=-5 * HOUR, is_dst=False, abbrev_index=0)],
        [],
        "STD\x00",
        PosixTzInfo.parse("STD5DST,M3.2.0/2,M11.1.0/2"),
    )

    assert tz_info.utc_offset_secs(_utc(2025, 1, 15)) == -5 * HOUR
    assert tz_info.utc_offset_secs(_utc(2025, 7, 15)) == -4 * HOUR
    assert tz_info.abbreviation(_utc(2025, 7, 15)) == "DST"
    assert tz_info.is_dst(_utc(2025, 7, 15)) is True


def test_initial_ttinfo_handles_all_dst():
    tz_info = _make_zone(
        [100], [TimeTypeInfo(utc_offset_secs=3600, is_dst=True, abbrev_index=0)], [0], "DST\x00"
    )
    res = tz_info.resolve(0)

    assert res.utc_offset_secs == 3600
    assert res.is_dst is True
    assert res.abbreviation == "DST"


def test_next_meaningful_transition_skips_duplicates():
    tz_info = _make_zone(
        [100, 200, 300],
        [
            TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=0),
            TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=4),
            TimeTypeInfo(utc_offset_secs=3600, is_dst=False, abbrev_index=8),
        ],
        [0, 1, 2],
        "AAA\x00AAA\x00BBB\x00",
    )

    for t in (50, 150, 250):
        res = tz_info.resolve(t)
        assert res.utc_offset_secs == 0
        assert res.interval_start is None
        assert res.interval_end == 300


def test_abbreviation_change_is_a_transition():
    tz_info = _make_zone(
        [0, 365 * 86400],
        [
            TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=0),
            TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=4),
        ],
        [0, 1],
        "OLD\x00NEW\x00",
    )

    assert tz_info.next_transition(10) == 365 * 86400
    assert tz_info.abbreviation(365 * 86400) == "NEW"


def test_resolve_caches_interval():
    tz_info = _eastern_zone()

    first = tz_info.resolve(SPRING_2024 + 10)
    second = tz_info.resolve(SPRING_2024 + 20)
    other = tz_info.resolve(FALL_2024 + 10)

    assert second is first
    assert other is not first
    assert other.utc_offset_secs == -5 * HOUR


def test_next_and_previous_transition():
    tz_info = _eastern_zone()

    assert tz_info.next_transition(SPRING_2024 - 1) == SPRING_2024
    assert tz_info.next_transition(SPRING_2024) == FALL_2024
    assert tz_info.previous_transition(SPRING_2024) == SPRING_2024
    assert tz_info.previous_transition(SPRING_2024 - 1) is None
    assert tz_info.next_transition(_utc(2030, 1, 1)) == _utc(2030, 3, 10, 7)


def test_resolve_far_future_uses_integer_rules():
    tz_info = _eastern_zone()
    july = days_from_civil(275_000, 7, 1) * 86400
    january = days_from_civil(275_000, 1, 15) * 86400

    assert tz_info.utc_offset_secs(july) == -4 * HOUR
    assert tz_info.utc_offset_secs(january) == -5 * HOUR


# -------------------------
# Body and header validation
# -------------------------


def test_body_rejects_mismatched_counts():
    with pytest.raises(InvalidTimeZoneData):
        TimeZoneInfoBody(
            [0, 1], [TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=0)], [0], "UTC\x00"
        )


def test_body_rejects_type_index_out_of_range():
    with pytest.raises(InvalidTimeZoneData):
        TimeZoneInfoBody(
            [0], [TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=0)], [3], "UTC\x00"
        )


def test_find_transition_index():
    body = _eastern_zone().body

    assert body.find_transition_index(SPRING_2024 - 1) is None
    assert body.find_transition_index(SPRING_2024) == 0
    assert body.find_transition_index(FALL_2024 - 1) == 0
    assert body.find_transition_index(FALL_2024) == 1


def test_abbrev_lookup_at_midstring_indices():
    body = TimeZoneInfoBody(
        [],
        [
            TimeTypeInfo(utc_offset_secs=0, is_dst=False, abbrev_index=0),
            TimeTypeInfo(utc_offset_secs=3600, is_dst=True, abbrev_index=1),
        ],
        [],
        "XABC\x00",
    )

    assert body.get_abbrev_by_index(0) == "XABC"
    assert body.get_abbrev_by_index(1) == "ABC"
    with pytest.raises(IndexError):
        body.get_abbrev_by_index(10)


def test_header_rejects_bad_magic():
    data = b"TZXX" + b"2" + b"\x00" * 15 + struct.pack(">6I", 0, 0, 0, 0, 1, 0)
    with pytest.raises(InvalidTimeZoneData):
        TimeZoneInfoHeader.read(io.BytesIO(data))


def test_header_rejects_truncated_data():
    with pytest.raises(InvalidTimeZoneData):
        TimeZoneInfoHeader.read(io.BytesIO(b"TZif2"))


def test_header_data_block_size():
    header = TimeZoneInfoHeader(
        version=2,
        is_utc_flag_count=3,
        wall_standard_flag_count=3,
        leap_second_transitions_count=1,
        transitions_count=2,
        local_time_type_count=3,
        timezone_abbrev_byte_count=12,
    )

    assert header.data_block_size(1) == 2 * 5 + 3 * 6 + 12 + 8 + 3 + 3
    assert header.data_block_size(2) == 2 * 9 + 3 * 6 + 12 + 12 + 3 + 3


# -------------------------
# Reading TZif files
# -------------------------


def test_read_from_fileobj_v2():
    tz_info = TimeZoneInfo._read_from_fileobj(
        io.BytesIO(_EASTERN_TZIF), "Test/Eastern", "memory"
    )

    assert tz_info.version == 2
    assert tz_info.body.transition_times == [SPRING_2024, FALL_2024]
    assert [tz_info.body.get_abbrev_by_index(i) for i in (0, 4, 8)] == ["LMT", "EDT", "EST"]
    assert tz_info.footer is not None
    assert tz_info.footer.posix_string == "EST5EDT,M3.2.0,M11.1.0"
    assert tz_info.utc_offset_secs(_utc(2025, 7, 1)) == -4 * HOUR


def test_read_from_fileobj_v1():
    data = _tzif_bytes(
        [SPRING_2024, FALL_2024],
        [(-17762, False, 0), (-4 * HOUR, True, 4), (-5 * HOUR, False, 8)],
        [1, 2],
        b"LMT\x00EDT\x00EST\x00",
        version=b"\x00",
    )
    tz_info = TimeZoneInfo._read_from_fileobj(io.BytesIO(data), "Test/V1", "memory")

    assert tz_info.version == 1
    assert tz_info.footer is None
    assert tz_info.utc_offset_secs(SPRING_2024) == -4 * HOUR


def test_read_skips_leap_second_records():
    data = _tzif_bytes(
        [],
        [(0, False, 0)],
        [],
        b"UTC\x00",
        footer=b"UTC0",
        leap_seconds=[(78796800, 1), (94694401, 2)],
    )
    tz_info = TimeZoneInfo._read_from_fileobj(io.BytesIO(data), "Test/Leaps", "memory")

    assert tz_info.utc_offset_secs(_utc(2025, 1, 1)) == 0
    assert tz_info.footer.standard_abbrev == "UTC"


def test_read_truncated_body():
    with pytest.raises(InvalidTimeZoneData):
        TimeZoneInfo._read_from_fileobj(
            io.BytesIO(_EASTERN_TZIF[:80]), "Test/Broken", "memory"
        )


def test_from_path_accepts_absolute_path(tmp_path):
    dest = tmp_path / "copy_eastern"
    dest.write_bytes(_EASTERN_TZIF)

    tz_info = TimeZoneInfo.from_path(str(dest), timezone_name="Custom/Eastern")

    assert tz_info.timezone_name == "Custom/Eastern"
    assert os.path.realpath(tz_info.filepath) == os.path.realpath(dest)


def test_tzdir_override(monkeypatch, tmp_path):
    zone_dir = tmp_path / "Test"
    zone_dir.mkdir()
    (zone_dir / "Eastern").write_bytes(_EASTERN_TZIF)
    monkeypatch.setenv("TZDIR", str(tmp_path))

    tz_info = TimeZoneInfo.read("Test/Eastern")

    assert os.path.realpath(tz_info.filepath) == os.path.realpath(zone_dir / "Eastern")


def test_pythontzpath_allows_relative_paths(monkeypatch, tmp_path):
    zone_dir = tmp_path / "relative_zones" / "Test"
    zone_dir.mkdir(parents=True)
    dest = zone_dir / "Eastern"
    dest.write_bytes(_EASTERN_TZIF)

    monkeypatch.delenv("TZDIR", raising=False)
    rel_root = os.path.relpath(tmp_path / "relative_zones", os.getcwd())
    monkeypatch.setenv("PYTHONTZPATH", rel_root)

    tz_info = TimeZoneInfo.read("Test/Eastern")
    assert os.path.realpath(tz_info.filepath) == os.path.realpath(dest)


def test_validate_timezone_key_rejects_normalized_shortening():
    with pytest.raises(ValueError):
        TimeZoneInfo._validate_timezone_key("America/New_York/..")


def test_read_rejects_path_traversal():
    with pytest.raises(ValueError):
        TimeZoneInfo.read("../etc/passwd")
    with pytest.raises(ValueError):
        TimeZoneInfo.read("/absolute/path")


def test_read_invalid_timezone():
    with pytest.raises(FileNotFoundError):
        TimeZoneInfo.read("Invalid/Timezone")


def test_load_tzdata_from_package_raises_file_not_found(monkeypatch):
    def fake_files(package_name):
        raise FileNotFoundError("missing")

    monkeypatch.setattr("zonedtime.tzif.resources.files", fake_files)

    with pytest.raises(FileNotFoundError):
        TimeZoneInfo._load_tzdata_from_package("Missing/Zone")


def test_compute_default_tzpath_prefers_env(monkeypatch):
    monkeypatch.setenv("PYTHONTZPATH", "/tmp/alpha" + os.pathsep + "/tmp/beta" + os.pathsep)
    monkeypatch.setattr(
        "zonedtime.tzif.sysconfig.get_config_var", lambda name: "/should/not/use"
    )

    assert TimeZoneInfo._compute_default_tzpath() == ("/tmp/alpha", "/tmp/beta")


def test_compute_default_tzpath_falls_back_to_sysconfig(monkeypatch):
    monkeypatch.delenv("PYTHONTZPATH", raising=False)
    monkeypatch.setattr(
        "zonedtime.tzif.sysconfig.get_config_var",
        lambda name: "/usr/lib/zoneinfo" + os.pathsep + "/opt/tz",
    )

    assert TimeZoneInfo._compute_default_tzpath() == (
        "/usr/lib/zoneinfo",
        "/opt/tz",
    )


# -------------------------
# Real zones compared with the standard library
# -------------------------


@pytest.mark.parametrize(
    "utc_args, expected_offset",
    [
        ((1800, 1, 1), -17762),
        ((2025, 1, 5), -18000),
        ((2025, 6, 2), -14400),
        ((2039, 1, 5), -18000),
        ((2039, 6, 2), -14400),
    ],
)
def test_new_york_offsets(utc_args, expected_offset):
    tz_info = TimeZoneInfo.read("America/New_York")
    assert tz_info.utc_offset_secs(_utc(*utc_args)) == expected_offset


@pytest.mark.parametrize(
    "tz, samples",
    [
        (
            "America/New_York",
            [
                (1950, 6, 1, 12),
                (2024, 1, 15, 12),
                (2024, 6, 15, 12),
                (2025, 3, 9, 6, 59, 59),
                (2025, 3, 9, 7, 0, 0),
                (2050, 6, 1),
                (2099, 12, 1),
            ],
        ),
        (
            "Australia/Sydney",
            [
                (2025, 1, 5),
                (2025, 6, 2),
                (2025, 10, 4, 15, 59, 59),
                (2025, 10, 4, 16, 0, 0),
                (2050, 1, 10),
                (2099, 7, 10),
            ],
        ),
        ("Europe/London", [(1970, 6, 1), (2025, 3, 30, 0, 59, 59), (2025, 3, 30, 1)]),
        ("Asia/Kolkata", [(1940, 1, 1), (2025, 1, 1), (2025, 6, 1)]),
        ("Australia/Lord_Howe", [(2025, 1, 1), (2025, 7, 1)]),
        ("Africa/Abidjan", [(1920, 1, 1), (2025, 1, 1), (2050, 7, 1, 12)]),
    ],
)
def test_resolve_matches_zoneinfo_samples(tz, samples):
    tz_info = TimeZoneInfo.read(tz)

    for utc_args in samples:
        t = _utc(*utc_args)
        got = tz_info.utc_offset_secs(t)
        expected = _zoneinfo_offset(tz, t)
        assert got == expected, f"{tz=} {utc_args=} {got=} {expected=}"


def test_dst_difference_handles_half_hour():
    tz_info = TimeZoneInfo.read("Australia/Lord_Howe")

    summer = tz_info.resolve(_utc(2025, 1, 1))
    winter = tz_info.resolve(_utc(2025, 7, 1))

    assert summer.is_dst is True
    assert summer.utc_offset_secs - winter.utc_offset_secs == 30 * 60


@pytest.mark.parametrize("tz", ["America/New_York", "Europe/Berlin", "Australia/Sydney"])
def test_next_transition_matches_zoneinfo(tz):
    tz_info = TimeZoneInfo.read(tz)
    t = _utc(2031, 1, 1)

    for _ in range(4):
        transition = tz_info.next_transition(t)
        assert transition is not None
        assert _zoneinfo_offset(tz, transition - 1) != _zoneinfo_offset(tz, transition)
        assert tz_info.previous_transition(transition) == transition
        t = transition
