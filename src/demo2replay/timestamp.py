from __future__ import annotations

"""
Replay record time as stored in replay descriptors.

  date: bits 0-4 day - 1, bits 5-8 month - 1, bits 9-15 year - 2009
  time: bits 0-4 hour, bits 5-10 minute

The engine reads these fields back with the same layout, so the packing must
stay bit-exact.
"""

from dataclasses import dataclass
import datetime as dt
from typing import Final

EPOCH_YEAR: Final[int] = 2009
YEAR_BITS: Final[int] = 7
MAX_YEAR: Final[int] = EPOCH_YEAR + (1 << YEAR_BITS) - 1


class UnsupportedClockError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class TimestampFields:
    date_field: int
    time_field: int


def pack_date(year: int, month: int, day: int) -> int:
    year = int(year)
    if not (EPOCH_YEAR <= year <= MAX_YEAR):
        raise UnsupportedClockError(f"year {year} outside replay date range {EPOCH_YEAR}..{MAX_YEAR}")
    return ((year - EPOCH_YEAR) << 9) | ((int(month) - 1) << 5) | (int(day) - 1)


def pack_time(hour: int, minute: int) -> int:
    return (int(minute) << 5) | int(hour)


def unpack_date(date_field: int) -> tuple[int, int, int]:
    value = int(date_field)
    return (EPOCH_YEAR + ((value >> 9) & 0x7F), ((value >> 5) & 0x0F) + 1, (value & 0x1F) + 1)


def unpack_time(time_field: int) -> tuple[int, int]:
    value = int(time_field)
    return (value & 0x1F, (value >> 5) & 0x3F)


def encode_timestamp(now: dt.datetime) -> TimestampFields:
    return TimestampFields(
        date_field=pack_date(now.year, now.month, now.day),
        time_field=pack_time(now.hour, now.minute),
    )


def local_now() -> dt.datetime:
    return dt.datetime.now().astimezone()


__all__ = [
    "EPOCH_YEAR",
    "MAX_YEAR",
    "TimestampFields",
    "UnsupportedClockError",
    "encode_timestamp",
    "local_now",
    "pack_date",
    "pack_time",
    "unpack_date",
    "unpack_time",
]
