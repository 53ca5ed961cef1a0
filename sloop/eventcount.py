"""Arithmetic for turning cumulative event records into per-minute counts."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone

from sloop.kubeextractor import ZERO_TIME, EventInfo

log = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MINUTE = timedelta(minutes=1)
_MINUTE_US = 60_000_000


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _round_to_minute(ts: datetime) -> datetime:
    """Round to the nearest minute; halfway values round up."""
    ts = _aware(ts)
    micros = (ts - _EPOCH) // timedelta(microseconds=1)
    remainder = micros % _MINUTE_US
    floored = ts - timedelta(microseconds=remainder)
    if remainder * 2 >= _MINUTE_US:
        return floored + _MINUTE
    return floored


def _unix(ts: datetime) -> int:
    return (_aware(ts) - _EPOCH) // timedelta(seconds=1)


def distribute_value(value: int, buckets: int) -> list[int]:
    """Split value over buckets as evenly as possible, larger shares first."""
    if buckets == 0:
        return []
    share, extra = divmod(value, buckets)
    return [share + (1 if pos < extra else 0) for pos in range(buckets)]


def spread_out_events(first_ts: datetime, last_ts: datetime, count: int) -> dict[int, int]:
    """Spread count over the minutes between two times, keyed by unix seconds.

    Minutes that would receive nothing are left out.
    """
    first_round = _round_to_minute(first_ts)
    last_round = _round_to_minute(last_ts)
    if first_round == last_round:
        return {_unix(first_round): count}

    minutes = math.ceil((last_round - first_round).total_seconds() / 60)
    minutes = max(minutes, 1)
    result: dict[int, int] = {}
    for idx, share in enumerate(distribute_value(count, minutes)):
        if share > 0:
            result[_unix(first_round + idx * _MINUTE)] = share
    return result


def compute_events_diff(
    prev_event_info: EventInfo | None, new_event_info: EventInfo
) -> tuple[datetime, datetime, int]:
    """Return the time range and count of events that are new since the previous record."""
    new_first = _aware(new_event_info.first_timestamp)
    new_last = _aware(new_event_info.last_timestamp)
    nothing = (ZERO_TIME, ZERO_TIME, 0)

    if prev_event_info is None:
        return new_first, new_last, new_event_info.count

    prev_first = _aware(prev_event_info.first_timestamp)
    prev_last = _aware(prev_event_info.last_timestamp)

    # No overlap with the previous record: everything is new.
    if prev_last < new_first:
        return new_first, new_last, new_event_info.count

    # A duplicate or an older copy: nothing new.
    if prev_last >= new_last:
        return nothing

    # Same start, later end: the difference is new.
    if prev_first == new_first:
        if new_event_info.count < prev_event_info.count:
            log.error(
                "New event has a lower count than previous event with same start time! "
                "Old %s New %s",
                prev_event_info,
                new_event_info,
            )
            return nothing
        return prev_last, new_last, new_event_info.count - prev_event_info.count

    # Partial overlap: remove the overlapping share of the old count.
    log.error("Encountered partially overlapping events.  Attempting to guess new count")
    old_seconds = (prev_last - prev_first).total_seconds()
    overlap_seconds = (prev_last - new_first).total_seconds()
    if old_seconds <= 0:
        return nothing
    pct_overlap = overlap_seconds / old_seconds
    new_count = new_event_info.count - int(float(prev_event_info.count) * pct_overlap)
    return prev_last, new_last, max(new_count, 0)


def adjust_for_available_partitions(
    first_ts: datetime,
    last_ts: datetime,
    count: int,
    min_partition_end_time: datetime,
    max_partition_start_time: datetime,
    max_partition_end_time: datetime,
) -> tuple[datetime, datetime, int]:
    """Clip an event range to the stored partitions, scaling the count to match."""
    first_ts = _aware(first_ts)
    last_ts = _aware(last_ts)
    begin = _aware(min_partition_end_time)
    end = _aware(max_partition_end_time)

    # With a single partition, counts may go into that partition.
    if begin == end:
        begin = _aware(max_partition_start_time)

    if last_ts < begin or first_ts > end:
        return begin, end, 0

    total_seconds = (last_ts - first_ts).total_seconds()
    seconds_to_keep = total_seconds

    if first_ts < begin:
        seconds_to_keep = seconds_to_keep - (begin - first_ts).total_seconds()
    else:
        begin = first_ts

    if last_ts > end:
        seconds_to_keep = seconds_to_keep - (last_ts - end).total_seconds()
    else:
        end = last_ts

    pct_to_keep = seconds_to_keep / total_seconds if total_seconds else 1.0
    return begin, end, int(float(count) * pct_to_keep)