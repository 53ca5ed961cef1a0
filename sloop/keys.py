"""Small helpers and parsing of store keys into table and partition."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

_KEY_PARTS = 7


@dataclass(frozen=True)
class SloopKey:
    table_name: str
    partition_id: str


@dataclass
class PartitionInfo:
    total_key_count: int = 0
    table_name_to_key_count: dict[str, int] = field(default_factory=dict)


def bool_to_float(value: bool) -> float:
    """Return 1.0 for a true value and 0.0 otherwise, as a metric gauge expects."""
    if value:
        return 1.0
    return 0.0


def parse_key(key: str) -> list[str]:
    """Split a key of the form /table/partition/kind/namespace/name/suffix."""
    parts = key.split("/")
    if len(parts) != _KEY_PARTS:
        raise ValueError(f"key should have 6 parts: {key}")
    if parts[0] != "":
        raise ValueError(f"key should start with /: {key}")
    return parts


def contains(string_list: Iterable[str], elem: str) -> bool:
    return elem in string_list


def get_file_path(file_path: str, file_name: str) -> str:
    """Join two slash-separated path pieces and clean the result."""
    pieces = [piece for piece in (file_path, file_name) if piece]
    if not pieces:
        return ""
    joined = posixpath.normpath("/".join(pieces))
    if joined.startswith("//"):
        joined = joined[1:]
    return joined


def _key_text(key: str | bytes) -> str:
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    return key


def get_sloop_key(key: str | bytes) -> SloopKey:
    """Return the table name and partition id of a store key."""
    parts = parse_key(_key_text(key))
    return SloopKey(table_name=parts[1], partition_id=parts[2])


def get_partitions_info(
    keys: Iterable[str | bytes],
) -> tuple[dict[str, PartitionInfo], int]:
    """Count keys per partition and table; unparsable keys are logged and skipped."""
    partitions: dict[str, PartitionInfo] = {}
    total = 0
    for key in keys:
        try:
            sloop_key = get_sloop_key(key)
        except ValueError:
            log.error("failed to parse information about key: %r", key)
            continue
        info = partitions.setdefault(sloop_key.partition_id, PartitionInfo())
        info.total_key_count += 1
        counts = info.table_name_to_key_count
        counts[sloop_key.table_name] = counts.get(sloop_key.table_name, 0) + 1
        total += 1
    return partitions, total


def get_sorted_partition_ids(partitions_info: Iterable[str]) -> list[str]:
    """Return partition ids in sorted order; ids share one width so this is chronological."""
    return sorted(partitions_info)


def print_key_histogram(keys: Iterable[str | bytes]) -> None:
    """Log the number of keys per table and partition at debug level."""
    partitions, total = get_partitions_info(keys)
    log.debug("TotalkeyCount: %s", total)
    for partition_id, info in partitions.items():
        for table_name, key_count in info.table_name_to_key_count.items():
            log.debug(
                "TableName: %s, PartitionId: %s, keyCount: %s",
                table_name,
                partition_id,
                key_count,
            )