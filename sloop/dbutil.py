"""Bulk key deletion and counting over an ordered key-value store.

A store is any mutable mapping from keys (bytes or str) to values; keys are
visited in byte order as an ordered store would iterate them.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from itertools import islice, takewhile
from typing import Any

log = logging.getLogger(__name__)

_MOVE_PREFIX = b"!badger!move"


def _as_bytes(key: Any) -> bytes:
    return key if isinstance(key, bytes) else str(key).encode("utf-8")


def _leading_batch(
    db: MutableMapping[Any, Any], prefix: bytes, batch_size: int
) -> list[Any]:
    """Collect the run of matching keys at the start of the key order."""
    move_prefix = _MOVE_PREFIX + prefix

    def matches(key: Any) -> bool:
        raw = _as_bytes(key)
        return raw.startswith(prefix) or raw.startswith(move_prefix)

    run = takewhile(matches, sorted(db, key=_as_bytes))
    return list(islice(run, batch_size) if batch_size else run)


def delete_keys_with_prefix(
    key_prefix: str | bytes,
    db: MutableMapping[Any, Any],
    deletion_batch_size: int,
    num_of_keys_to_delete: int,
) -> tuple[int, int]:
    """Delete up to num_of_keys_to_delete keys with the prefix, in batches.

    Keys are taken from the start of the key order for as long as they carry
    the prefix. Returns the number deleted and the number requested.
    """
    if deletion_batch_size < 0:
        raise ValueError(f"deletion batch size must not be negative: {deletion_batch_size}")
    prefix = _as_bytes(key_prefix)
    deleted = 0
    while deleted < num_of_keys_to_delete:
        batch = _leading_batch(db, prefix, deletion_batch_size)
        if not batch:
            log.warning(
                "No more keys with prefix %r to delete; deleted %d of %d",
                key_prefix,
                deleted,
                num_of_keys_to_delete,
            )
            break
        for key in batch:
            del db[key]
            deleted += 1
    return deleted, num_of_keys_to_delete


def get_total_key_count(db: MutableMapping[Any, Any], key_prefix: str | bytes = "") -> int:
    """Count keys with the prefix; an empty prefix counts every key."""
    prefix = _as_bytes(key_prefix)
    return sum(1 for key in db if _as_bytes(key).startswith(prefix))