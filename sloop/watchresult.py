"""Watch results as delivered by the watcher and stored in playback files."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import yaml

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class WatchType(Enum):
    """Kind of change a watch result reports."""

    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    def __str__(self) -> str:
        return self.value


@dataclass
class KubeWatchResult:
    """One observed change of a Kubernetes resource."""

    timestamp: datetime | None = None
    kind: str = ""
    watch_type: WatchType = WatchType.ADD
    payload: str = ""


def _timestamp_to_text(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _timestamp_from_value(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError(f"invalid timestamp: {value!r}") from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if isinstance(value, dict):
        seconds = value.get("seconds", 0) or 0
        nanos = value.get("nanos", 0) or 0
        if not isinstance(seconds, int) or not isinstance(nanos, int):
            raise ValueError(f"invalid timestamp: {value!r}")
        return _EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
    raise ValueError(f"invalid timestamp: {value!r}")


def _watch_type_from_value(value: Any) -> WatchType:
    if value is None:
        return WatchType.ADD
    if isinstance(value, WatchType):
        return value
    if isinstance(value, str):
        try:
            return WatchType[value]
        except KeyError:
            pass
    raise ValueError(f"invalid watch type: {value!r}")


def _record_to_dict(record: KubeWatchResult) -> dict[str, Any]:
    entry: dict[str, Any] = {}
    timestamp = _timestamp_to_text(record.timestamp)
    if timestamp is not None:
        entry["timestamp"] = timestamp
    entry["kind"] = record.kind
    entry["watchType"] = record.watch_type.value
    entry["payload"] = record.payload
    return entry


def _record_from_dict(entry: Any) -> KubeWatchResult:
    if not isinstance(entry, dict):
        raise ValueError(f"watch result must be a mapping, got {type(entry).__name__}")
    kind = entry.get("kind") or ""
    payload = entry.get("payload") or ""
    if not isinstance(kind, str) or not isinstance(payload, str):
        raise ValueError("watch result kind and payload must be strings")
    return KubeWatchResult(
        timestamp=_timestamp_from_value(entry.get("timestamp")),
        kind=kind,
        watch_type=_watch_type_from_value(entry.get("watchType")),
        payload=payload,
    )


@dataclass
class KubePlaybackFile:
    """A recorded sequence of watch results."""

    data: list[KubeWatchResult] = field(default_factory=list)

    def to_yaml(self) -> str:
        """Serialise the recording as YAML with a top-level Data list."""
        document = {"Data": [_record_to_dict(record) for record in self.data]}
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str | bytes) -> KubePlaybackFile:
        """Parse a recording; raises ValueError on malformed input."""
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid playback file: {exc}") from exc
        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise ValueError("playback file must be a mapping")
        entries = document.get("Data") or []
        if not isinstance(entries, list):
            raise ValueError("playback file Data must be a list")
        return cls(data=[_record_from_dict(entry) for entry in entries])