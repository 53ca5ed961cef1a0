"""Extraction of metadata, involved objects and event details from watch payloads."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

log = logging.getLogger(__name__)

NODE_KIND = "Node"
NAMESPACE_KIND = "Namespace"
POD_KIND = "Pod"
EVENT_KIND = "Event"

# The zero instant used when a timestamp is absent or unparsable.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_MISSING = object()

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})",
    re.ASCII,
)


@dataclass(frozen=True)
class KubeMetadataOwnerReference:
    kind: str = ""
    name: str = ""
    uid: str = ""


@dataclass(frozen=True)
class KubeMetadata:
    name: str = ""
    namespace: str = ""
    uid: str = ""
    self_link: str = ""
    resource_version: str = ""
    creation_timestamp: str = ""
    owner_references: tuple[KubeMetadataOwnerReference, ...] = ()


@dataclass(frozen=True)
class KubeInvolvedObject:
    kind: str = ""
    name: str = ""
    namespace: str = ""
    uid: str = ""


@dataclass(frozen=True)
class EventInfo:
    reason: str = ""
    type: str = ""
    first_timestamp: datetime = ZERO_TIME
    last_timestamp: datetime = ZERO_TIME
    count: int = 0


def _lookup(obj: dict[str, Any], name: str) -> Any:
    """Find a field by case-insensitive name; the last matching key wins."""
    folded = name.casefold()
    found = _MISSING
    for key, value in obj.items():
        if key.casefold() == folded:
            found = value
    return found


def _as_object(value: Any, what: str) -> dict[str, Any]:
    if value is None or value is _MISSING:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"cannot decode {type(value).__name__} into {what}")
    return value


def _string_field(obj: dict[str, Any], name: str) -> str:
    value = _lookup(obj, name)
    if value is None or value is _MISSING:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"cannot decode {type(value).__name__} into string field {name}")
    return value


def _int_field(obj: dict[str, Any], name: str) -> int:
    value = _lookup(obj, name)
    if value is None or value is _MISSING:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"cannot decode {type(value).__name__} into integer field {name}")
    return value


def _load(payload: str | bytes) -> dict[str, Any]:
    return _as_object(json.loads(payload), "resource")


def _decode_owner_reference(value: Any) -> KubeMetadataOwnerReference:
    obj = _as_object(value, "owner reference")
    return KubeMetadataOwnerReference(
        kind=_string_field(obj, "kind"),
        name=_string_field(obj, "name"),
        uid=_string_field(obj, "uid"),
    )


def _decode_metadata(value: Any) -> KubeMetadata:
    obj = _as_object(value, "metadata")
    refs = _lookup(obj, "ownerReferences")
    if refs is None or refs is _MISSING:
        refs = []
    elif not isinstance(refs, list):
        raise ValueError(f"cannot decode {type(refs).__name__} into owner references")
    return KubeMetadata(
        name=_string_field(obj, "name"),
        namespace=_string_field(obj, "namespace"),
        uid=_string_field(obj, "uid"),
        self_link=_string_field(obj, "selfLink"),
        resource_version=_string_field(obj, "resourceVersion"),
        creation_timestamp=_string_field(obj, "creationTimestamp"),
        owner_references=tuple(_decode_owner_reference(ref) for ref in refs),
    )


def extract_metadata(payload: str | bytes) -> KubeMetadata:
    """Return the metadata section of a watch payload.

    Raises ValueError when the payload is not valid JSON of the expected shape.
    """
    return _decode_metadata(_lookup(_load(payload), "metadata"))


def extract_involved_object(payload: str | bytes) -> KubeInvolvedObject:
    """Return the involved object of an event payload."""
    obj = _as_object(_lookup(_load(payload), "involvedObject"), "involved object")
    return KubeInvolvedObject(
        kind=_string_field(obj, "kind"),
        name=_string_field(obj, "name"),
        namespace=_string_field(obj, "namespace"),
        uid=_string_field(obj, "uid"),
    )


def _parse_rfc3339(text: str) -> datetime | None:
    match = _RFC3339.fullmatch(text)
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction = match.group(7) or ""
    micro = int(fraction[:6].ljust(6, "0")) if fraction else 0
    zone = match.group(8)
    try:
        if zone == "Z":
            tz = timezone.utc
        else:
            zone_hours, zone_minutes = int(zone[1:3]), int(zone[4:6])
            if zone_minutes >= 60:
                return None
            offset = timedelta(hours=zone_hours, minutes=zone_minutes)
            tz = timezone(offset if zone[0] == "+" else -offset)
        return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)
    except ValueError:
        return None


def extract_event_info(payload: str | bytes) -> EventInfo:
    """Return reason, severity, time range and count of an event payload.

    Unparsable timestamps are logged and replaced by ZERO_TIME; a bad last
    timestamp also resets the first one.
    """
    obj = _load(payload)
    first_raw = _string_field(obj, "firstTimestamp")
    last_raw = _string_field(obj, "lastTimestamp")

    first = _parse_rfc3339(first_raw)
    if first is None:
        log.error("Could not parse first timestamp %s", first_raw)
        first = ZERO_TIME

    last = _parse_rfc3339(last_raw)
    if last is None:
        log.error("Could not parse last timestamp %s", last_raw)
        last = ZERO_TIME
        first = ZERO_TIME

    return EventInfo(
        reason=_string_field(obj, "reason"),
        type=_string_field(obj, "type"),
        first_timestamp=first,
        last_timestamp=last,
        count=_int_field(obj, "count"),
    )


def get_involved_object_name_from_event_name(event_name: str) -> str:
    """Strip the unique suffix after the last dot of an event name."""
    dot = event_name.rfind(".")
    if dot < 0:
        raise ValueError(f"unexpected format for a k8s event name: {event_name}")
    return event_name[:dot]


def is_clusters_scoped_resource(selected_kind: str) -> bool:
    return selected_kind in (NODE_KIND, NAMESPACE_KIND)