"""Turning resource add, update and delete notifications into watch results."""

from __future__ import annotations

import dataclasses
import json
import logging
import queue
import threading
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sloop.kubeextractor import KubeMetadata, extract_metadata
from sloop.watchresult import KubeWatchResult, WatchType

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrdGroupVersionResourceKind:
    group: str = ""
    version: str = ""
    resource: str = ""
    kind: str = ""


@dataclass(frozen=True)
class ResourceEventHandler:
    """Callbacks an informer invokes for one resource kind."""

    on_add: Callable[[Any], None]
    on_delete: Callable[[Any], None]
    on_update: Callable[[Any, Any], None]


def _field(obj: Any, name: str, what: str) -> Any:
    if obj is None:
        return {}
    if not isinstance(obj, Mapping):
        raise ValueError(f"{what} must be a mapping, got {type(obj).__name__}")
    value = obj.get(name)
    return {} if value is None else value


def _text(obj: Mapping, name: str) -> str:
    value = obj.get(name) or ""
    if not isinstance(value, str):
        raise ValueError(f"field {name} must be a string")
    return value


def parse_crd_list(crd_list: Mapping[str, Any]) -> list[CrdGroupVersionResourceKind]:
    """List every served version of every CRD in a CustomResourceDefinitionList."""
    if not isinstance(crd_list, Mapping):
        raise ValueError("CRD list must be a mapping")
    items = crd_list.get("items") or []
    if not isinstance(items, list):
        raise ValueError("CRD list items must be a list")
    resources = []
    for crd in items:
        spec = _field(crd, "spec", "CRD")
        names = _field(spec, "names", "CRD spec")
        versions = spec.get("versions") or []
        if not isinstance(versions, list):
            raise ValueError("CRD versions must be a list")
        for version in versions:
            if not isinstance(version, Mapping):
                raise ValueError("CRD version must be a mapping")
            gvrk = CrdGroupVersionResourceKind(
                group=_text(spec, "group"),
                version=_text(version, "name"),
                resource=_text(names, "plural"),
                kind=_text(names, "kind"),
            )
            log.debug("CRD: %s", gvrk)
            resources.append(gvrk)
    return resources


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not serialisable")


class KubeWatcher:
    """Writes a watch result to the output queue for every reported change."""

    def __init__(self, out_queue: queue.Queue) -> None:
        self._out_queue = out_queue
        self._lock = threading.Lock()
        self._stopped = False
        self._crd_informers: dict[CrdGroupVersionResourceKind, threading.Event] = {}
        self.watch_counts: Counter[tuple[str, str, str]] = Counter()
        self.watch_bytes: Counter[tuple[str, str, str]] = Counter()

    def event_handler_for_resource(self, kind: str) -> ResourceEventHandler:
        return ResourceEventHandler(
            on_add=self.report_add(kind),
            on_delete=self.report_delete(kind),
            on_update=self.report_update(kind),
        )

    def _shell(self, kind: str, watch_type: WatchType) -> KubeWatchResult:
        return KubeWatchResult(
            timestamp=datetime.now(timezone.utc), kind=kind, watch_type=watch_type
        )

    def report_add(self, kind: str) -> Callable[[Any], None]:
        def report(obj: Any) -> None:
            self.process_update(kind, obj, self._shell(kind, WatchType.ADD))

        return report

    def report_delete(self, kind: str) -> Callable[[Any], None]:
        def report(obj: Any) -> None:
            self.process_update(kind, obj, self._shell(kind, WatchType.DELETE))

        return report

    def report_update(self, kind: str) -> Callable[[Any, Any], None]:
        def report(_old: Any, new: Any) -> None:
            self.process_update(kind, new, self._shell(kind, WatchType.UPDATE))

        return report

    def process_update(self, kind: str, obj: Any, watch_result: KubeWatchResult) -> None:
        """Serialise the object into the watch result and emit it."""
        try:
            resource_json = json.dumps(
                obj, separators=(",", ":"), ensure_ascii=False, default=_json_default
            )
        except (TypeError, ValueError) as exc:
            log.error("resource cannot be marshalled %s", exc)
            return

        try:
            metadata = extract_metadata(resource_json)
        except ValueError as exc:
            log.debug("No namespace for resource: %s", exc)
            metadata = KubeMetadata()

        label = (kind, watch_result.watch_type.value, metadata.namespace)
        self.watch_counts[label] += 1
        self.watch_bytes[label] += len(resource_json.encode("utf-8"))
        log.debug(
            "Informer update (%s) - Name: %s, Namespace: %s, ResourceVersion: %s",
            watch_result.watch_type,
            metadata.name,
            metadata.namespace,
            metadata.resource_version,
        )
        self._write(dataclasses.replace(watch_result, payload=resource_json))

    def _write(self, watch_result: KubeWatchResult) -> None:
        # Holding the lock guarantees nothing is emitted once stop() returns.
        with self._lock:
            if self._stopped:
                return
            self._out_queue.put(watch_result)

    def _sync_crd_informers(
        self,
        crds: Iterable[CrdGroupVersionResourceKind],
        start_informer: Callable[[CrdGroupVersionResourceKind, threading.Event], None],
    ) -> None:
        """Keep informers for listed CRDs, start missing ones and stop the rest."""
        with self._lock:
            existing = self._crd_informers
            self._crd_informers = {}
        for crd in crds:
            with self._lock:
                if self._stopped:
                    continue
                if crd in existing:
                    self._crd_informers[crd] = existing.pop(crd)
                    continue
                stop_event = threading.Event()
                self._crd_informers[crd] = stop_event
                start_informer(crd, stop_event)
        log.info("Stopping %d CRD Informers", len(existing))
        for stop_event in existing.values():
            stop_event.set()

    def stop(self) -> None:
        """Stop emitting results and signal every CRD informer to exit."""
        log.info("Stopping kubeWatcher")
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            informers = self._crd_informers
            self._crd_informers = {}
        for stop_event in informers.values():
            stop_event.set()