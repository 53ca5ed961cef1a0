import json
import queue
from datetime import datetime, timezone

import pytest

from sloop.kubewatcher import (
    CrdGroupVersionResourceKind,
    KubeWatcher,
    parse_crd_list,
)
from sloop.watchresult import KubeWatchResult, WatchType


def _list_of_one():
    return {
        "items": [
            {
                "spec": {
                    "group": "g",
                    "versions": [{"name": "v1"}],
                    "names": {"plural": "things", "kind": "k"},
                }
            }
        ]
    }


def _single(q):
    result = q.get_nowait()
    assert q.empty()
    return result


def test_parse_crd_list_one():
    crds = parse_crd_list(_list_of_one())
    assert crds == [CrdGroupVersionResourceKind("g", "v1", "things", "k")]


def test_parse_crd_list_error():
    with pytest.raises(ValueError):
        parse_crd_list(["not", "a", "list", "object"])


def test_event_handler_for_resource_dispatches_all_three():
    q = queue.Queue()
    handler = KubeWatcher(q).event_handler_for_resource("k")
    handler.on_add({"Namespace": "n"})
    handler.on_delete({"Namespace": "n"})
    handler.on_update({"Namespace": "p"}, {"Namespace": "n"})
    types = [q.get_nowait().watch_type for _ in range(3)]
    assert types == [WatchType.ADD, WatchType.DELETE, WatchType.UPDATE]
    assert q.empty()


def test_report_add():
    q = queue.Queue()
    obj = {"Namespace": "n"}
    before = datetime.now(timezone.utc)
    KubeWatcher(q).report_add("a")(obj)
    result = _single(q)
    assert result.kind == "a"
    assert result.watch_type is WatchType.ADD
    assert json.loads(result.payload) == obj
    assert result.payload == '{"Namespace":"n"}'
    assert before <= result.timestamp <= datetime.now(timezone.utc)


def test_report_delete():
    q = queue.Queue()
    KubeWatcher(q).report_delete("d")({"Namespace": "n"})
    result = _single(q)
    assert result.kind == "d"
    assert result.watch_type is WatchType.DELETE
    assert result.payload == '{"Namespace":"n"}'


def test_report_update_uses_new_object():
    q = queue.Queue()
    KubeWatcher(q).report_update("d")({"Namespace": "p"}, {"Namespace": "n"})
    result = _single(q)
    assert result.kind == "d"
    assert result.watch_type is WatchType.UPDATE
    assert result.payload == '{"Namespace":"n"}'


def test_process_update():
    q = queue.Queue()
    KubeWatcher(q).process_update("k", {"Namespace": "n"}, KubeWatchResult(kind="k"))
    result = _single(q)
    assert result.kind == "k"
    assert result.payload


def test_process_update_counts_by_namespace():
    q = queue.Queue()
    watcher = KubeWatcher(q)
    obj = {"metadata": {"name": "x", "namespace": "ns"}}
    watcher.report_add("Pod")(obj)
    payload = _single(q).payload
    assert watcher.watch_counts[("Pod", "ADD", "ns")] == 1
    assert watcher.watch_bytes[("Pod", "ADD", "ns")] == len(payload)


def test_unserialisable_object_is_dropped():
    q = queue.Queue()
    KubeWatcher(q).report_add("k")(object())
    assert q.empty()


def test_nothing_written_after_stop():
    q = queue.Queue()
    watcher = KubeWatcher(q)
    watcher.stop()
    watcher.report_add("k")({"Namespace": "n"})
    assert q.empty()


def test_crd_informers_reused_and_stopped():
    watcher = KubeWatcher(queue.Queue())
    crd = CrdGroupVersionResourceKind("g", "v", "r", "k")
    started = []

    def start(c, stop_event):
        started.append((c, stop_event))

    watcher._sync_crd_informers([crd], start)
    assert [c for c, _ in started] == [crd]
    assert [e.is_set() for _, e in started] == [False]

    watcher._sync_crd_informers([crd], start)
    assert [c for c, _ in started] == [crd]
    assert [e.is_set() for _, e in started] == [False]

    watcher._sync_crd_informers([], start)
    assert [e.is_set() for _, e in started] == [True]


def test_stop_signals_running_crd_informers():
    watcher = KubeWatcher(queue.Queue())
    events = []
    watcher._sync_crd_informers(
        parse_crd_list(_list_of_one()), lambda c, e: events.append(e)
    )
    watcher.stop()
    assert [e.is_set() for e in events] == [True]