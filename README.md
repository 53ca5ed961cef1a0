# sloop

A library for recording and analysing the stream of changes to Kubernetes
resources: pulling metadata out of watch payloads, dropping node updates
that carry no real change, working out how many new event occurrences fall
into each minute, recording watch results to YAML files and replaying them,
and handling partitioned storage keys.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `sloop.kubeextractor`: parses JSON watch payloads.
  `extract_metadata`, `extract_involved_object` and `extract_event_info`
  return the frozen dataclasses `KubeMetadata` (with a tuple of
  `KubeMetadataOwnerReference`), `KubeInvolvedObject` and `EventInfo`.
  Field names are matched case-insensitively and missing fields come back
  empty; malformed JSON or fields of the wrong type raise `ValueError`.
  Unparsable event timestamps are logged and replaced by `ZERO_TIME`.
  `get_involved_object_name_from_event_name` strips the suffix after the
  last dot of an event name (raising `ValueError` if there is none), and
  `is_clusters_scoped_resource` is true for `"Node"` and `"Namespace"`.
  The kind names are available as `NODE_KIND`, `NAMESPACE_KIND`, `POD_KIND`
  and `EVENT_KIND`.
- `sloop.nodededupe`: `remove_res_ver_and_timestamp` returns canonical
  (sorted-key, compact) JSON of a node with `metadata.resourceVersion` and
  every condition's `lastHeartbeatTime` set to `"removed"`;
  `node_has_major_update(node1, node2)` compares two nodes that way.
- `sloop.keys`: `parse_key` splits keys of the form
  `/<table>/<partition>/<kind>/<namespace>/<name>/<suffix>` and raises
  `ValueError` on any other shape. `get_sloop_key` returns a `SloopKey`
  (table name and partition id). `get_partitions_info(keys)` counts an
  iterable of keys per partition and table into `PartitionInfo` records and
  returns them with the total; unparsable keys are logged and skipped.
  `get_sorted_partition_ids` sorts partition ids and `print_key_histogram`
  logs the counts at debug level. Small helpers: `bool_to_float`,
  `contains` and `get_file_path`.
- `sloop.dbutil`: works over any mutable mapping used as an ordered
  key/value store (keys visited in byte order).
  `delete_keys_with_prefix(key_prefix, db, deletion_batch_size,
  num_of_keys_to_delete)` deletes matching keys in batches from the start of
  the key order and returns `(deleted, requested)`;
  `get_total_key_count(db, key_prefix)` counts keys with a prefix (an empty
  prefix counts all).
- `sloop.watchresult`: the `WatchType` enum (`ADD`, `UPDATE`, `DELETE`),
  the `KubeWatchResult` dataclass (timestamp, kind, watch type, payload) and
  `KubePlaybackFile`, whose `to_yaml` and `from_yaml` save and load a list of
  results under a top-level `Data` key.
- `sloop.playback`: `play_file(out_queue, filename)` puts every recorded
  result from a playback file on a queue, in order. `FileRecorder(filename,
  in_queue)` collects results from a queue on a background thread after
  `start()`; putting `None` on the queue ends collection, and `close()`
  waits for that, writes the YAML file and returns the number of records.
- `sloop.kubewatcher`: `KubeWatcher(out_queue)` turns add, update and
  delete notifications into `KubeWatchResult` records on the queue.
  `event_handler_for_resource(kind)` returns a `ResourceEventHandler` with
  `on_add`, `on_delete` and `on_update` callbacks; `report_add`,
  `report_delete`, `report_update` and `process_update` are also public.
  Per `(kind, watch type, namespace)` counts and byte totals are kept in
  `watch_counts` and `watch_bytes`. After `stop()` nothing more is emitted.
  `parse_crd_list` reads a CustomResourceDefinitionList mapping into
  `CrdGroupVersionResourceKind` entries, one per version.
- `sloop.eventcount`: `compute_events_diff` works out the range and count
  of new occurrences between two `EventInfo` records,
  `adjust_for_available_partitions` clips a range to the stored partitions
  and scales the count, `spread_out_events` spreads a count over the minutes
  of a range (keyed by unix seconds) and `distribute_value` splits a value
  evenly over buckets.

## Example

```python
from sloop.kubeextractor import extract_metadata
from sloop.nodededupe import node_has_major_update

meta = extract_metadata('{"metadata": {"name": "web-1", "namespace": "prod"}}')
print(meta.name, meta.namespace)

old = '{"metadata": {"resourceVersion": "1"}, "status": {"conditions": []}}'
new = '{"metadata": {"resourceVersion": "2"}, "status": {"conditions": []}}'
print(node_has_major_update(old, new))  # False
```

## What this package does not do

- It does not connect to a Kubernetes cluster. `KubeWatcher` only reacts to
  the callbacks you invoke on it; there is no client, informer or kubeconfig
  handling.
- It has no storage engine or table layer: event counts, watch records and
  resource summaries are computed but not persisted, and `sloop.dbutil`
  works on whatever mapping you pass in.
- It has no command-line program, web server or user interface.