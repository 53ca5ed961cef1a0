"""Recording watch results to a file and playing them back.

Queues stand in for channels: a producer closes a queue by putting None on it.
"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path

from sloop.watchresult import KubePlaybackFile, KubeWatchResult

log = logging.getLogger(__name__)


def play_file(out_queue: queue.Queue, filename: str | Path) -> None:
    """Put every watch result recorded in the file on the queue, in order."""
    text = Path(filename).read_text(encoding="utf-8")
    playback = KubePlaybackFile.from_yaml(text)
    log.info("Loaded %d resources from file source %s", len(playback.data), filename)
    for record in playback.data:
        out_queue.put(record)
    log.info("Done writing kubeWatch events to channel")


class FileRecorder:
    """Collects watch results from a queue and writes them to a file on close."""

    def __init__(self, filename: str | Path, in_queue: queue.Queue) -> None:
        self.filename = Path(filename)
        self._in_queue = in_queue
        self._data: list[KubeWatchResult] = []
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Begin consuming the queue on a background thread."""
        self._thread = threading.Thread(target=self._listen, daemon=True)
        self._thread.start()

    def _listen(self) -> None:
        while True:
            record = self._in_queue.get()
            if record is None:
                return
            self._data.append(record)

    def close(self) -> int:
        """Wait for the queue to be closed, write the file and return the record count."""
        if self._thread is not None:
            self._thread.join()
        text = KubePlaybackFile(data=list(self._data)).to_yaml()
        self.filename.write_text(text, encoding="utf-8")
        self.filename.chmod(0o755)
        log.info("Wrote %d records to %s", len(self._data), self.filename)
        return len(self._data)