"""Watch loop — uploads new log records every time the log file is written."""

import enum
import logging
import os
import queue
import threading

from watchdog.events import (
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from adif_uploader.errors import LogRemovedError, WatchError
from adif_uploader.reader import LogReader
from adif_uploader.uploader import QsoUploader

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0


class WatchState(enum.Enum):
    IDLE = "idle"
    DRAINING = "draining"
    TERMINATED = "terminated"


class LogEventHandler(FileSystemEventHandler):
    """Forwards events that concern a single file onto a queue.

    Watchdog observes directories, so events for sibling files are dropped
    here rather than in the watch loop.
    """

    def __init__(self, path: str, events: queue.Queue):
        super().__init__()
        self._path = os.path.abspath(path)
        self._events = events

    def _concerns(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        if os.path.abspath(os.fsdecode(event.src_path)) == self._path:
            return True
        dest = getattr(event, "dest_path", "")
        return bool(dest) and os.path.abspath(os.fsdecode(dest)) == self._path

    def on_any_event(self, event: FileSystemEvent):
        if self._concerns(event):
            self._events.put(event)


class WatchLoop:
    """Drives reader → uploader, once at startup and again on every write event."""

    def __init__(
        self,
        path: str,
        reader: LogReader,
        uploader: QsoUploader,
        observer=None,
        shutdown_event: threading.Event | None = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        self._path = os.path.abspath(path)
        self._reader = reader
        self._uploader = uploader
        self._observer = observer if observer is not None else Observer()
        self._shutdown = shutdown_event or threading.Event()
        self._poll_interval = poll_interval
        self._events: queue.Queue = queue.Queue()
        self.handler = LogEventHandler(self._path, self._events)
        self.state = WatchState.IDLE

    def drain_and_upload(self) -> int:
        """Upload every complete record currently in the log. Returns chunk count."""
        self.state = WatchState.DRAINING
        count = 0
        try:
            for chunk in self._reader.drain():
                self._uploader.send(chunk)
                count += 1
        except Exception:
            self.state = WatchState.TERMINATED
            raise
        self.state = WatchState.IDLE
        return count

    def run(self):
        """Block until shutdown is requested or a fatal error is raised.

        The observer starts before the initial upload. Events queued while
        it runs are handled once it completes.
        """
        self._start_observer()
        try:
            logger.info("Performing initial full log upload.")
            self.drain_and_upload()

            while not self._shutdown.is_set():
                try:
                    event = self._events.get(timeout=self._poll_interval)
                except queue.Empty:
                    if not self._observer.is_alive():
                        self.state = WatchState.TERMINATED
                        raise WatchError("File watcher stopped unexpectedly")
                    continue
                self.handle_event(event)
        finally:
            self._stop_observer()

    def handle_event(self, event: FileSystemEvent):
        logger.debug("Log file event: %r", event)

        if isinstance(event, FileModifiedEvent):
            if not self._has_unread_data():
                # chmod/touch arrive as modify events too (IN_ATTRIB on Linux)
                logger.debug("Log file metadata changed, no new data.")
                return
            logger.info("Change detected in log file. Checking for updates.")
            self.drain_and_upload()
        elif isinstance(event, FileDeletedEvent) or (
            isinstance(event, FileMovedEvent)
            and os.path.abspath(os.fsdecode(event.src_path)) == self._path
        ):
            self.state = WatchState.TERMINATED
            raise LogRemovedError("Log file has been removed. Bailing out.")

    def _has_unread_data(self) -> bool:
        try:
            size = os.stat(self._path).st_size
        except OSError:
            return True
        return size > self._reader.bytes_read

    def _start_observer(self):
        directory = os.path.dirname(self._path)
        try:
            self._observer.schedule(self.handler, directory, recursive=False)
            self._observer.start()
        except OSError as e:
            self.state = WatchState.TERMINATED
            raise WatchError(f"Unable to watch log file for changes: {e}") from e
        logger.debug("Watching directory %s for changes to %s", directory, self._path)

    def _stop_observer(self):
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=5)
