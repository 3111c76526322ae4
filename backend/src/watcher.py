"""Rebuilds the index when documents appear in, change in, or leave the source folders."""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ValidationError
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from loaders import DEFAULT_EXTENSIONS

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 5.0
STATUS_FILENAME = "ingestion_status.json"

RunState = Literal["idle", "processing", "complete", "error"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class IngestionStatus(BaseModel):
    """Last known state of the background ingestion, as polled by callers."""

    status: RunState = "idle"
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    changed_files: list[str] = []
    results: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class StatusFile:
    def __init__(self, path: Path):
        self.path = path

    def write(self, status: IngestionStatus) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(status.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def read(self) -> IngestionStatus:
        try:
            return IngestionStatus.model_validate_json(self.path.read_bytes())
        except (FileNotFoundError, ValidationError):
            return IngestionStatus()


class Debouncer:
    """Calls ``callback`` with the collected keys once ``delay`` passes quietly.

    Every ``touch`` restarts the countdown.
    """

    def __init__(self, delay: float, callback: Callable[[list[str]], None]):
        self.delay = delay
        self.callback = callback
        self._lock = threading.Lock()
        self._pending: set[str] = set()
        self._timer: Optional[threading.Timer] = None

    @property
    def pending(self) -> set[str]:
        with self._lock:
            return set(self._pending)

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def touch(self, key: str) -> int:
        with self._lock:
            self._pending.add(key)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()
            return len(self._pending)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            keys = sorted(self._pending)
            self._pending.clear()
            self._timer = None
        if keys:
            self.callback(keys)


class _SourceEventHandler(FileSystemEventHandler):
    def __init__(self, on_change: Callable[[str], None], extensions: set[str]):
        self.on_change = on_change
        self.extensions = extensions

    def _relevant_path(self, event: FileSystemEvent) -> Optional[str]:
        if event.is_directory:
            return None
        for path in (event.src_path, getattr(event, "dest_path", "") or ""):
            if path and Path(path).suffix.lower() in self.extensions:
                return str(path)
        return None

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in ("created", "modified", "deleted", "moved"):
            return
        path = self._relevant_path(event)
        if path is not None:
            self.on_change(path)


class IngestionWatcher:
    """Debounced full re-ingestion on source folder changes.

    A burst of file events produces a single run once the folders have been
    quiet for ``debounce_seconds``. Runs never overlap: a trigger arriving
    during a run is queued, and one follow-up run covers every file reported
    meanwhile.
    A failed run leaves the previous index in place; its error is recorded
    in the status file.

    Args:
        watch_dirs: Source directories to observe (non-recursive).
        status_file: JSON file the current status is written to.
        run_ingestion: Performs one full ingestion and returns its summary.
        extensions: Document suffixes that count as source changes.
        debounce_seconds: Quiet period before a run starts.
        on_complete: Called with the summary after a successful run, e.g. to
            reload a retrieval service.
    """

    def __init__(
        self,
        watch_dirs: list[Path],
        status_file: Path,
        run_ingestion: Callable[[], dict[str, Any]],
        extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        on_complete: Optional[Callable[[dict[str, Any]], None]] = None,
    ):
        self.watch_dirs = list(watch_dirs)
        self.status = StatusFile(status_file)
        self.run_ingestion = run_ingestion
        self.on_complete = on_complete
        self.debouncer = Debouncer(debounce_seconds, self.process)
        self.handler = _SourceEventHandler(
            self.file_changed, {ext.lower() for ext in extensions}
        )
        self._run_lock = threading.Lock()
        self._queue_lock = threading.Lock()
        self._queued: set[str] = set()
        self._rerun = False

    @property
    def is_processing(self) -> bool:
        return self._run_lock.locked()

    def file_changed(self, path: str) -> None:
        pending = self.debouncer.touch(path)
        logger.info(
            f"Change detected in {Path(path).name}; ingesting after "
            f"{self.debouncer.delay}s of quiet ({pending} file(s) pending)"
        )

    def process(self, changed_files: Optional[list[str]] = None) -> Optional[dict[str, Any]]:
        """Run one ingestion now, or queue a rerun if one is already running.

        Files reported while a run is in progress are ingested by a follow-up
        run as soon as the current one finishes.
        """
        if not self._run_lock.acquire(blocking=False):
            with self._queue_lock:
                self._queued.update(changed_files or [])
                self._rerun = True
            logger.info("Ingestion already running; queued a follow-up run")
            return None

        try:
            results = self._run(changed_files or [])
        finally:
            self._run_lock.release()

        with self._queue_lock:
            rerun, queued = self._rerun, sorted(self._queued)
            self._rerun = False
            self._queued.clear()
        if rerun:
            self.process(queued)
        return results

    def _run(self, changed_files: list[str]) -> Optional[dict[str, Any]]:
        status = IngestionStatus(
            status="processing", started_at=_now(), changed_files=changed_files
        )
        self.status.write(status)
        logger.info(f"Re-ingesting after changes to {len(changed_files)} file(s)")
        try:
            results = self.run_ingestion()
        except Exception as e:
            logger.error(f"Ingestion failed, previous index kept: {e}")
            self.status.write(
                status.model_copy(
                    update={"status": "error", "completed_at": _now(), "error": str(e)}
                )
            )
            return None

        self.status.write(
            status.model_copy(
                update={"status": "complete", "completed_at": _now(), "results": results}
            )
        )
        logger.info(
            f"Ingestion finished: {results.get('documents', 0)} documents, "
            f"{results.get('chunks', 0)} chunks"
        )
        if self.on_complete is not None:
            self.on_complete(results)
        return results

    def start(self) -> None:
        """Observe the source directories until interrupted."""
        observer = Observer()
        for directory in self.watch_dirs:
            directory.mkdir(parents=True, exist_ok=True)
            observer.schedule(self.handler, str(directory), recursive=False)
            logger.info(f"Watching {directory}")
        observer.start()

        try:
            while observer.is_alive():
                observer.join(1)
        except KeyboardInterrupt:
            logger.info("Stopping watcher")
        finally:
            self.debouncer.cancel()
            observer.stop()
            observer.join()
