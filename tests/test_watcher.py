import sys
import threading
from pathlib import Path
from typing import Any

from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileDeletedEvent, FileMovedEvent

sys.path.insert(0, str(Path(__file__).parent.parent / "backend" / "src"))

from watcher import Debouncer, IngestionStatus, IngestionWatcher, StatusFile


def make_watcher(
    tmp_path: Path, run_ingestion, debounce_seconds: float = 0.05, **kwargs: Any
) -> IngestionWatcher:
    return IngestionWatcher(
        watch_dirs=[tmp_path / "tcp handbooks", tmp_path / "tcp examples"],
        status_file=tmp_path / "rag_index" / "ingestion_status.json",
        run_ingestion=run_ingestion,
        debounce_seconds=debounce_seconds,
        **kwargs,
    )


class TestStatusFile:
    def test_missing_or_garbled_file_reads_idle(self, tmp_path: Path) -> None:
        status_file = StatusFile(tmp_path / "status.json")
        assert status_file.read().status == "idle"

        status_file.path.write_text("{not json")
        assert status_file.read().status == "idle"

    def test_write_then_read(self, tmp_path: Path) -> None:
        status_file = StatusFile(tmp_path / "nested" / "status.json")
        status_file.write(IngestionStatus(status="complete", results={"chunks": 4}))

        assert status_file.read().results == {"chunks": 4}


class TestDebouncer:
    def test_burst_fires_once_with_all_keys(self) -> None:
        fired: list[list[str]] = []
        done = threading.Event()

        def callback(keys: list[str]) -> None:
            fired.append(keys)
            done.set()

        debouncer = Debouncer(0.2, callback)
        for key in ("b.pdf", "a.pdf", "b.pdf"):
            debouncer.touch(key)

        assert done.wait(timeout=5)
        done.clear()
        assert not done.wait(timeout=0.5)
        assert fired == [["a.pdf", "b.pdf"]]
        assert debouncer.pending == set()
        assert not debouncer.armed

    def test_cancel_prevents_firing(self) -> None:
        fired: list[list[str]] = []
        debouncer = Debouncer(0.05, fired.append)
        debouncer.touch("a.pdf")
        debouncer.cancel()

        threading.Event().wait(0.2)
        assert fired == []


class TestIngestionWatcher:
    def test_successful_run_records_complete_status(self, tmp_path: Path) -> None:
        completed: list[dict] = []
        watcher = make_watcher(
            tmp_path,
            lambda: {"documents": 2, "chunks": 4},
            on_complete=completed.append,
        )

        results = watcher.process(["tcp handbooks/MUTCD.pdf"])

        status = watcher.status.read()
        assert results == {"documents": 2, "chunks": 4}
        assert status.status == "complete"
        assert status.results["chunks"] == 4
        assert status.changed_files == ["tcp handbooks/MUTCD.pdf"]
        assert status.started_at is not None and status.completed_at is not None
        assert completed == [results]

    def test_failed_run_records_error_status(self, tmp_path: Path) -> None:
        def fail() -> dict:
            raise RuntimeError("Embedding batch 2/3 failed")

        watcher = make_watcher(tmp_path, fail)

        assert watcher.process() is None
        status = watcher.status.read()
        assert status.status == "error"
        assert "batch 2/3" in status.error
        assert watcher.is_processing is False

    def test_overlapping_trigger_queues_one_follow_up_run(self, tmp_path: Path) -> None:
        release = threading.Event()
        started = threading.Event()
        calls: list[int] = []

        def slow_run() -> dict:
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return {}

        watcher = make_watcher(tmp_path, slow_run)
        worker = threading.Thread(target=watcher.process)
        worker.start()
        assert started.wait(timeout=5)

        assert watcher.is_processing
        assert watcher.process(["a.pdf"]) is None
        assert watcher.process(["b.pdf"]) is None

        release.set()
        worker.join(timeout=5)
        assert calls == [1, 1]
        assert watcher.status.read().changed_files == ["a.pdf", "b.pdf"]
        assert watcher.is_processing is False

    def test_change_during_run_is_ingested_afterwards(self, tmp_path: Path) -> None:
        release = threading.Event()
        first_started = threading.Event()
        second_done = threading.Event()
        calls: list[int] = []

        def run() -> dict:
            calls.append(1)
            if len(calls) == 1:
                first_started.set()
                release.wait(timeout=5)
            else:
                second_done.set()
            return {}

        watcher = make_watcher(tmp_path, run, debounce_seconds=0.05)
        watcher.file_changed("a.pdf")
        assert first_started.wait(timeout=5)

        watcher.file_changed("b.pdf")
        threading.Event().wait(0.3)
        assert not watcher.debouncer.armed
        assert calls == [1]

        release.set()
        assert second_done.wait(timeout=5)
        assert calls == [1, 1]
        assert watcher.status.read().changed_files == ["b.pdf"]

    def test_burst_of_events_runs_ingestion_once(self, tmp_path: Path) -> None:
        calls: list[int] = []
        done = threading.Event()

        def run() -> dict:
            calls.append(1)
            done.set()
            return {"documents": 3, "chunks": 6}

        watcher = make_watcher(tmp_path, run, debounce_seconds=0.2)
        for name in ("a.pdf", "b.pdf", "c.pdf"):
            watcher.handler.dispatch(FileCreatedEvent(str(tmp_path / "tcp handbooks" / name)))

        assert done.wait(timeout=5)
        done.clear()
        assert not done.wait(timeout=0.5)
        assert calls == [1]

    def test_irrelevant_events_are_ignored(self, tmp_path: Path) -> None:
        watcher = make_watcher(tmp_path, lambda: {})

        watcher.handler.dispatch(FileCreatedEvent(str(tmp_path / "tcp handbooks" / "notes.docx")))
        watcher.handler.dispatch(DirCreatedEvent(str(tmp_path / "tcp handbooks" / "new.pdf")))

        assert watcher.debouncer.pending == set()
        assert not watcher.debouncer.armed

    def test_configured_extensions_deletes_and_moves_trigger(self, tmp_path: Path) -> None:
        watcher = make_watcher(tmp_path, lambda: {}, debounce_seconds=60, extensions=[".txt"])
        examples = tmp_path / "tcp examples"

        watcher.handler.dispatch(FileDeletedEvent(str(examples / "Plan-A.TXT")))
        watcher.handler.dispatch(FileCreatedEvent(str(examples / "Plan-B.pdf")))
        watcher.handler.dispatch(
            FileMovedEvent(str(examples / "draft.tmp"), str(examples / "Plan-C.txt"))
        )

        assert watcher.debouncer.pending == {
            str(examples / "Plan-A.TXT"),
            str(examples / "Plan-C.txt"),
        }
        watcher.debouncer.cancel()
