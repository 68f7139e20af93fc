import os
import queue
import threading
from typing import Iterable, List, Optional

from configuration import FormatterConfig
from errors import FileAccessError, FormatCanceled, FormatterError, WalkError
from logger import logger
from reporter import Reporter
from results import BatchOutcome, DirectorySkipped, FormatResult
from unit_formatter import format_unit

SOURCE_SUFFIX = ".go"
TEST_SUFFIX = "_test.go"

# Sent once the walk and every worker it dispatched are done.
_CLOSED = None


def is_skipped_dir(name: str) -> bool:
    """Hidden, vendored and fixture directories are never descended into."""
    if name.startswith("vendor") or name.startswith("testdata"):
        return True
    return name not in (".", "..") and name.startswith(".")


def is_eligible_file(name: str) -> bool:
    return name.endswith(SOURCE_SUFFIX) and not name.endswith(TEST_SUFFIX)


def read_source(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileAccessError(path, "read", e) from e


class FileWorker(threading.Thread):
    """Formats one unit and sends the result to the results queue."""

    def __init__(self, path: str, source: bytes, config: FormatterConfig, results: queue.Queue,
                 outcome: BatchOutcome, slots: threading.BoundedSemaphore):
        super().__init__(name=f"FileWorker[{path}]")
        self.daemon = True
        self.path = path
        self.source = source
        self.config = config
        self.results = results
        self.outcome = outcome
        self.slots = slots

    def run(self):
        try:
            result = format_unit(self.path, self.source, self.config)
        except FormatterError as e:
            logger.error(f"Formatting failed for {self.path}: {e}")
            self.outcome.add_error(e)
            return
        except Exception as e:
            logger.error(f"Unexpected error while formatting {self.path}: {e}", exc_info=True)
            self.outcome.add_error(FormatterError(f"{self.path}: {e}"))
            return
        finally:
            self.slots.release()

        self.results.put(result)


class DirectoryWalker(threading.Thread):
    """
    Walks a directory tree and dispatches eligible files to workers.

    At most ``config.parallelism`` workers are in flight. Files are read on
    this thread; formatting happens on the workers. A walk failure or a worker
    that cannot start stops further dispatch, as does the cancellation event.
    The results queue is closed once every dispatched worker has finished.
    """

    def __init__(self, root: str, config: FormatterConfig, results: queue.Queue, outcome: BatchOutcome,
                 cancel_event: threading.Event):
        super().__init__(name=f"DirectoryWalker[{root}]")
        self.daemon = True
        self.root = root
        self.config = config
        self.results = results
        self.outcome = outcome
        self.cancel_event = cancel_event
        self._slots = threading.BoundedSemaphore(config.parallelism)
        self._workers: List[FileWorker] = []
        self._walk_failed = threading.Event()

    def run(self):
        try:
            self._walk()
        except Exception as e:
            logger.error(f"Directory walk of {self.root} stopped unexpectedly: {e}", exc_info=True)
            self.outcome.add_error(WalkError(self.root, e))
        finally:
            try:
                for worker in self._workers:
                    worker.join()
            finally:
                self.results.put(_CLOSED)

    def _stopped(self) -> bool:
        return self.cancel_event.is_set() or self._walk_failed.is_set()

    def _on_walk_error(self, error: OSError):
        logger.error(f"Walk error: {error}")
        self.outcome.add_error(WalkError(error.filename or self.root, error))
        self._walk_failed.set()

    def _walk(self):
        root_name = os.path.basename(os.path.normpath(self.root))
        if is_skipped_dir(root_name):
            self.results.put(DirectorySkipped(path=self.root))
            return

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_walk_error):
            if self._stopped():
                dirnames[:] = []
                return

            kept = []
            for name in sorted(dirnames):
                if is_skipped_dir(name):
                    self.results.put(DirectorySkipped(path=os.path.join(dirpath, name)))
                else:
                    kept.append(name)
            dirnames[:] = kept

            for name in sorted(filenames):
                path = os.path.join(dirpath, name)
                if not is_eligible_file(name) or not os.path.isfile(path):
                    continue
                if not self._dispatch(path):
                    dirnames[:] = []
                    return

    def _dispatch(self, path: str) -> bool:
        """Start a worker for ``path``; return False once dispatching must stop."""
        while not self._slots.acquire(timeout=0.05):
            if self._stopped():
                return False
        if self._stopped():
            self._slots.release()
            return False

        try:
            source = read_source(path)
        except FileAccessError as e:
            self._slots.release()
            logger.error(f"Reading failed for {path}: {e}")
            self.outcome.add_error(e)
            return True

        worker = FileWorker(path, source, self.config, self.results, self.outcome, self._slots)
        try:
            worker.start()
        except RuntimeError as e:
            self._slots.release()
            logger.error(f"Could not start a worker for {path}: {e}")
            self.outcome.add_error(FormatterError(f"{path}: {e}"))
            return False

        self._workers = [w for w in self._workers if w.is_alive()]
        self._workers.append(worker)
        return True


class BatchPipeline:
    """Formats files and directory trees, applying every result through one reporter."""

    def __init__(self, config: FormatterConfig, reporter: Optional[Reporter] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.config = config
        self.reporter = reporter if reporter is not None else Reporter(config)
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()

    def format_path(self, path: str) -> BatchOutcome:
        return self.format_paths([path])

    def format_paths(self, paths: Iterable[str]) -> BatchOutcome:
        """
        Format every path; raise BatchError carrying all collected errors when any occurred.

        A cancellation stops dispatching new files; results already produced are
        still applied and the error set gains a FormatCanceled entry.
        """
        outcome = BatchOutcome()
        for path in paths:
            if self.cancel_event.is_set():
                break
            self._process_path(str(path), outcome)

        if self.cancel_event.is_set():
            logger.info("Formatting canceled; in-flight files were completed.")
            outcome.add_error(FormatCanceled())

        outcome.raise_for_errors()
        return outcome

    def _process_path(self, path: str, outcome: BatchOutcome):
        try:
            is_dir = os.path.isdir(path)
            if not is_dir:
                os.stat(path)
        except OSError as e:
            outcome.add_error(FileAccessError(path, "stat", e))
            return

        if is_dir:
            self._process_dir(path, outcome)
        else:
            self._process_file(path, outcome)

    def _process_file(self, path: str, outcome: BatchOutcome):
        try:
            result = format_unit(path, read_source(path), self.config)
        except FormatterError as e:
            logger.error(f"Formatting failed for {path}: {e}")
            outcome.add_error(e)
            return

        self._apply(result, outcome)

    def _process_dir(self, root: str, outcome: BatchOutcome):
        results: queue.Queue = queue.Queue()
        walker = DirectoryWalker(root, self.config, results, outcome, self.cancel_event)
        logger.debug(f"Walking {root} with parallelism {self.config.parallelism}")
        walker.start()

        # Single consumer: side effects happen one result at a time, in arrival order.
        while True:
            item = results.get()
            if item is _CLOSED:
                break
            if isinstance(item, DirectorySkipped):
                logger.debug(f"{item.path} skipped")
                self.reporter.skipped(item.path)
                continue
            self._apply(item, outcome)

        walker.join()

    def _apply(self, result: FormatResult, outcome: BatchOutcome):
        outcome.add_result(result)
        try:
            self.reporter.report(result)
        except FormatterError as e:
            logger.error(f"Applying result failed for {result.unit}: {e}")
            outcome.add_error(e)
