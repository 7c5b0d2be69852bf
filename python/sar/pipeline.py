"""
Pipeline - Concurrent file-to-record processing.

One feeder thread walks the scanner and submits a task per file to a
bounded thread pool. Every task classifies its file, decrypts it if
needed, extracts records and sends them, in line order, onto a single
shared RecordChannel. Once all tasks have finished the sending side of
the channel is closed, which the consumer sees as end of stream.

Flow:
    Scanner → (per-file task) → Cipher (if encrypted) → Extractor → RecordChannel
"""

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional

from .config import SarConfig
from .errors import ChannelClosed, CipherError, ErrorAction, handle_error
from .extractor import extract_records, read_decoded
from .models import Encrypted, Item, OpaqueRecord, PipelineStats
from .scanner import FileKind, Scanner, sniff_origin


logger = logging.getLogger(__name__)


# Blocking queue operations wake up this often to check for closing
_POLL_INTERVAL = 0.1


class RecordChannel:
    """
    Multi-producer, single-consumer queue of items.

    The queue is bounded by ``maxsize`` (0 = unbounded) so that workers
    block when the consumer falls behind. Each side can be closed:

    - close_sending(): no more items will come; recv() returns None once
      the queue is drained.
    - close_receiving(): the consumer is gone; send() raises ChannelClosed
      and recv() returns None.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: queue.Queue[Item] = queue.Queue(maxsize)
        self._sending_closed = threading.Event()
        self._receiving_closed = threading.Event()

    def send(self, item: Item) -> None:
        """Enqueue one item, blocking while the queue is full."""
        while True:
            if self._receiving_closed.is_set():
                raise ChannelClosed("Receiver has gone away")
            if self._sending_closed.is_set():
                raise ChannelClosed("Sending side is already closed")
            try:
                self._queue.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def recv(self) -> Optional[Item]:
        """Block until an item is available. None means end of stream."""
        while not self._receiving_closed.is_set():
            try:
                return self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                # Check closed before empty: nothing is sent after closing
                if self._sending_closed.is_set() and self._queue.empty():
                    return None
        return None

    def try_recv(self) -> Optional[Item]:
        """Return an already queued item, or None without blocking."""
        if self._receiving_closed.is_set():
            return None
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def close_sending(self) -> None:
        self._sending_closed.set()

    def close_receiving(self) -> None:
        self._receiving_closed.set()

    @property
    def sending_closed(self) -> bool:
        return self._sending_closed.is_set()

    @property
    def receiving_closed(self) -> bool:
        return self._receiving_closed.is_set()


def _send_all(
    items: Iterable[Item],
    channel: RecordChannel,
    cancel: threading.Event,
) -> int:
    sent = 0
    for item in items:
        if cancel.is_set():
            break
        channel.send(item)
        sent += 1
    return sent


def process_file(
    path: Path,
    kind: FileKind,
    password: Optional[str],
    channel: RecordChannel,
    cancel: threading.Event,
) -> int:
    """
    Turn one file into items and send them onto the channel.

    Runs in a worker thread. I/O and decoding errors propagate to the
    caller as task failure.

    Returns:
        Number of items sent
    """
    if kind is FileKind.OPAQUE:
        return _send_all([OpaqueRecord(path)], channel, cancel)

    origin = sniff_origin(path, password)
    if isinstance(origin, Encrypted):
        content = read_decoded(path, origin)
        return _send_all(extract_records(path, content, origin), channel, cancel)

    with open(path, "rb") as f:
        return _send_all(extract_records(path, f, origin), channel, cancel)


class PipelineCoordinator:
    """
    Runs file tasks across a bounded worker pool.

    Usage:
        coordinator = PipelineCoordinator(config, password)
        channel = coordinator.start()
        ...consume channel...
        coordinator.cancel()        # once the consumer is done
        stats = coordinator.join()

    A failing file is logged and counted in the stats; the run goes on.
    A coordination failure (the receiver went away without cancelling)
    or an unexpected error aborts the run and is re-raised by join().
    """

    def __init__(self, config: SarConfig, password: Optional[str] = None):
        self.config = config
        self.password = password
        self.channel = RecordChannel(config.queue_size)
        self.stats = PipelineStats()

        self._scanner = Scanner(config)
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._feeder: Optional[threading.Thread] = None
        self._fatal: Optional[BaseException] = None

    def start(self, roots: Optional[List[Path]] = None) -> RecordChannel:
        """Start scanning and processing in the background."""
        if self._feeder is not None:
            raise RuntimeError("Pipeline already started")

        self._executor = ThreadPoolExecutor(
            max_workers=self.config.worker_count,
            thread_name_prefix="sar-worker",
        )
        self._feeder = threading.Thread(
            target=self._feed,
            args=(roots,),
            name="sar-feeder",
            daemon=True,
        )
        logger.info(
            f"Starting pipeline over {len(roots or self.config.roots)} roots "
            f"with {self.config.worker_count} workers"
        )
        self._feeder.start()
        return self.channel

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """
        Stop the run: pending tasks are dropped, running tasks stop at
        their next record, and the channel's receiving side is closed.

        Also releases workers still blocked on a full channel after an
        abort, so it is safe to call more than once.
        """
        if not self._cancel.is_set():
            logger.debug("Cancelling pipeline")
            self._cancel.set()
        self.channel.close_receiving()
        if self._executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def join(self, timeout: Optional[float] = None) -> PipelineStats:
        """
        Wait for the run to end and return its statistics.

        Raises:
            The fatal error that aborted the run, if any
        """
        if self._feeder is not None:
            self._feeder.join(timeout)
        if self._fatal is not None:
            raise self._fatal
        return self.stats

    def close(self) -> None:
        """Cancel and wait, without raising."""
        self.cancel()
        if self._feeder is not None:
            self._feeder.join()

    def __enter__(self) -> "PipelineCoordinator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _feed(self, roots: Optional[List[Path]]) -> None:
        start_time = time.monotonic()
        futures: List[Future] = []
        try:
            for path in self._scanner.iter_files(roots):
                if self._cancel.is_set():
                    break
                kind = self._scanner.classify(path)
                try:
                    future = self._executor.submit(
                        process_file, path, kind, self.password,
                        self.channel, self._cancel,
                    )
                except RuntimeError:
                    # Executor shut down by cancel()
                    if self._cancel.is_set():
                        break
                    raise
                with self._lock:
                    self.stats.files_scanned += 1
                future.add_done_callback(partial(self._task_done, path))
                futures.append(future)

            wait(futures)
        except Exception as e:
            handle_error(e, None, "feed")
            self._abort(e)
        finally:
            self._executor.shutdown(wait=True, cancel_futures=self._cancel.is_set())
            self.channel.close_sending()
            self.stats.duration_seconds = time.monotonic() - start_time
            logger.info(f"Pipeline finished: {self.stats}")

    def _task_done(self, path: Path, future: Future) -> None:
        if future.cancelled():
            return

        error = future.exception()
        if error is None:
            with self._lock:
                self.stats.files_indexed += 1
                self.stats.records_sent += future.result()
            return

        # A cancelled run closes the channel under the workers' feet
        if isinstance(error, ChannelClosed) and self._cancel.is_set():
            return

        action = handle_error(error, path, "process_file")
        with self._lock:
            if action is ErrorAction.SKIP:
                self.stats.files_skipped += 1
            elif action is ErrorAction.FAIL_FILE:
                if isinstance(error, CipherError):
                    self.stats.files_undecodable += 1
                else:
                    self.stats.files_failed += 1
                self.stats.failed_paths.append(path)

        if action is ErrorAction.ABORT:
            self._abort(error)

    def _abort(self, error: BaseException) -> None:
        with self._lock:
            if self._fatal is None:
                self._fatal = error
        self._cancel.set()
        if self._executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
