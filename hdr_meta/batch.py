import logging
import os
from concurrent.futures import ThreadPoolExecutor

from .analysis import analyze_file
from .constants import DEFAULT_WORKER_COUNT
from .frame_reader import decode
from .luminance import ColorSpace, LuminanceTable, RangePolicy

logger = logging.getLogger(__name__)


class BatchScheduler:
    """
    Runs the frame analyzer over an ordered file list with a bounded pool.

    Files are dispatched in consecutive groups of ``worker_count``, one file
    per worker. A group is drained and sorted by path before anything is
    yielded and before the next group starts, so output order does not
    depend on which worker finishes first. Files left over after the last
    full group, and every file of a list shorter than the pool, are
    processed one at a time in input order.

    The lookup table for ``range_policy`` is built once here and shared
    read-only by every worker.
    """

    def __init__(self, worker_count=DEFAULT_WORKER_COUNT, region=None, color_space=None,
                 range_policy=None, decoder=decode):
        self.worker_count = int(worker_count)
        self.region = region
        self.color_space = color_space if color_space is not None else ColorSpace.BT2020
        self.range_policy = range_policy if range_policy is not None else RangePolicy.FULL
        self.decoder = decoder
        self.table = LuminanceTable.for_policy(self.range_policy)

    def _analyze(self, path):
        return analyze_file(path, self.region, self.color_space, self.table, self.decoder)

    def run(self, file_paths, cancel_event=None, file_callback=None):
        """
        Analyze every file and yield a BatchEntry per file.

        Args:
            file_paths: Ordered paths to analyze.
            cancel_event (threading.Event): Checked before each group and each
                sequentially processed file; once set, no further work starts.
            file_callback: Optional callable(done, total) invoked after each
                entry is yielded.

        Yields:
            BatchEntry: exactly one per file unless cancelled.
        """
        paths = [os.fspath(p) for p in file_paths]
        total = len(paths)
        done = 0

        def cancelled():
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Batch cancelled after %d of %d files", done, total)
                return True
            return False

        if self.worker_count <= 1 or total < self.worker_count:
            logger.debug("Processing %d files sequentially", total)
            for path in paths:
                if cancelled():
                    return
                yield self._analyze(path)
                done += 1
                if file_callback is not None:
                    file_callback(done, total)
            return

        full = total - total % self.worker_count
        logger.debug("Processing %d files in groups of %d, %d left over",
                     total, self.worker_count, total - full)

        with ThreadPoolExecutor(max_workers=self.worker_count) as executor:
            for start in range(0, full, self.worker_count):
                if cancelled():
                    return
                group = paths[start:start + self.worker_count]
                results = list(executor.map(self._analyze, group))
                results.sort(key=lambda entry: entry.path)
                logger.debug("Group %d-%d finished", start, start + len(group) - 1)
                for entry in results:
                    yield entry
                    done += 1
                    if file_callback is not None:
                        file_callback(done, total)

        for path in paths[full:]:
            if cancelled():
                return
            yield self._analyze(path)
            done += 1
            if file_callback is not None:
                file_callback(done, total)


def run_batch(file_paths, worker_count, region, color_space, range_policy, decoder=decode,
              cancel_event=None):
    """Convenience wrapper: build a BatchScheduler and iterate its results."""
    scheduler = BatchScheduler(worker_count, region, color_space, range_policy, decoder)
    return scheduler.run(file_paths, cancel_event=cancel_event)
