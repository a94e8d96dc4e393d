import os
import tempfile
import threading
import time
import unittest
from unittest import mock

import cv2
import numpy as np

from hdr_meta import luminance
from hdr_meta.analysis import FrameStatus, Region
from hdr_meta.batch import BatchScheduler, run_batch
from hdr_meta.frame_reader import DecodeError, PixelBuffer
from hdr_meta.luminance import ColorSpace, RangePolicy


def frame_for(path):
    """Distinct uniform frame per path so results can be told apart."""
    value = (sum(map(ord, path)) * 97) % 60000 + 1000
    pixels = np.full((6, 4, 3), value, dtype=np.uint16)
    return PixelBuffer(pixels)


class SlowDecoder:
    """Decoder whose delay shrinks with submission order, so later files finish first."""

    def __init__(self, paths, fail=()):
        self.delays = {p: 0.02 * (len(paths) - i) for i, p in enumerate(paths)}
        self.fail = set(fail)
        self.active = 0
        self.peak = 0
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, path):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.calls.append(path)
        try:
            time.sleep(self.delays.get(path, 0))
            if path in self.fail:
                raise DecodeError(f"Unable to decode image: {path}")
            return frame_for(path)
        finally:
            with self._lock:
                self.active -= 1


class TestBatchScheduler(unittest.TestCase):
    def run_paths(self, paths, workers, **kwargs):
        decoder = kwargs.pop("decoder", None) or SlowDecoder(paths)
        scheduler = BatchScheduler(workers, Region(0, 6), ColorSpace.BT2020, RangePolicy.FULL, decoder)
        return list(scheduler.run(paths, **kwargs)), decoder

    def test_parallel_group_matches_sequential(self):
        paths = ["/f/a.tif", "/f/b.tif", "/f/c.tif", "/f/d.tif"]

        parallel, _ = self.run_paths(paths, 4)
        sequential, _ = self.run_paths(paths, 1)

        self.assertEqual([e.path for e in parallel], paths)
        self.assertEqual([e.path for e in parallel], [e.path for e in sequential])
        for p, s in zip(parallel, sequential):
            self.assertEqual(p.metrics.values(), s.metrics.values())

    def test_group_is_sorted_by_path(self):
        paths = ["d.tif", "b.tif", "c.tif", "a.tif"]
        results, _ = self.run_paths(paths, 4)
        self.assertEqual([e.path for e in results], ["a.tif", "b.tif", "c.tif", "d.tif"])

    def test_sequential_keeps_input_order(self):
        paths = ["d.tif", "b.tif", "c.tif", "a.tif"]
        results, _ = self.run_paths(paths, 1)
        self.assertEqual([e.path for e in results], paths)

    def test_short_list_runs_sequentially(self):
        paths = ["c.tif", "a.tif", "b.tif"]
        results, decoder = self.run_paths(paths, 4)
        self.assertEqual([e.path for e in results], paths)
        self.assertEqual(decoder.peak, 1)

    def test_zero_workers_falls_back_to_sequential(self):
        paths = ["/f/a.tif", "/f/b.tif", "/f/c.tif", "/f/d.tif"]
        zero, _ = self.run_paths(paths, 0)
        parallel, _ = self.run_paths(paths, 4)
        self.assertEqual([(e.path, e.metrics.values()) for e in zero],
                         [(e.path, e.metrics.values()) for e in parallel])

    def test_groups_then_sequential_remainder(self):
        paths = ["h", "g", "f", "e", "d", "c", "b", "a", "z", "y"]
        results, _ = self.run_paths(paths, 4)
        self.assertEqual([e.path for e in results],
                         ["e", "f", "g", "h", "a", "b", "c", "d", "z", "y"])

    def test_pool_is_bounded(self):
        paths = [f"{i:02d}.tif" for i in range(12)]
        results, decoder = self.run_paths(paths, 3)
        self.assertEqual(len(results), 12)
        self.assertLessEqual(decoder.peak, 3)
        self.assertGreater(decoder.peak, 1)

    def test_failed_file_does_not_abort_group(self):
        paths = ["a.tif", "b.tif", "c.tif", "d.tif", "e.tif"]
        decoder = SlowDecoder(paths, fail={"b.tif", "e.tif"})
        results, _ = self.run_paths(paths, 2, decoder=decoder)

        statuses = {e.path: e.metrics.status for e in results}
        self.assertEqual(len(results), 5)
        self.assertEqual(statuses["b.tif"], FrameStatus.CANNOT_OPEN)
        self.assertEqual(statuses["e.tif"], FrameStatus.CANNOT_OPEN)
        self.assertEqual(statuses["a.tif"], FrameStatus.OK)
        self.assertEqual(statuses["d.tif"], FrameStatus.OK)

    def test_undecodable_depth_does_not_abort_batch(self):
        with tempfile.TemporaryDirectory() as tmp:
            good = np.full((8, 4, 3), 20000, dtype=np.uint16)
            paths = [os.path.join(tmp, name) for name in ("a.tif", "b.tif", "c.tif")]
            self.assertTrue(cv2.imwrite(paths[0], good))
            self.assertTrue(cv2.imwrite(paths[1], np.full((8, 4, 3), 3.0, dtype=np.float64)))
            self.assertTrue(cv2.imwrite(paths[2], good))

            for workers in (1, 3):
                scheduler = BatchScheduler(workers, Region(0, 8), ColorSpace.BT2020, RangePolicy.FULL)
                results = list(scheduler.run(paths))

                self.assertEqual([e.path for e in results], paths)
                self.assertEqual([e.metrics.status for e in results],
                                 [FrameStatus.OK, FrameStatus.CANNOT_OPEN, FrameStatus.OK])
                self.assertEqual(results[1].metrics.values(), (-1.0, -1.0))

    def test_invalid_region_reported_per_file(self):
        paths = ["a.tif", "b.tif"]
        scheduler = BatchScheduler(2, Region(100, 2000), ColorSpace.BT2020, RangePolicy.FULL,
                                   SlowDecoder(paths))
        results = list(scheduler.run(paths))
        self.assertEqual([e.metrics.values() for e in results], [(-2.0, -2.0), (-2.0, -2.0)])

    def test_cancel_before_start(self):
        cancel = threading.Event()
        cancel.set()
        results, decoder = self.run_paths(["a", "b", "c", "d"], 2, cancel_event=cancel)
        self.assertEqual(results, [])
        self.assertEqual(decoder.calls, [])

    def test_cancel_between_groups(self):
        cancel = threading.Event()
        paths = ["a", "b", "c", "d", "e", "f"]

        def stop_after_first_group(done, total):
            if done == 2:
                cancel.set()

        results, decoder = self.run_paths(paths, 2, cancel_event=cancel,
                                          file_callback=stop_after_first_group)
        self.assertEqual([e.path for e in results], ["a", "b"])
        self.assertEqual(sorted(decoder.calls), ["a", "b"])

    def test_table_built_once_per_batch(self):
        paths = [f"{i}.tif" for i in range(8)]
        with mock.patch.object(luminance, "build_table", wraps=luminance.build_table) as build:
            scheduler = BatchScheduler(4, Region(0, 6), ColorSpace.BT2020, RangePolicy.LEGAL,
                                       SlowDecoder(paths))
            list(scheduler.run(paths))
        build.assert_called_once_with(4096, 56064)

    def test_run_batch_wrapper(self):
        paths = ["b.tif", "a.tif"]
        results = list(run_batch(paths, 2, Region(0, 6), ColorSpace.P3D65, RangePolicy.FULL,
                                 decoder=frame_for))
        self.assertEqual([e.path for e in results], ["a.tif", "b.tif"])
        self.assertTrue(all(e.metrics.is_ok for e in results))


if __name__ == '__main__':
    unittest.main()
