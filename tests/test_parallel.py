"""Tests for row-band splitting and the thread-pool band executor."""
import threading

import pytest

from rasterkit.core.config import GlobalProcessingConfig, ParallelConfig
from rasterkit.core.parallel import map_bands, split_range


class TestSplitRange:

    def test_even_split(self):
        assert split_range(10, 3) == [(0, 4), (4, 7), (7, 10)]

    def test_empty_range(self):
        assert split_range(0, 4) == []

    def test_min_size_limits_parts(self):
        assert split_range(100, 8, min_size=32) == [(0, 34), (34, 67), (67, 100)]

    def test_short_range_is_one_band(self):
        assert split_range(5, 4, min_size=32) == [(0, 5)]

    @pytest.mark.parametrize("length,parts", [(1, 1), (7, 7), (7, 20), (1000, 6)])
    def test_bands_cover_range_in_order(self, length, parts):
        bands = split_range(length, parts)
        assert bands[0][0] == 0
        assert bands[-1][1] == length
        for (_, stop), (start, _) in zip(bands, bands[1:]):
            assert stop == start
        assert len(bands) <= parts


class TestMapBands:

    def test_every_index_visited_once(self, processing_config):
        visited = []
        lock = threading.Lock()

        def record(start, stop):
            with lock:
                visited.extend(range(start, stop))

        map_bands(record, 37)
        assert sorted(visited) == list(range(37))

    def test_worker_exception_propagates(self, processing_config):
        def fail(start, stop):
            raise RuntimeError("band failed")

        with pytest.raises(RuntimeError, match="band failed"):
            map_bands(fail, 16)

    def test_threaded_mode_uses_pool(self):
        config = GlobalProcessingConfig(parallel=ParallelConfig(num_workers=4, min_rows_per_task=1, enabled=True))
        names = set()
        lock = threading.Lock()

        def record(start, stop):
            with lock:
                names.add(threading.current_thread().name)

        map_bands(record, 8, config)
        assert all(name.startswith("rasterkit") for name in names)

    def test_disabled_runs_inline(self):
        config = GlobalProcessingConfig(parallel=ParallelConfig(num_workers=4, min_rows_per_task=1, enabled=False))
        names = []
        map_bands(lambda start, stop: names.append(threading.current_thread().name), 8, config)
        assert names == [threading.current_thread().name]

    def test_zero_length_does_nothing(self):
        calls = []
        map_bands(lambda start, stop: calls.append((start, stop)), 0)
        assert calls == []
