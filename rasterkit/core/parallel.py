"""
Row-band parallel execution.

Pixel-parallel stages split their output into contiguous, disjoint bands
of rows (or columns) and hand each band to a worker. Workers write only
their own band of a preallocated output, so no locking is needed. NumPy
releases the GIL inside its vectorized kernels, which is what makes a
thread pool worthwhile here.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from rasterkit.core.config import GlobalProcessingConfig, get_current_global_config

logger = logging.getLogger(__name__)

Band = Tuple[int, int]


def split_range(length: int, parts: int, min_size: int = 1) -> List[Band]:
    """
    Split ``[0, length)`` into at most ``parts`` contiguous bands.

    Bands are no smaller than ``min_size`` (except when ``length`` itself is
    smaller) and differ in size by at most one ``min_size`` step.

    Returns:
        List of (start, stop) pairs covering the range in order
    """
    if length <= 0:
        return []
    parts = max(1, min(parts, length // max(min_size, 1)))
    base, extra = divmod(length, parts)
    bands = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        bands.append((start, stop))
        start = stop
    return bands


def map_bands(func: Callable[[int, int], None], length: int,
              config: Optional[GlobalProcessingConfig] = None) -> None:
    """
    Run ``func(start, stop)`` over disjoint bands covering ``[0, length)``.

    Uses a thread pool when parallelism is enabled and the range splits into
    more than one band; otherwise runs inline on the calling thread.
    Exceptions raised by a worker propagate to the caller.
    """
    config = config or get_current_global_config()
    parallel = config.parallel

    workers = parallel.num_workers if parallel.enabled else 1
    bands = split_range(length, workers, parallel.min_rows_per_task)

    if len(bands) <= 1:
        for start, stop in bands:
            func(start, stop)
        return

    logger.debug(f"Dispatching {len(bands)} bands over {length} rows to {workers} workers")
    with ThreadPoolExecutor(max_workers=min(workers, len(bands)),
                            thread_name_prefix="rasterkit") as executor:
        futures = [executor.submit(func, start, stop) for start, stop in bands]
        for future in futures:
            # result() re-raises any worker exception
            future.result()
