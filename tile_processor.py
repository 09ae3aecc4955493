"""
Row-tiled parallel execution for per-pixel image stages.
Splits an image into horizontal bands and maps a band function over a worker pool.
"""

import logging
from functools import partial
from multiprocessing import cpu_count
from multiprocessing.pool import ThreadPool
from typing import Callable, List, Optional, Tuple

import numpy as np

__all__ = [
    'TileProcessor',
    'Band',
    'halo_slice',
]

logger = logging.getLogger(__name__)

Band = Tuple[int, int]


class TileProcessor:
    """
    Runs a stage function over horizontal bands of rows and stitches the results.

    Band functions receive a ``(y0, y1)`` tuple as their first argument and must
    return an array whose first axis has ``y1 - y0`` rows. Every stage fully
    materializes its output before the caller starts the next one, so band
    functions only ever read completed, shared arrays.
    """

    def __init__(self,
                 num_workers: Optional[int] = None,
                 min_band_rows: int = 64):
        """
        Initialize tile processor.

        Args:
            num_workers: Number of worker threads. Defaults to min(4, CPU count - 1).
            min_band_rows: Smallest band height worth handing to a separate worker.
        """
        if num_workers is None:
            num_workers = min(4, max(1, cpu_count() - 1))
        if isinstance(num_workers, bool) or not isinstance(num_workers, int) or num_workers < 1:
            raise ValueError(f"num_workers must be a positive integer, got {num_workers!r}")
        if min_band_rows < 1:
            raise ValueError(f"min_band_rows must be at least 1, got {min_band_rows}")
        self.num_workers = num_workers
        self.min_band_rows = min_band_rows

    def row_bands(self, height: int) -> List[Band]:
        """
        Split ``height`` rows into contiguous, non-overlapping bands.

        Returns:
            List of (start_row, end_row) tuples covering [0, height)
        """
        count = max(1, min(self.num_workers, height // self.min_band_rows))
        edges = [i * height // count for i in range(count + 1)]
        return [(edges[i], edges[i + 1]) for i in range(count)]

    def map_rows(self, func: Callable[..., np.ndarray], height: int, **kwargs) -> np.ndarray:
        """
        Apply ``func`` to every band and concatenate the results along axis 0.

        Args:
            func: Band function taking (y0, y1) as its first positional argument
            height: Total number of rows
            **kwargs: Extra keyword arguments bound to ``func``

        Returns:
            Stitched array with ``height`` rows
        """
        bands = self.row_bands(height)
        band_func = partial(func, **kwargs) if kwargs else func

        if len(bands) == 1:
            return band_func(bands[0])

        logger.debug("Processing %d rows in %d bands on %d workers",
                     height, len(bands), self.num_workers)
        with ThreadPool(processes=min(self.num_workers, len(bands))) as pool:
            results = pool.map(band_func, bands)
        return np.concatenate(results, axis=0)


def halo_slice(band: Band, halo: int, height: int) -> Tuple[slice, slice]:
    """
    Rows to read for a neighborhood stage and where the band sits inside them.

    Args:
        band: (y0, y1) rows the caller wants to produce
        halo: Neighborhood half-height that must be readable above and below
        height: Total number of rows in the source array

    Returns:
        (source_rows, crop_rows): slice into the source array including the halo,
        and slice into that window selecting only the band's own rows
    """
    y0, y1 = band
    top = max(0, y0 - halo)
    bottom = min(height, y1 + halo)
    return slice(top, bottom), slice(y0 - top, y1 - top)
