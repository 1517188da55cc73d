"""Concurrent loading of a burst of raw files."""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import xarray as xr

from burstfuse.contracts.failure import LoadFailure
from burstfuse.raw.decoder import decode_raw_file

__all__ = ['BurstLoader']

logger = logging.getLogger(__name__)

Decoder = Callable[[Union[str, Path]], xr.Dataset]


class BurstLoader:
    """Decode every file of a burst on a bounded thread pool.

    Each file is decoded by its own task, which stores the frame in the
    slot of a pre-allocated list matching the file's position. After all
    tasks finished, any empty slot fails the whole burst.

    Examples
    --------
    >>> loader = BurstLoader(config)
    >>> frames = loader.load(["a.dng", "b.dng", "c.dng"])
    >>> len(frames)
    3
    """

    def __init__(self, config):
        self.max_workers = config.reader.max_workers

    def load(self, paths: Sequence[Union[str, Path]], decode: Optional[Decoder] = None) -> List[xr.Dataset]:
        """Decode ``paths`` into frames, in input order.

        Parameters
        ----------
        paths : sequence of path-like
            Files of the burst.
        decode : callable, optional
            ``path -> frame``; defaults to ``decode_raw_file``.

        Raises
        ------
        LoadFailure
            If any file fails to decode, or the frames use different
            mosaic patterns.
        """
        decode = decode or decode_raw_file
        slots: List[Optional[xr.Dataset]] = [None] * len(paths)
        errors: List[str] = [""] * len(paths)

        def task(index: int, path) -> None:
            try:
                slots[index] = decode(path)
            except Exception as e:
                # Reported through the empty slot below
                errors[index] = str(e)
                logger.error("Failed to decode %s: %s", path, e)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            wait([executor.submit(task, i, p) for i, p in enumerate(paths)])

        failed = [f"{p} ({err})" if err else str(p)
                  for p, frame, err in zip(paths, slots, errors) if frame is None]
        if failed:
            raise LoadFailure(f"image failed to load: {', '.join(failed)}")

        widths = {frame.attrs["mosaic_pattern_width"] for frame in slots}
        if len(widths) > 1:
            raise LoadFailure(f"frames use different mosaic pattern widths: {sorted(widths)}")

        logger.info("Loaded %d frames (pattern width %s)", len(slots), next(iter(widths), None))
        return slots
