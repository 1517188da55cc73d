"""Multi-resolution luminance pyramids for tile alignment.

Level 0 is the luminance plane of a frame: the mean of every mosaic period
block, so one level-0 pixel covers one ``w × w`` cell block and colours
never bias the match. Every further level is a binomial blur of the level
below, decimated by 2.

Comparison frames are rescaled to the exposure of the reference frame
before their luminance plane is taken, so a bracketed burst is matched on
scene content rather than on brightness.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np
import xarray as xr

from burstfuse.raw.exposure import equalize_exposure
from burstfuse.raw.filters import mosaic_blur
from burstfuse.raw.frame import frame_pattern

if TYPE_CHECKING:
    from burstfuse.schemas import InternalConfig

__all__ = ['PyramidBuilder', 'luminance_plane']

logger = logging.getLogger(__name__)


def luminance_plane(raw: np.ndarray, pattern_width: int) -> np.ndarray:
    """Average every ``pattern_width × pattern_width`` block of a mosaic.

    Trailing rows and columns that do not fill a whole block are dropped.
    Non-finite samples are replaced by 0.
    """
    w = pattern_width
    data = np.nan_to_num(np.asarray(raw, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    h, wd = data.shape[0] // w, data.shape[1] // w
    blocks = data[: h * w, : wd * w].reshape(h, w, wd, w)
    return blocks.mean(axis=(1, 3))


def _equalized_raw(frame: xr.Dataset, reference: xr.Dataset) -> np.ndarray:
    """Samples of ``frame`` rescaled to the exposure of ``reference``.

    Unknown black levels count as 0.
    """
    raw = frame["raw"].values
    shape = raw.shape
    black = np.maximum(frame_pattern(frame).black_level_map(frame["black_levels"].values, shape), 0.0)
    black_ref = np.maximum(
        frame_pattern(reference).black_level_map(reference["black_levels"].values, shape), 0.0
    )
    return equalize_exposure(raw, black, black_ref,
                             reference.attrs["exposure_bias"], frame.attrs["exposure_bias"])


class PyramidBuilder:
    """Build coarse-to-fine pyramids for every frame of a burst.

    The number of levels depends on the frame size only: levels are added
    while the next one still holds at least ``min_tiles_coarsest`` whole
    tiles along both axes, up to ``max_levels``. Every frame of a burst has
    the same shape, so every pyramid has the same depth.

    Examples
    --------
    >>> builder = PyramidBuilder(config)
    >>> pyramids = builder.build_all(frames, reference_index=0)
    >>> [level.shape for level in pyramids[0]]
    [(256, 384), (128, 192), (64, 96)]
    """

    def __init__(self, config: "InternalConfig"):
        self.min_tiles = config.pyramid.min_tiles_coarsest
        self.max_levels = config.pyramid.max_levels
        self.kernel_size = config.pyramid.blur_kernel_size
        self.tile_size = config.aligner.tile_size
        self.max_workers = config.aligner.max_workers

        logger.info("PyramidBuilder initialized: max_levels=%s, min_tiles=%s, tile_size=%s",
                    self.max_levels, self.min_tiles, self.tile_size)

    def level_count(self, shape: tuple) -> int:
        """Number of pyramid levels for a level-0 plane of ``shape``."""
        h, w = shape
        levels = 1
        while levels < self.max_levels:
            h, w = -(-h // 2), -(-w // 2)
            if h // self.tile_size < self.min_tiles or w // self.tile_size < self.min_tiles:
                break
            levels += 1
        return levels

    def build_levels(self, raw: np.ndarray, pattern_width: int) -> List[np.ndarray]:
        """Pyramid of a single mosaic buffer, finest level first."""
        base = luminance_plane(raw, pattern_width)
        pyramid = [base]
        for _ in range(1, self.level_count(base.shape)):
            blurred = mosaic_blur(pyramid[-1], 1, self.kernel_size)
            pyramid.append(blurred[::2, ::2].copy())
        return pyramid

    def build(self, frame: xr.Dataset, reference: Optional[xr.Dataset] = None) -> List[np.ndarray]:
        """Pyramid of one frame, at the exposure of ``reference`` when given."""
        raw = frame["raw"].values
        if reference is not None:
            raw = _equalized_raw(frame, reference)
        pyramid = self.build_levels(raw, frame.attrs["mosaic_pattern_width"])
        logger.debug("Pyramid for %s: %s", frame.attrs.get("source", "<memory>"),
                     [level.shape for level in pyramid])
        return pyramid

    def build_all(self, frames: Sequence[xr.Dataset],
                  reference_index: Optional[int] = None) -> List[List[np.ndarray]]:
        """Pyramids of all frames, built concurrently, in frame order.

        With ``reference_index`` every other frame is first brought to the
        exposure of the reference frame.
        """
        reference = frames[reference_index] if reference_index is not None else None

        def task(index):
            if index == reference_index:
                return self.build(frames[index])
            return self.build(frames[index], reference)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            pyramids = list(executor.map(task, range(len(frames))))
        logger.info("Built %d pyramids with %d levels", len(pyramids),
                    len(pyramids[0]) if pyramids else 0)
        return pyramids
