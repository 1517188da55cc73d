"""Frame container: one decoded raw exposure as an ``xarray.Dataset``.

Layout
------
- ``raw`` (y, x): sensor samples, read-only
- ``black_levels`` (cell,): per mosaic cell, ``-1`` when unknown
- ``color_factors`` (channel,): white balance factors for R, G, B
- attrs: ``exposure_bias`` (hundredths of EV), ``white_level`` (``-1`` when
  unknown), ``mosaic_pattern_width``, ``source``
"""

from typing import Optional, Sequence, Union

import numpy as np
import xarray as xr

from burstfuse.raw.mosaic import MosaicPattern

__all__ = ['make_frame', 'frame_pattern', 'UNKNOWN_LEVEL']

UNKNOWN_LEVEL = -1


def make_frame(
    raw: np.ndarray,
    black_levels: Union[int, float, Sequence, np.ndarray] = UNKNOWN_LEVEL,
    white_level: int = UNKNOWN_LEVEL,
    exposure_bias: int = 0,
    color_factors: Optional[Sequence[float]] = None,
    mosaic_pattern_width: int = 2,
    source: str = "",
) -> xr.Dataset:
    """Build an immutable frame dataset.

    Parameters
    ----------
    raw : np.ndarray
        2D mosaic buffer.
    black_levels : scalar or sequence
        A single value for every cell, or ``mosaic_pattern_width**2`` values
        (flat or ``(w, w)``). ``-1`` means unknown.
    white_level : int
        Saturation value, ``-1`` when unknown.
    exposure_bias : int
        Exposure compensation in hundredths of EV.
    color_factors : sequence of float, optional
        (R, G, B) white balance factors, ``(1, 1, 1)`` when omitted.
    mosaic_pattern_width : int
        Mosaic period (2 Bayer, 6 X-Trans, 1 monochrome).
    source : str
        Origin of the frame (file path), kept for logging.

    Returns
    -------
    xr.Dataset
        Frame dataset; its ``raw`` array is marked read-only.

    Raises
    ------
    ValueError
        If the buffer is not 2D or the black level count does not match
        the mosaic pattern.
    """
    pattern = MosaicPattern(mosaic_pattern_width)

    data = np.array(raw, copy=True)
    if data.ndim != 2:
        raise ValueError(f"raw buffer must be 2D, got shape {data.shape}")
    data.flags.writeable = False

    levels = np.asarray(black_levels, dtype=np.float64).reshape(-1)
    if levels.size == 1:
        levels = np.full(pattern.n_cells, levels[0])
    if levels.size != pattern.n_cells:
        raise ValueError(
            f"expected {pattern.n_cells} black levels for pattern width "
            f"{pattern.width}, got {levels.size}"
        )

    if color_factors is None:
        color_factors = (1.0, 1.0, 1.0)
    factors = np.asarray(color_factors, dtype=np.float64).reshape(-1)
    if factors.size != 3:
        raise ValueError(f"expected 3 colour factors (R, G, B), got {factors.size}")

    return xr.Dataset(
        data_vars={
            "raw": (("y", "x"), data),
            "black_levels": (("cell",), levels),
            "color_factors": (("channel",), factors),
        },
        coords={"channel": ["R", "G", "B"]},
        attrs={
            "exposure_bias": int(exposure_bias),
            "white_level": int(white_level),
            "mosaic_pattern_width": pattern.width,
            "source": str(source),
        },
    )


def frame_pattern(frame: xr.Dataset) -> MosaicPattern:
    """Mosaic pattern of a frame."""
    return MosaicPattern(frame.attrs["mosaic_pattern_width"])
