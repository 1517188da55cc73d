"""Raw file decoding with rawpy (LibRaw) and exifread.

Only the mosaic and the metadata the merge needs are extracted: the
visible sensor area, per-cell black levels, the white level, the camera
white balance and the exposure bias. No demosaicing happens here.
"""

import logging
from fractions import Fraction
from pathlib import Path
from typing import Union

import exifread
import numpy as np
import rawpy
import xarray as xr

from burstfuse.raw.frame import make_frame
from burstfuse.raw.mosaic import SUPPORTED_PATTERN_WIDTHS

__all__ = ['decode_raw_file', 'read_exposure_bias']

logger = logging.getLogger(__name__)

_BIAS_TAGS = ("EXIF ExposureBiasValue", "EXIF ExposureCompensation")


def _parse_ratio(value: str) -> float:
    """Parse EXIF rational text such as ``-2/3`` or ``0``."""
    return float(Fraction(value.strip()))


def read_exposure_bias(path: Union[str, Path]) -> int:
    """Exposure bias of a file in hundredths of EV, 0 when absent."""
    with open(path, "rb") as f:
        tags = exifread.process_file(f, details=False)
    for name in _BIAS_TAGS:
        if name in tags:
            try:
                return int(round(_parse_ratio(str(tags[name])) * 100))
            except (ValueError, ZeroDivisionError):
                logger.warning("Unreadable %s in %s: %s", name, path, tags[name])
    return 0


def decode_raw_file(path: Union[str, Path]) -> xr.Dataset:
    """Decode one raw file into a frame dataset.

    Parameters
    ----------
    path : str or Path
        Raw or DNG file readable by LibRaw.

    Returns
    -------
    xr.Dataset
        Frame as built by ``make_frame``.

    Raises
    ------
    ValueError
        If the file has no supported colour filter pattern.
    rawpy.LibRawError
        If LibRaw cannot read the file.
    """
    path = Path(path)
    with rawpy.imread(str(path)) as raw:
        mosaic = raw.raw_image_visible.copy()
        pattern = raw.raw_pattern
        if pattern is None or pattern.shape[0] not in SUPPORTED_PATTERN_WIDTHS:
            raise ValueError(f"{path.name}: unsupported colour filter pattern")
        width = pattern.shape[0]

        per_channel = raw.black_level_per_channel
        black_levels = [per_channel[int(c)] for c in pattern.reshape(-1)]
        white_level = int(raw.white_level)

        # camera_whitebalance is (R, G, B, G2); normalize to green
        wb = np.asarray(raw.camera_whitebalance, dtype=np.float64)
        if wb[1] > 0:
            color_factors = (wb[0] / wb[1], 1.0, wb[2] / wb[1])
        else:
            color_factors = (1.0, 1.0, 1.0)

    exposure_bias = read_exposure_bias(path)
    logger.debug("Decoded %s: shape=%s, pattern=%d, white=%d, bias=%d",
                 path.name, mosaic.shape, width, white_level, exposure_bias)

    return make_frame(
        mosaic,
        black_levels=black_levels,
        white_level=white_level,
        exposure_bias=exposure_bias,
        color_factors=color_factors,
        mosaic_pattern_width=width,
        source=str(path),
    )
