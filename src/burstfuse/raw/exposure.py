"""Exposure equalization and tone correction.

Two jobs live here:

1. **Equalization (before merge)**: comparison frames shot at a different
   exposure bias are rescaled to the exposure of the reference frame.
2. **Correction (after merge)**: the merged buffer is brightened, either
   with a linear gain or with a tone curve that lifts shadows while
   compressing highlights.

Mode summary
============
- ``Off``: untouched
- ``LinearFullRange``: linear gain that maps the brightest (blurred) value
  to 90 % of the available range
- ``LinearClip2EV``: as above, but at least +2 EV (highlights may clip)
- ``Curve0EV`` / ``Curve1EV``: tone curve towards a target brightness of
  0 EV / +1 EV relative to the reference exposure

The correction works in place on the float buffer and clamps the result
to the sensor range (16 bits by default).
"""

import logging
from typing import Optional, Sequence

import numpy as np
import xarray as xr

from burstfuse.raw.filters import mosaic_blur
from burstfuse.raw.mosaic import MosaicPattern
from burstfuse.raw.reduction import texture_max
from burstfuse.schemas.base import ExposureControl

__all__ = [
    'equalize_exposure',
    'exposure_gain',
    'representative_black_levels',
    'linear_gain',
    'tone_curve_compressive',
    'tone_curve_reinhard',
    'correct_exposure',
    'ExposureCorrector',
]

logger = logging.getLogger(__name__)

SENSOR_MAX = 65535.0
MAX_LINEAR_GAIN = 16.0
HEADROOM = 0.9
CLIP_2EV_FLOOR = 2.0 ** 2.0
MAX_STOPS = 4.0
# The brightest value is found on a 2x2-period blur for every mosaic layout
MAX_BLUR_PATTERN_WIDTH = 2

_CURVE_TARGETS = {
    ExposureControl.CURVE_0EV: 0,
    ExposureControl.CURVE_1EV: 100,
}


def exposure_gain(bias_ref: int, bias_k: int) -> float:
    """Gain that brings a frame shot at ``bias_k`` to ``bias_ref`` (hundredths of EV)."""
    return float(2.0 ** ((bias_ref - bias_k) / 100.0))


def equalize_exposure(values: np.ndarray, black, black_ref, bias_ref: int, bias_k: int) -> np.ndarray:
    """Rescale samples of one frame to the reference exposure.

    ``(v - black) * 2**((bias_ref - bias_k) / 100) + black_ref``

    Parameters
    ----------
    values : np.ndarray
        Samples of the comparison frame.
    black, black_ref : float or np.ndarray
        Black levels of the comparison and reference frames, broadcastable
        to ``values``.
    bias_ref, bias_k : int
        Exposure biases in hundredths of EV.
    """
    gain = exposure_gain(bias_ref, bias_k)
    return (np.asarray(values, dtype=np.float64) - black) * gain + black_ref


def representative_black_levels(black_levels, exposure_bias: Sequence[int],
                                uniform_exposure: bool) -> np.ndarray:
    """Per-cell black levels describing the merged buffer.

    Uniform bursts average the black levels of all frames. Bracketed bursts
    use the frame with the largest exposure bias (the first one on ties),
    since its samples dominate the shadows of the merge.
    """
    levels = np.asarray(black_levels, dtype=np.float64)
    if levels.ndim == 1:
        levels = levels[None, :]
    if uniform_exposure:
        return levels.mean(axis=0)
    return levels[int(np.argmax(np.asarray(exposure_bias)))]


def linear_gain(max_value: float, white_level: float, black_level_min: float) -> float:
    """Gain mapping ``max_value`` to 90 % of the range, limited to [1, 16]."""
    if max_value <= black_level_min:
        return MAX_LINEAR_GAIN
    gain = HEADROOM * (white_level - black_level_min) / (max_value - black_level_min)
    return float(np.clip(gain, 1.0, MAX_LINEAR_GAIN))


def tone_curve_compressive(x, max_gain: float):
    """Gentle highlight roll-off: ``x (1 + x / G**2) / (1 + x)``.

    Identity for ``G = 1``; maps ``G`` to 1 and is non-decreasing for
    ``x >= 0``.
    """
    x = np.asarray(x, dtype=np.float64)
    return x * (1.0 + x / (max_gain * max_gain)) / (1.0 + x)


def tone_curve_reinhard(x, max_gain: float):
    """Reinhard curve normalized so that ``G`` maps to 1: ``x (1 + G) / (G (1 + x))``."""
    x = np.asarray(x, dtype=np.float64)
    return x * (1.0 + max_gain) / (max_gain * (1.0 + x))


def _apply_tone_curve(buffer, pattern, bl, bl_map, black_level_min, white_level,
                      color_factors, gain, stops):
    span = white_level - black_level_min
    bl_mean = float(np.mean(bl))
    cf_mean = pattern.color_factor_mean(color_factors)

    luminance = mosaic_blur(buffer, 1, pattern.luminance_kernel_size)
    luminance = np.clip((luminance - bl_mean) / (span * cf_mean), 1e-12, 1.0)
    pixel = np.clip((buffer - bl_map) / span, 0.0, 1.0)

    gain0 = 2.0 ** (stops - 0.05 * max(0.0, stops - 1.5))
    gain1 = 2.0 ** (stops / 1.4)
    g0 = gain * gain0
    g1 = gain * gain1
    tm0 = tone_curve_compressive(gain * gain0 * luminance, g0)
    tm1 = tone_curve_reinhard(gain * gain1 * luminance, g1)

    weight = float(np.clip(stops / MAX_STOPS, 0.0, 1.0))
    lum_after = (1.0 - weight) * tm0 + weight * tm1

    buffer[...] = pixel * lum_after / luminance * span + bl_map


def correct_exposure(
    buffer: np.ndarray,
    white_level: int,
    black_levels,
    exposure_control,
    exposure_bias: Sequence[int],
    uniform_exposure: bool,
    color_factors,
    ref_idx: int,
    mosaic_pattern_width: int,
    statistics: Optional[dict] = None,
    sensor_max: float = SENSOR_MAX,
) -> np.ndarray:
    """Brighten a merged buffer in place.

    Parameters
    ----------
    buffer : np.ndarray
        Merged float buffer; modified in place.
    white_level : int
        Reference white level, ``-1`` when unknown.
    black_levels : array-like, shape (n_frames, w * w)
        Per-frame, per-cell black levels, ``-1`` when unknown.
    exposure_control : ExposureControl or str
        Correction mode.
    exposure_bias : sequence of int
        Per-frame exposure bias in hundredths of EV.
    uniform_exposure : bool
        All frames share one exposure.
    color_factors : sequence of float
        (R, G, B) colour factors of the reference frame.
    ref_idx : int
        Reference frame index.
    mosaic_pattern_width : int
        Mosaic period.
    statistics : dict, optional
        Filled with the values that drove the correction.
    sensor_max : float
        Upper clamp of the corrected buffer.

    Returns
    -------
    np.ndarray
        The same buffer, corrected and clamped to ``[0, sensor_max]``.

    Notes
    -----
    The correction is skipped (buffer returned untouched) for ``Off`` and
    when the white level or the black levels are unknown.
    """
    control = ExposureControl(exposure_control)
    levels = np.asarray(black_levels, dtype=np.float64)
    if levels.ndim == 1:
        levels = levels[None, :]

    if control is ExposureControl.OFF:
        logger.debug("Exposure correction off")
        return buffer
    if white_level == -1 or levels[0][0] == -1:
        logger.info("Exposure correction skipped: white or black level unknown")
        return buffer

    pattern = MosaicPattern(mosaic_pattern_width)
    bl = representative_black_levels(levels, exposure_bias, uniform_exposure)
    black_level_min = float(bl.min())
    bl_map = pattern.black_level_map(bl, buffer.shape)

    blurred = mosaic_blur(buffer, MAX_BLUR_PATTERN_WIDTH, 2)
    max_value = texture_max(blurred)
    gain = linear_gain(max_value, white_level, black_level_min)

    if statistics is not None:
        statistics.update({
            "max_blurred_value": max_value,
            "black_levels": bl.tolist(),
            "linear_gain": gain,
        })

    if control in _CURVE_TARGETS:
        target = _CURVE_TARGETS[control]
        bias_ref = exposure_bias[ref_idx]
        stops = float(np.clip(0.01 * (target - bias_ref) - np.log2(gain), 0.0, MAX_STOPS))
        logger.info("Tone curve %s: linear gain %.3f, %.2f extra stops", control.value, gain, stops)
        _apply_tone_curve(buffer, pattern, bl, bl_map, black_level_min, white_level,
                          color_factors, gain, stops)
        if statistics is not None:
            statistics["curve_stops"] = stops
    else:
        floor = CLIP_2EV_FLOOR if control is ExposureControl.LINEAR_CLIP_2EV else -1.0
        applied = gain if floor < 0 else max(gain, floor)
        logger.info("Linear exposure %s: gain %.3f", control.value, applied)
        buffer[...] = np.maximum(0.0, buffer - bl_map) * applied + bl_map
        if statistics is not None:
            statistics["applied_gain"] = applied

    np.clip(buffer, 0.0, sensor_max, out=buffer)
    return buffer


class ExposureCorrector:
    """Config-driven exposure correction of a merged buffer."""

    def __init__(self, config):
        self.control = config.exposure.control
        self.sensor_max_value = config.processor.sensor_max_value
        logger.info("ExposureCorrector initialized: control=%s", self.control.value)

    def correct(self, buffer: np.ndarray, frames: Sequence[xr.Dataset], reference_index: int,
                uniform_exposure: bool) -> dict:
        """Correct ``buffer`` in place from the metadata of ``frames``.

        Returns
        -------
        dict
            Statistics of the correction (empty when skipped).
        """
        reference = frames[reference_index]
        statistics = {}
        correct_exposure(
            buffer,
            white_level=reference.attrs["white_level"],
            black_levels=np.stack([f["black_levels"].values for f in frames]),
            exposure_control=self.control,
            exposure_bias=[f.attrs["exposure_bias"] for f in frames],
            uniform_exposure=uniform_exposure,
            color_factors=reference["color_factors"].values,
            ref_idx=reference_index,
            mosaic_pattern_width=reference.attrs["mosaic_pattern_width"],
            statistics=statistics,
            sensor_max=self.sensor_max_value,
        )
        return statistics
