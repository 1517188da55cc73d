"""Robust, noise-weighted merge of an aligned burst.

Every comparison frame is sampled through its tile offsets, rescaled to
the reference exposure and accumulated with a weight built from two
terms:

- **Noise weight** ``1 / var``: a shot + read noise model evaluated on the
  local reference signal. Frames exposed brighter than the reference have
  lower relative noise and weigh more.
- **Outlier factor** ``clip(2 - z / t, 0, 1)``: ``z`` is the blurred
  difference between the candidate and the merge so far, in units of the
  expected noise. ``t`` comes from the robustness setting, so moving
  objects that do not match the reference are faded out.

Samples that fall outside a frame or that are clipped at the white level
get no weight at all.
"""

import logging
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np
import xarray as xr

from burstfuse.raw.exposure import equalize_exposure, exposure_gain
from burstfuse.raw.filters import mosaic_blur
from burstfuse.raw.frame import frame_pattern
from burstfuse.schemas.base import Robustness

if TYPE_CHECKING:
    from burstfuse.schemas import InternalConfig

__all__ = ['RobustMerger', 'sample_aligned']

logger = logging.getLogger(__name__)

UNKNOWN_WHITE_CLAMP = 65535.0


def sample_aligned(raw: np.ndarray, offset_y: np.ndarray, offset_x: np.ndarray, tile_size: int):
    """Sample ``raw`` at ``p + offset(tile(p))`` for every pixel ``p``.

    Parameters
    ----------
    raw : np.ndarray
        Comparison frame.
    offset_y, offset_x : np.ndarray
        Full-resolution tile offsets, shape (tile_y, tile_x).
    tile_size : int
        Full-resolution tile size.

    Returns
    -------
    values : np.ndarray
        Sampled values (float64); undefined where ``valid`` is False.
    valid : np.ndarray of bool
        The source pixel lies inside the frame.
    """
    h, w = raw.shape
    ty = np.minimum(np.arange(h) // tile_size, offset_y.shape[0] - 1)
    tx = np.minimum(np.arange(w) // tile_size, offset_y.shape[1] - 1)
    src_y = np.arange(h)[:, None] + offset_y[np.ix_(ty, tx)]
    src_x = np.arange(w)[None, :] + offset_x[np.ix_(ty, tx)]
    valid = (src_y >= 0) & (src_y < h) & (src_x >= 0) & (src_x < w)
    values = np.asarray(raw, dtype=np.float64)[np.clip(src_y, 0, h - 1), np.clip(src_x, 0, w - 1)]
    return values, valid


class RobustMerger:
    """Accumulate aligned frames into one low-noise buffer.

    Configuration
    =============
    Reads ``config.merger``:

    - ``robustness`` : Low / Medium / High, selects the outlier threshold
    - ``thresholds`` : threshold per robustness level (noise std units)
    - ``shot_noise`` / ``read_noise`` : noise model ``g s x + g**2 r``
    - ``reference_weight`` : numerator of the reference frame weight
    - ``blur_kernel_size`` : binomial radius for the signal and outlier terms
    - ``keep_weights`` : return the per-frame weight maps

    Examples
    --------
    >>> merger = RobustMerger(config)
    >>> result = merger.merge(frames, field, reference_index=0)
    >>> result["merged"].shape
    (3000, 4000)
    """

    def __init__(self, config: "InternalConfig"):
        cfg = config.merger
        self.robustness = cfg.robustness
        self.thresholds = {
            Robustness.LOW: cfg.thresholds.low,
            Robustness.MEDIUM: cfg.thresholds.medium,
            Robustness.HIGH: cfg.thresholds.high,
        }
        self.shot_noise = cfg.shot_noise
        self.read_noise = cfg.read_noise
        self.reference_weight = cfg.reference_weight
        self.kernel_size = cfg.blur_kernel_size
        self.keep_weights = cfg.keep_weights

        logger.info("RobustMerger initialized: robustness=%s, shot=%s, read=%s",
                    self.robustness.value, self.shot_noise, self.read_noise)

    def _variance(self, signal: np.ndarray, gain: float) -> np.ndarray:
        return gain * self.shot_noise * signal + gain * gain * self.read_noise

    def merge(self, frames: Sequence[xr.Dataset], field: xr.Dataset, reference_index: int,
              robustness: Optional[Robustness] = None) -> xr.Dataset:
        """Merge ``frames`` into the geometry of the reference frame.

        Parameters
        ----------
        frames : sequence of xr.Dataset
            Burst frames.
        field : xr.Dataset
            AlignmentField from ``TileAligner.align``.
        reference_index : int
            Index of the reference frame.
        robustness : Robustness, optional
            Overrides the configured robustness for this call.

        Returns
        -------
        xr.Dataset
            ``merged`` (y, x) float64 clamped to ``[0, white_level]``
            (``[0, 65535]`` when unknown), plus ``weights`` (frame, y, x)
            when ``keep_weights`` is set. ``attrs["mean_weights"]`` holds
            the mean merge weight of every frame.
        """
        robustness = Robustness(robustness) if robustness is not None else self.robustness
        threshold = self.thresholds[robustness]

        reference = frames[reference_index]
        pattern = frame_pattern(reference)
        ref_raw = np.asarray(reference["raw"].values, dtype=np.float64)
        shape = ref_raw.shape
        bias_ref = reference.attrs["exposure_bias"]
        white_ref = reference.attrs["white_level"]
        black_ref = np.maximum(pattern.black_level_map(reference["black_levels"].values, shape), 0.0)
        tile_size = field.attrs["tile_size"]

        signal = np.maximum(mosaic_blur(ref_raw - black_ref, pattern.width, self.kernel_size), 0.0)
        var_ref = self._variance(signal, 1.0)

        ref_weight = self.reference_weight / var_ref
        weighted_sum = ref_weight * ref_raw
        weight_sum = ref_weight.copy()

        weights = np.zeros((len(frames),) + shape) if self.keep_weights else None
        if weights is not None:
            weights[reference_index] = ref_weight
        mean_weights = [0.0] * len(frames)
        mean_weights[reference_index] = float(ref_weight.mean()) if ref_weight.size else 0.0

        for k, frame in enumerate(frames):
            if k == reference_index:
                continue
            raw = frame["raw"].values
            values, valid = sample_aligned(
                raw,
                field["offset_y"].values[k],
                field["offset_x"].values[k],
                tile_size,
            )
            # Offsets are pattern-width multiples, so the cell at p is the source cell
            black_k = np.maximum(frame_pattern(frame).black_level_map(frame["black_levels"].values, shape), 0.0)
            white_k = frame.attrs["white_level"]
            usable = valid
            if white_k > 0:
                usable = usable & (values < white_k)

            bias_k = frame.attrs["exposure_bias"]
            gain = exposure_gain(bias_ref, bias_k)
            candidate = equalize_exposure(values, black_k, black_ref, bias_ref, bias_k)
            var_k = self._variance(signal, gain)

            running = weighted_sum / weight_sum
            candidate = np.where(usable, candidate, running)
            distance = np.abs(
                mosaic_blur(candidate, pattern.width, self.kernel_size)
                - mosaic_blur(running, pattern.width, self.kernel_size)
            )
            z = distance / np.sqrt(var_ref + var_k)
            factor = np.clip(2.0 - z / threshold, 0.0, 1.0)

            weight = np.where(usable, factor / var_k, 0.0)
            weighted_sum += weight * candidate
            weight_sum += weight

            mean_weights[k] = float(weight.mean())
            if weights is not None:
                weights[k] = weight
            logger.debug("Frame %d merged: gain %.3f, mean weight %.4g, usable %.1f%%",
                         k, gain, mean_weights[k], 100.0 * usable.mean())

        upper = float(white_ref) if white_ref > 0 else UNKNOWN_WHITE_CLAMP
        merged = np.clip(weighted_sum / weight_sum, 0.0, upper)
        logger.info("Merged %d frames (robustness=%s)", len(frames), robustness.value)

        data_vars = {"merged": (("y", "x"), merged)}
        if weights is not None:
            data_vars["weights"] = (("frame", "y", "x"), weights)
        return xr.Dataset(
            data_vars=data_vars,
            attrs={
                "robustness": robustness.value,
                "outlier_threshold": float(threshold),
                "mean_weights": mean_weights,
            },
        )
