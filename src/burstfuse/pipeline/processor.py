"""Burst processing: pyramids, alignment, merge and exposure correction.

Runs the stages of one burst strictly in order, each stage consuming the
output of the previous one, and checks the contract of every stage
before moving on.
"""

import logging
from typing import TYPE_CHECKING, Sequence

import numpy as np
import xarray as xr

from burstfuse.contracts import (
    assert_aligned,
    assert_burst,
    assert_corrected,
    assert_merged,
    require,
)
from burstfuse.raw.aligner import TileAligner
from burstfuse.raw.exposure import ExposureCorrector
from burstfuse.raw.merger import RobustMerger
from burstfuse.raw.pyramid import PyramidBuilder

if TYPE_CHECKING:
    from burstfuse.schemas import InternalConfig

__all__ = ['BurstProcessor']

logger = logging.getLogger(__name__)


class BurstProcessor:
    """Merges one burst of frames into a single raw buffer.

    **Processing Pipeline:**

    1. **Pyramids**: luminance pyramid per frame at the reference exposure
       (``PyramidBuilder``).
    2. **Alignment**: per-tile offsets of every frame against the
       reference (``TileAligner``).
    3. **Merge**: exposure-equalized, noise-weighted robust accumulation
       (``RobustMerger``).
    4. **Exposure**: linear gain or tone curve on the merged buffer
       (``ExposureCorrector``).

    Stages are built once from the configuration and reused for every
    burst. The processor holds no per-burst state.

    Example usage::

        processor = BurstProcessor(config)
        result = processor.process(frames)
        result["merged"]          # uint16 (y, x)
        result["offset_y"]        # int32 (frame, tile_y, tile_x)
    """

    def __init__(self, config: "InternalConfig"):
        """Initialize processor with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        """
        self.config = config
        self.pyramid_builder = PyramidBuilder(config)
        self.aligner = TileAligner(config)
        self.merger = RobustMerger(config)
        self.corrector = ExposureCorrector(config)

    def uniform_exposure(self, frames: Sequence[xr.Dataset]) -> bool:
        """Configured uniform-exposure flag, or whether all biases are equal."""
        configured = self.config.burst.uniform_exposure
        if configured is not None:
            return configured
        return len({f.attrs["exposure_bias"] for f in frames}) <= 1

    def process(self, frames: Sequence[xr.Dataset], reference_index: int = None) -> xr.Dataset:
        """Run all stages on one burst.

        Parameters
        ----------
        frames : sequence of xr.Dataset
            Frames built by ``make_frame`` (all the same shape).
        reference_index : int, optional
            Overrides ``config.burst.reference_index``.

        Returns
        -------
        xr.Dataset
            ``merged`` (uint16), ``offset_y``/``offset_x`` and, with
            ``keep_weights``, ``weights``. Attributes carry the merge and
            exposure statistics.

        Raises
        ------
        AlignmentFailure
            If a frame cannot be aligned.
        ContractViolation
            If a stage broke its guarantees (pipeline bug).
        """
        if reference_index is None:
            reference_index = self.config.burst.reference_index

        # Step 1: Validate the burst
        assert_burst(frames, reference_index)
        reference = frames[reference_index]
        shape = reference["raw"].shape
        pattern_width = reference.attrs["mosaic_pattern_width"]
        uniform = self.uniform_exposure(frames)
        logger.info("Processing burst: %d frames, shape=%s, reference=%d, uniform_exposure=%s",
                    len(frames), shape, reference_index, uniform)

        # Step 2: Pyramids
        pyramids = self.pyramid_builder.build_all(frames, reference_index)
        require(
            all(len(p) >= 1 for p in pyramids),
            "Pyramid contract violated: empty pyramid"
        )

        # Step 3: Align
        field = self.aligner.align(frames, pyramids, reference_index)
        assert_aligned(field, len(frames), pattern_width)

        # Step 4: Merge
        merge_result = self.merger.merge(frames, field, reference_index)
        merged = merge_result["merged"].values
        assert_merged(merged, shape, reference.attrs["white_level"])

        # Step 5: Exposure correction (in place)
        exposure_stats = self.corrector.correct(merged, frames, reference_index, uniform)
        assert_corrected(merged, shape, self.config.processor.sensor_max_value)

        return self._build_output(merged, field, merge_result, exposure_stats,
                                  frames, reference_index, uniform)

    def _build_output(self, merged, field, merge_result, exposure_stats, frames,
                      reference_index, uniform) -> xr.Dataset:
        """Assemble the output dataset (NetCDF-safe attributes only)."""
        out_max = self.config.processor.sensor_max_value
        merged_u16 = np.clip(np.rint(merged), 0, out_max).astype(self.config.processor.output_dtype)

        ds = xr.Dataset(
            data_vars={
                "merged": (("y", "x"), merged_u16, {
                    "long_name": "Merged raw mosaic",
                    "units": "DN",
                }),
                "offset_y": field["offset_y"],
                "offset_x": field["offset_x"],
            },
        )
        if "weights" in merge_result:
            ds["weights"] = merge_result["weights"].astype(np.float32)

        attrs = {
            "reference_index": int(reference_index),
            "n_frames": len(frames),
            "mosaic_pattern_width": int(frames[reference_index].attrs["mosaic_pattern_width"]),
            "white_level": int(frames[reference_index].attrs["white_level"]),
            "exposure_bias": [int(f.attrs["exposure_bias"]) for f in frames],
            "uniform_exposure": int(uniform),
            "exposure_control": self.corrector.control.value,
            "tile_size": int(field.attrs["tile_size"]),
            "max_displacement": int(field.attrs["max_displacement"]),
            "pyramid_levels": int(field.attrs["pyramid_levels"]),
            "robustness": merge_result.attrs["robustness"],
            "mean_weights": [float(w) for w in merge_result.attrs["mean_weights"]],
            "sources": "; ".join(str(f.attrs.get("source", "")) for f in frames),
        }
        # NetCDF can't serialize None
        attrs.update({k: v for k, v in exposure_stats.items() if v is not None})
        ds.attrs.update(attrs)

        if merged_u16.size:
            logger.info("Burst merged: output range [%d, %d]", int(merged_u16.min()), int(merged_u16.max()))
        return ds
