"""Frame stage contract.

Enforces the guarantee that the loaded burst is a consistent set of
frames before any pyramid is built.
"""

from typing import Sequence

import xarray as xr
from burstfuse.contracts.base import require


def assert_burst(frames: Sequence[xr.Dataset], reference_index: int) -> None:
    """Enforce loader stage contract.

    Parameters
    ----------
    frames : sequence of xr.Dataset
        Frames as built by ``make_frame``
    reference_index : int
        Index of the reference frame (from config)

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(len(frames) > 0, "Frame contract violated: burst is empty")
    require(
        0 <= reference_index < len(frames),
        f"Frame contract violated: reference index {reference_index} "
        f"out of range for {len(frames)} frames"
    )

    ref = frames[reference_index]
    width = ref.attrs.get("mosaic_pattern_width")
    for i, frame in enumerate(frames):
        require(
            "raw" in frame.data_vars,
            f"Frame contract violated: frame {i} missing 'raw' variable"
        )
        require(
            frame["raw"].dims == ("y", "x"),
            f"Frame contract violated: frame {i} 'raw' dims {frame['raw'].dims}, expected ('y', 'x')"
        )
        require(
            frame.attrs.get("mosaic_pattern_width") == width,
            f"Frame contract violated: frame {i} pattern width "
            f"{frame.attrs.get('mosaic_pattern_width')} != {width}"
        )
        require(
            frame["black_levels"].size == width * width,
            f"Frame contract violated: frame {i} has {frame['black_levels'].size} "
            f"black level cells, expected {width * width}"
        )
