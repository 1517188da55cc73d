"""Alignment stage contract.

Enforces the guarantee that the alignment field is bounded, colour
preserving and anchored on the reference frame.
"""

import numpy as np
import xarray as xr
from burstfuse.contracts.base import require


def assert_aligned(field: xr.Dataset, n_frames: int, pattern_width: int) -> None:
    """Enforce alignment stage contract.

    Called immediately after ``TileAligner.align``.

    Parameters
    ----------
    field : xr.Dataset
        AlignmentField with ``offset_y`` and ``offset_x``
    n_frames : int
        Number of frames in the burst
    pattern_width : int
        Mosaic pattern width of the burst

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in ("offset_y", "offset_x"):
        require(
            name in field.data_vars,
            f"Alignment contract violated: missing '{name}' variable"
        )
        var = field[name]
        require(
            var.dims == ("frame", "tile_y", "tile_x"),
            f"Alignment contract violated: '{name}' dims {var.dims}, "
            f"expected ('frame', 'tile_y', 'tile_x')"
        )
        require(
            np.issubdtype(var.dtype, np.integer),
            f"Alignment contract violated: '{name}' has dtype {var.dtype}, expected integer"
        )
        require(
            var.sizes["frame"] == n_frames,
            f"Alignment contract violated: '{name}' covers {var.sizes['frame']} frames, expected {n_frames}"
        )
        values = var.values
        require(
            bool(np.all(values % pattern_width == 0)),
            f"Alignment contract violated: '{name}' not a multiple of pattern width {pattern_width}"
        )
        bound = field.attrs["max_displacement"]
        require(
            int(np.abs(values).max(initial=0)) <= bound,
            f"Alignment contract violated: '{name}' exceeds max displacement {bound}"
        )

    ref = field.attrs["reference_index"]
    require(
        not field["offset_y"].values[ref].any() and not field["offset_x"].values[ref].any(),
        "Alignment contract violated: reference frame has non-zero offsets"
    )
