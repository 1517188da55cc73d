"""Merge stage contract."""

import numpy as np
from burstfuse.contracts.base import require


def assert_merged(merged: np.ndarray, shape: tuple, white_level: int) -> None:
    """Enforce merge stage contract.

    Parameters
    ----------
    merged : np.ndarray
        Finalized merged buffer
    shape : tuple
        Reference frame shape
    white_level : int
        Reference white level, -1 when unknown

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        merged.shape == tuple(shape),
        f"Merge contract violated: shape {merged.shape}, expected {tuple(shape)}"
    )
    require(
        bool(np.isfinite(merged).all()),
        "Merge contract violated: non-finite values in merged buffer"
    )
    upper = white_level if white_level > 0 else 65535
    if merged.size:
        require(
            merged.min() >= 0 and merged.max() <= upper,
            f"Merge contract violated: values outside [0, {upper}]"
        )
