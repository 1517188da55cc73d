"""Two-pass max reduction.

The brightest value of a buffer is found with a column pass followed by a
pass over the column maxima. The result is exact.
"""

import numpy as np

__all__ = ['max_along_y', 'max_along_x', 'texture_max']


def max_along_y(buffer: np.ndarray) -> np.ndarray:
    """Per-column maxima of a 2D buffer (one value per x)."""
    buffer = np.asarray(buffer)
    if buffer.shape[0] == 0:
        return np.zeros(buffer.shape[1], dtype=np.float64)
    return buffer.max(axis=0).astype(np.float64)


def max_along_x(column: np.ndarray) -> float:
    """Maximum of a 1D array of column maxima."""
    column = np.asarray(column)
    if column.size == 0:
        return 0.0
    return float(column.max())


def texture_max(buffer: np.ndarray) -> float:
    """Maximum value of a 2D buffer; ``0.0`` for an empty one."""
    buffer = np.asarray(buffer)
    if buffer.size == 0:
        return 0.0
    return max_along_x(max_along_y(buffer))
