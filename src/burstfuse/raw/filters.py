"""Mosaic-aware binomial blur.

The blur only mixes samples of the same colour: taps are spaced by the
mosaic pattern width. Mirror boundary handling reflects about the edge
sample, which keeps the mosaic phase of every reflected tap.
"""

import numpy as np
from scipy.ndimage import correlate1d
from scipy.special import comb

__all__ = ['binomial_kernel', 'mosaic_blur']


def binomial_kernel(kernel_size: int) -> np.ndarray:
    """Normalized binomial weights of length ``2 * kernel_size + 1``.

    >>> binomial_kernel(1)
    array([0.25, 0.5 , 0.25])
    """
    if kernel_size < 0:
        raise ValueError(f"kernel_size must be >= 0, got {kernel_size}")
    n = 2 * kernel_size
    weights = comb(n, np.arange(n + 1), exact=False)
    return weights / weights.sum()


def _dilated_kernel(kernel_size: int, pattern_width: int) -> np.ndarray:
    weights = binomial_kernel(kernel_size)
    dilated = np.zeros(2 * kernel_size * pattern_width + 1)
    dilated[::pattern_width] = weights
    return dilated


def mosaic_blur(buffer: np.ndarray, pattern_width: int, kernel_size: int) -> np.ndarray:
    """Separable binomial blur over same-colour samples.

    Parameters
    ----------
    buffer : np.ndarray
        2D buffer (mosaic or luminance).
    pattern_width : int
        Tap spacing; 1 blurs across colours.
    kernel_size : int
        Binomial radius in taps.

    Returns
    -------
    np.ndarray
        float64 blurred copy; a flat buffer is returned unchanged.
    """
    out = np.asarray(buffer, dtype=np.float64)
    if out.size == 0 or kernel_size == 0:
        return out.copy()
    weights = _dilated_kernel(kernel_size, pattern_width)
    out = correlate1d(out, weights, axis=0, mode="mirror")
    return correlate1d(out, weights, axis=1, mode="mirror")
