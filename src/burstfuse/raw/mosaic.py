"""Colour filter array (mosaic) model.

A raw sensor buffer repeats a ``w × w`` colour pattern: ``w = 2`` for Bayer
sensors, ``w = 6`` for X-Trans and ``w = 1`` for monochrome data. Every
per-cell quantity (black level, colour weighting) is looked up through
:meth:`MosaicPattern.cell_index` so that all stages agree on the phase.
"""

import numpy as np

__all__ = ['MosaicPattern', 'SUPPORTED_PATTERN_WIDTHS']

SUPPORTED_PATTERN_WIDTHS = (1, 2, 6)


class MosaicPattern:
    """Periodic ``width × width`` colour filter layout.

    Parameters
    ----------
    width : int
        Pattern period in pixels (1, 2 or 6).

    Examples
    --------
    >>> pattern = MosaicPattern(2)
    >>> pattern.cell_index(3, 2)
    1
    >>> pattern.black_level_lookup([64, 65, 66, 67], x=1, y=1)
    67.0
    """

    def __init__(self, width: int):
        if width not in SUPPORTED_PATTERN_WIDTHS:
            raise ValueError(
                f"Unsupported mosaic pattern width {width}, expected one of {SUPPORTED_PATTERN_WIDTHS}"
            )
        self.width = int(width)

    def __repr__(self):
        return f"MosaicPattern(width={self.width})"

    def __eq__(self, other):
        return isinstance(other, MosaicPattern) and other.width == self.width

    def __hash__(self):
        return hash(self.width)

    @property
    def n_cells(self) -> int:
        return self.width * self.width

    @property
    def luminance_kernel_size(self) -> int:
        """Blur radius that averages a full colour period into luminance."""
        return 2 if self.width == 6 else 1

    def cell_index(self, x, y):
        """Flat cell index ``width * (y mod width) + (x mod width)``.

        Works on scalars and on numpy arrays of coordinates alike.
        """
        w = self.width
        return w * (y % w) + (x % w)

    def black_level_lookup(self, black_levels, x: int, y: int):
        """Black level of the cell covering pixel ``(x, y)``."""
        return float(np.asarray(black_levels).reshape(-1)[self.cell_index(x, y)])

    def black_level_map(self, black_levels, shape: tuple) -> np.ndarray:
        """Tile the per-cell black levels over a buffer of ``shape``."""
        h, w = shape
        cells = np.asarray(black_levels, dtype=np.float64).reshape(self.width, self.width)
        reps_y = -(-h // self.width)
        reps_x = -(-w // self.width)
        return np.tile(cells, (reps_y, reps_x))[:h, :w]

    def color_factor_mean(self, color_factors) -> float:
        """Green-weighted mean of the (R, G, B) colour factors.

        Bayer cells hold one red, two green and one blue sample; an X-Trans
        period holds 8 red, 20 green and 8 blue samples.
        """
        r, g, b = (float(v) for v in np.asarray(color_factors).reshape(-1)[:3])
        if self.width == 2:
            return (r + 2.0 * g + b) / 4.0
        if self.width == 6:
            return (8.0 * r + 20.0 * g + 8.0 * b) / 36.0
        return (r + g + b) / 3.0
