"""Raw burst processing: mosaic model, pyramids, alignment, merge, exposure.

The decoder and input helpers sit at the edge; everything else works on
in-memory frames built by ``make_frame``.
"""

from burstfuse.raw.mosaic import MosaicPattern
from burstfuse.raw.frame import make_frame
from burstfuse.raw.filters import binomial_kernel, mosaic_blur
from burstfuse.raw.reduction import max_along_x, max_along_y, texture_max
from burstfuse.raw.pyramid import PyramidBuilder
from burstfuse.raw.aligner import TileAligner
from burstfuse.raw.merger import RobustMerger
from burstfuse.raw.exposure import ExposureCorrector, correct_exposure, equalize_exposure

__all__ = [
    'MosaicPattern',
    'make_frame',
    'binomial_kernel',
    'mosaic_blur',
    'max_along_x',
    'max_along_y',
    'texture_max',
    'PyramidBuilder',
    'TileAligner',
    'RobustMerger',
    'ExposureCorrector',
    'correct_exposure',
    'equalize_exposure',
]
