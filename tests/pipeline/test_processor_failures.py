import numpy as np
import pytest

from burstfuse.contracts import AlignmentFailure, ContractViolation
from burstfuse.pipeline.processor import BurstProcessor
from burstfuse.raw.frame import make_frame
from tests.helpers.fake_burst import make_flat_burst

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def test_empty_burst_violates_contract(pipeline_config):
    with pytest.raises(ContractViolation, match="empty"):
        BurstProcessor(pipeline_config).process([])


def test_reference_index_out_of_range(pipeline_config):
    with pytest.raises(ContractViolation, match="reference index"):
        BurstProcessor(pipeline_config).process(make_flat_burst(2), reference_index=5)


def test_mismatched_frame_fails_alignment(pipeline_config):
    frames = make_flat_burst(2)
    frames.append(make_frame(np.full((48, 64), 500), black_levels=0, white_level=1000))
    with pytest.raises(AlignmentFailure):
        BurstProcessor(pipeline_config).process(frames)


def test_mixed_pattern_widths_violate_contract(pipeline_config):
    frames = make_flat_burst(1) + make_flat_burst(1, shape=(66, 66), pattern_width=6)
    with pytest.raises(ContractViolation, match="pattern width"):
        BurstProcessor(pipeline_config).process(frames)


def test_frame_smaller_than_mosaic_period_fails_alignment(pipeline_config):
    frames = [make_frame(np.full((1, 64), 500), black_levels=0, white_level=1000)] * 2
    with pytest.raises(AlignmentFailure, match="mosaic period"):
        BurstProcessor(pipeline_config).process(frames)
