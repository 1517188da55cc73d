import numpy as np
import pytest

from burstfuse.pipeline.processor import BurstProcessor
from tests.helpers.fake_burst import make_flat_burst, make_shifted_burst

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def test_processor_initialization(pipeline_config):
    """Processor builds every stage from the config."""
    processor = BurstProcessor(pipeline_config)
    assert processor.pyramid_builder.tile_size == 8
    assert processor.aligner.tile_size == 8
    assert processor.merger.robustness.value == "Medium"
    assert processor.corrector.control.value == "Off"


def test_flat_burst_without_correction(pipeline_config):
    """Identical flat frames merge to the same flat frame."""
    result = BurstProcessor(pipeline_config).process(make_flat_burst(3, value=500))

    assert result["merged"].dtype == np.uint16
    assert result["merged"].dims == ("y", "x")
    assert (result["merged"].values == 500).all()
    assert not result["offset_y"].values.any()
    assert not result["offset_x"].values.any()


def test_output_attributes(pipeline_config):
    """Output attributes describe the burst and the merge."""
    frames = make_flat_burst(3, value=500)
    result = BurstProcessor(pipeline_config).process(frames)

    assert result.attrs["n_frames"] == 3
    assert result.attrs["reference_index"] == 0
    assert result.attrs["mosaic_pattern_width"] == 2
    assert result.attrs["white_level"] == 1000
    assert result.attrs["exposure_bias"] == [0, 0, 0]
    assert result.attrs["uniform_exposure"] == 1
    assert result.attrs["exposure_control"] == "Off"
    assert result.attrs["robustness"] == "Medium"
    assert len(result.attrs["mean_weights"]) == 3
    assert result.attrs["sources"] == "flat_0; flat_1; flat_2"


def test_underexposed_burst_brightened(make_config):
    """Curve0EV lifts a burst shot at -2 EV without exceeding the white level."""
    config = make_config(TILE_SIZE=8, EXPOSURE_CONTROL="Curve0EV")
    result = BurstProcessor(config).process(make_flat_burst(3, value=500, exposure_bias=-200))

    merged = result["merged"].values
    assert (merged > 500).all()
    assert (merged <= 1000).all()
    assert result.attrs["curve_stops"] > 0


def test_reference_index_override(pipeline_config):
    """An explicit reference index replaces the configured one."""
    frames = make_shifted_burst([(0, 0), (0, 0), (0, 0)])
    result = BurstProcessor(pipeline_config).process(frames, reference_index=2)

    assert result.attrs["reference_index"] == 2
    assert not result["offset_y"].values[2].any()
    np.testing.assert_array_equal(result["merged"].values, frames[2]["raw"].values)


def test_uniform_exposure_inferred(pipeline_config):
    """Without a configured flag, uniformity follows the exposure biases."""
    processor = BurstProcessor(pipeline_config)
    assert processor.uniform_exposure(make_flat_burst(3))
    assert not processor.uniform_exposure(make_flat_burst(3, exposure_bias=[0, -100, 0]))


def test_uniform_exposure_configured(make_config):
    """A configured flag is used as is."""
    processor = BurstProcessor(make_config(UNIFORM_EXPOSURE=False))
    assert not processor.uniform_exposure(make_flat_burst(3))


def test_weights_kept_when_requested(make_config):
    """Per-frame weight maps are returned as float32."""
    config = make_config(TILE_SIZE=8, merger={"keep_weights": True})
    result = BurstProcessor(config).process(make_flat_burst(2))
    assert result["weights"].dtype == np.float32
    assert result["weights"].dims == ("frame", "y", "x")
