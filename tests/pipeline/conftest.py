import pytest

from burstfuse.schemas import InternalConfig, ParamConfig, UserConfig
from burstfuse.schemas.resolve import resolve_config
from burstfuse.setup_directories import setup_output_directories


@pytest.fixture
def pipeline_config(temp_dir) -> InternalConfig:
    """InternalConfig for pipeline tests: small tiles, output under temp_dir."""
    user = UserConfig(OUTPUT_DIR=str(temp_dir / "output"), TILE_SIZE=8, EXPOSURE_CONTROL="Off")
    return resolve_config(ParamConfig(), user, None)


@pytest.fixture
def pipeline_output_dirs(temp_dir):
    """Output directories for pipeline tests."""
    return setup_output_directories(temp_dir / "output")
