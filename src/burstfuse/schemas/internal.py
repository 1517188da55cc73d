"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from burstfuse.schemas.base import BurstBaseModel, ExposureControl, Robustness


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalReaderConfig(BurstBaseModel):
    """Runtime loader configuration."""
    max_workers: int
    skip_hidden: bool
    extensions: Optional[list[str]]


class InternalConverterConfig(BurstBaseModel):
    """Runtime DNG converter configuration.

    Note: converter_path is validated as non-None in resolve_config()
    whenever the converter is enabled.
    """
    enabled: bool
    converter_path: Optional[str]
    arguments: list[str]


class InternalPyramidConfig(BurstBaseModel):
    """Runtime pyramid configuration."""
    min_tiles_coarsest: int
    max_levels: int
    blur_kernel_size: int


class InternalAlignerConfig(BurstBaseModel):
    """Runtime aligner configuration."""
    tile_size: int
    coarse_search_radius: int
    fine_search_radius: int
    coarse_metric: Literal["l1", "l2"]
    fine_metric: Literal["l1", "l2"]
    max_workers: int


class InternalRobustnessThresholdsConfig(BurstBaseModel):
    """Runtime outlier thresholds."""
    low: float
    medium: float
    high: float


class InternalMergerConfig(BurstBaseModel):
    """Runtime merge configuration."""
    robustness: Robustness
    thresholds: InternalRobustnessThresholdsConfig
    shot_noise: float
    read_noise: float
    reference_weight: float
    blur_kernel_size: int
    keep_weights: bool


class InternalExposureConfig(BurstBaseModel):
    """Runtime exposure correction configuration."""
    control: ExposureControl


class InternalBurstConfig(BurstBaseModel):
    """Runtime burst settings."""
    reference_index: int
    uniform_exposure: Optional[bool]  # None: inferred from exposure biases


class InternalOutputConfig(BurstBaseModel):
    """Runtime output configuration."""
    output_dir: Optional[str]
    compression_level: int


class InternalLoggingConfig(BurstBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class InternalProcessorConfig(BurstBaseModel):
    """Runtime processor configuration."""
    output_dtype: Literal["uint16"] = "uint16"
    sensor_max_value: int = Field(default=65535, ge=1)  # Largest representable sample


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(BurstBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.tile_size = config.aligner.tile_size  # NOT .get()
            self.control = config.exposure.control

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO type checking
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    reader: InternalReaderConfig
    converter: InternalConverterConfig
    pyramid: InternalPyramidConfig
    aligner: InternalAlignerConfig
    merger: InternalMergerConfig
    exposure: InternalExposureConfig
    burst: InternalBurstConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig
    processor: InternalProcessorConfig = Field(default_factory=InternalProcessorConfig)

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
