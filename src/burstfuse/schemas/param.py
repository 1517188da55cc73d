"""ParamConfig: Expert defaults for the burstfuse pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from burstfuse.schemas.base import BurstBaseModel, ExposureControl, Robustness


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ReaderConfig(BurstBaseModel):
    """Raw file loading configuration."""
    max_workers: int = Field(4, ge=1, description="Parallel decode workers")
    skip_hidden: bool = True
    extensions: Optional[list[str]] = None

    @field_validator("extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v):
        """Lowercase extensions and make sure they start with a dot."""
        if v is None:
            return v
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]


class ConverterConfig(BurstBaseModel):
    """External DNG converter configuration."""
    enabled: bool = False
    converter_path: Optional[str] = None
    arguments: list[str] = Field(default_factory=lambda: ["-c", "-p0"])


class PyramidConfig(BurstBaseModel):
    """Pyramid builder configuration."""
    min_tiles_coarsest: int = Field(4, ge=1, description="Tiles per axis required at the coarsest level")
    max_levels: int = Field(4, ge=1, le=8)
    blur_kernel_size: int = Field(1, ge=1, le=4)


class AlignerConfig(BurstBaseModel):
    """Tile aligner configuration."""
    tile_size: int = Field(16, ge=2, description="Tile size in finest pyramid level pixels")
    coarse_search_radius: int = Field(4, ge=1)
    fine_search_radius: int = Field(2, ge=1)
    coarse_metric: Literal["l1", "l2"] = "l2"
    fine_metric: Literal["l1", "l2"] = "l1"
    max_workers: int = Field(4, ge=1, description="Frames aligned concurrently")

    @field_validator("coarse_metric", "fine_metric", mode="before")
    @classmethod
    def normalize_metric(cls, v):
        """Normalize metric names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @model_validator(mode="after")
    def check_search_radii(self):
        """Finer levels refine, they never search wider than the coarsest level."""
        if self.fine_search_radius > self.coarse_search_radius:
            raise ValueError(
                f"fine_search_radius ({self.fine_search_radius}) must not exceed "
                f"coarse_search_radius ({self.coarse_search_radius})"
            )
        return self


class RobustnessThresholdsConfig(BurstBaseModel):
    """Outlier thresholds (in noise standard deviations) per robustness level."""
    low: float = Field(6.0, gt=0)
    medium: float = Field(3.0, gt=0)
    high: float = Field(1.5, gt=0)

    @model_validator(mode="after")
    def check_ordering(self):
        """Higher robustness must mean a lower (stricter) threshold."""
        if not (self.low >= self.medium >= self.high):
            raise ValueError(
                f"robustness thresholds must satisfy low >= medium >= high, "
                f"got low={self.low}, medium={self.medium}, high={self.high}"
            )
        return self


class MergerConfig(BurstBaseModel):
    """Robust merge configuration."""
    robustness: Robustness = Robustness.MEDIUM
    thresholds: RobustnessThresholdsConfig = Field(default_factory=RobustnessThresholdsConfig)
    shot_noise: float = Field(1.0, ge=0, description="Shot noise gain (variance per DN of signal)")
    read_noise: float = Field(4.0, gt=0, description="Read noise variance in DN^2")
    reference_weight: float = Field(1.0, gt=0)
    blur_kernel_size: int = Field(1, ge=1, le=4)
    keep_weights: bool = False

    @field_validator("robustness", mode="before")
    @classmethod
    def normalize_robustness(cls, v):
        """Accept 'low', 'LOW', 'Low'."""
        if isinstance(v, str):
            return v.strip().capitalize()
        return v


class ExposureConfig(BurstBaseModel):
    """Exposure/tone correction configuration."""
    control: ExposureControl = ExposureControl.LINEAR_FULL_RANGE


class BurstConfig(BurstBaseModel):
    """Burst-level settings."""
    reference_index: int = Field(0, ge=0)
    uniform_exposure: Optional[bool] = None


class OutputConfig(BurstBaseModel):
    """Output file configuration."""
    output_dir: Optional[str] = None
    compression_level: int = Field(4, ge=0, le=9)


class LoggingConfig(BurstBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(BurstBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    converter: ConverterConfig = Field(default_factory=ConverterConfig)
    pyramid: PyramidConfig = Field(default_factory=PyramidConfig)
    aligner: AlignerConfig = Field(default_factory=AlignerConfig)
    merger: MergerConfig = Field(default_factory=MergerConfig)
    exposure: ExposureConfig = Field(default_factory=ExposureConfig)
    burst: BurstConfig = Field(default_factory=BurstConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
