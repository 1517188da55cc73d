"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., EXPOSURE_CONTROL → exposure_control).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, lowercase mode names, etc.
"""

from typing import Optional, Any
from pydantic import Field, field_validator
from burstfuse.schemas.base import BurstBaseModel, ExposureControl, Robustness


def _normalize_exposure_control(v):
    """Match exposure control names case-insensitively ('curve0ev' → 'Curve0EV')."""
    if isinstance(v, str) and not isinstance(v, ExposureControl):
        key = v.strip().lower()
        for member in ExposureControl:
            if member.value.lower() == key:
                return member
    return v


def _normalize_robustness(v):
    """Match robustness names case-insensitively ('high' → 'High')."""
    if isinstance(v, str) and not isinstance(v, Robustness):
        return v.strip().capitalize()
    return v


class UserAlignerConfig(BurstBaseModel):
    """User-facing aligner config."""
    tile_size: Optional[int] = None
    coarse_search_radius: Optional[int] = None
    fine_search_radius: Optional[int] = None
    coarse_metric: Optional[str] = None
    fine_metric: Optional[str] = None
    max_workers: Optional[int] = None

    @field_validator("coarse_metric", "fine_metric", mode="before")
    @classmethod
    def normalize_metric(cls, v):
        """Normalize metric names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserPyramidConfig(BurstBaseModel):
    """User-facing pyramid config."""
    min_tiles_coarsest: Optional[int] = None
    max_levels: Optional[int] = None
    blur_kernel_size: Optional[int] = None


class UserMergerConfig(BurstBaseModel):
    """User-facing merger config."""
    robustness: Optional[Robustness] = None
    thresholds: Optional[dict[str, float]] = None
    shot_noise: Optional[float] = None
    read_noise: Optional[float] = None
    reference_weight: Optional[float] = None
    blur_kernel_size: Optional[int] = None
    keep_weights: Optional[bool] = None

    @field_validator("robustness", mode="before")
    @classmethod
    def normalize_robustness(cls, v):
        return _normalize_robustness(v)

    @field_validator("shot_noise", "read_noise", "reference_weight", mode="before")
    @classmethod
    def coerce_numeric(cls, v):
        """Accept int or float."""
        if v is not None:
            return float(v)
        return v


class UserReaderConfig(BurstBaseModel):
    """User-facing loader config."""
    max_workers: Optional[int] = None
    skip_hidden: Optional[bool] = None
    extensions: Optional[list[str]] = None


class UserConverterConfig(BurstBaseModel):
    """User-facing DNG converter config."""
    enabled: Optional[bool] = None
    converter_path: Optional[str] = None
    arguments: Optional[list[str]] = None


class UserConfig(BurstBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            exposure_control="Curve0EV",
            robustness="high",
            output_dir="/data/bursts/merged",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Top-level operational settings
    output_dir: Optional[str] = Field(None, alias="OUTPUT_DIR")
    reference_index: Optional[int] = Field(None, alias="REFERENCE_INDEX")
    uniform_exposure: Optional[bool] = Field(None, alias="UNIFORM_EXPOSURE")

    # Exposure / merge settings (flat aliases)
    exposure_control: Optional[ExposureControl] = Field(None, alias="EXPOSURE_CONTROL")
    robustness: Optional[Robustness] = Field(None, alias="ROBUSTNESS")

    # Alignment settings (flat aliases)
    tile_size: Optional[int] = Field(None, alias="TILE_SIZE")
    search_radius: Optional[int] = Field(None, alias="SEARCH_RADIUS")

    # Loader / converter settings (flat aliases)
    max_workers: Optional[int] = Field(None, alias="MAX_WORKERS")
    dng_converter_path: Optional[str] = Field(None, alias="DNG_CONVERTER_PATH")

    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    reader: Optional[UserReaderConfig] = None
    converter: Optional[UserConverterConfig] = None
    pyramid: Optional[UserPyramidConfig] = None
    aligner: Optional[UserAlignerConfig] = None
    merger: Optional[UserMergerConfig] = None

    model_config = BurstBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("exposure_control", mode="before")
    @classmethod
    def normalize_exposure_control(cls, v):
        return _normalize_exposure_control(v)

    @field_validator("robustness", mode="before")
    @classmethod
    def normalize_robustness(cls, v):
        return _normalize_robustness(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept 'debug' as well as 'DEBUG'."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides: dict[str, Any] = {}

        # Burst section
        burst = {}
        if self.reference_index is not None:
            burst["reference_index"] = self.reference_index
        if self.uniform_exposure is not None:
            burst["uniform_exposure"] = self.uniform_exposure
        if burst:
            overrides["burst"] = burst

        if self.output_dir is not None:
            overrides["output"] = {"output_dir": str(self.output_dir)}

        if self.exposure_control is not None:
            overrides["exposure"] = {"control": self.exposure_control}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        # Reader section
        reader = {}
        if self.max_workers is not None:
            reader["max_workers"] = self.max_workers
        if self.reader is not None:
            reader.update(self.reader.model_dump(exclude_none=True))
        if reader:
            overrides["reader"] = reader

        # Converter section
        converter = {}
        if self.dng_converter_path is not None:
            converter["converter_path"] = self.dng_converter_path
            converter["enabled"] = True
        if self.converter is not None:
            converter.update(self.converter.model_dump(exclude_none=True))
        if converter:
            overrides["converter"] = converter

        # Pyramid section
        if self.pyramid is not None:
            pyramid = self.pyramid.model_dump(exclude_none=True)
            if pyramid:
                overrides["pyramid"] = pyramid

        # Aligner section
        aligner = {}
        if self.tile_size is not None:
            aligner["tile_size"] = self.tile_size
        if self.search_radius is not None:
            aligner["coarse_search_radius"] = self.search_radius
        if self.max_workers is not None:
            aligner["max_workers"] = self.max_workers
        if self.aligner is not None:
            aligner.update(self.aligner.model_dump(exclude_none=True))
        if aligner:
            overrides["aligner"] = aligner

        # Merger section
        merger = {}
        if self.robustness is not None:
            merger["robustness"] = self.robustness
        if self.merger is not None:
            merger.update(self.merger.model_dump(exclude_none=True))
        if merger:
            overrides["merger"] = merger

        return overrides
