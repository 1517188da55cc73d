"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: exposure mode, robustness, reference frame, output path,
verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import field_validator
from burstfuse.schemas.base import BurstBaseModel, ExposureControl, Robustness
from burstfuse.schemas.user import _normalize_exposure_control, _normalize_robustness


class CLIConfig(BurstBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Notes
    -----
    Passing ``dng_converter_path`` also enables the converter; runtime
    code never has to decide that on its own.

    Usage
    -----
        cli_cfg = CLIConfig(
            exposure_control="Curve1EV",
            reference_index=2,
            output_dir="/scratch/burstfuse_output",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    output_dir: Optional[str] = None
    exposure_control: Optional[ExposureControl] = None
    robustness: Optional[Robustness] = None
    reference_index: Optional[int] = None
    dng_converter_path: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("exposure_control", mode="before")
    @classmethod
    def normalize_exposure_control(cls, v):
        return _normalize_exposure_control(v)

    @field_validator("robustness", mode="before")
    @classmethod
    def normalize_robustness(cls, v):
        return _normalize_robustness(v)

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.output_dir is not None:
            overrides["output"] = {"output_dir": str(self.output_dir)}

        if self.exposure_control is not None:
            overrides["exposure"] = {"control": self.exposure_control}

        if self.robustness is not None:
            overrides["merger"] = {"robustness": self.robustness}

        if self.reference_index is not None:
            overrides["burst"] = {"reference_index": self.reference_index}

        if self.dng_converter_path is not None:
            overrides["converter"] = {
                "enabled": True,
                "converter_path": str(self.dng_converter_path),
            }

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
