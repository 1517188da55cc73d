"""Pydantic configuration schemas for the burstfuse pipeline.

This module provides strictly typed configuration models for the burst
merge pipeline. All configuration validation, coercion, and
normalization happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
ExposureControl, Robustness : enum
    Named modes shared by every config layer
"""

from burstfuse.schemas.base import ExposureControl, Robustness
from burstfuse.schemas.resolve import resolve_config
from burstfuse.schemas.internal import InternalConfig
from burstfuse.schemas.param import ParamConfig
from burstfuse.schemas.user import UserConfig
from burstfuse.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'ExposureControl',
    'Robustness',
]
