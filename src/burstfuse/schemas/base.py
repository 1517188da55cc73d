"""Base Pydantic model with strict defaults for burstfuse configs.

All burstfuse config schemas inherit from this base to ensure consistent
validation behavior across parameter, user, CLI, and internal configs.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ExposureControl(str, Enum):
    """Exposure/tone correction mode applied to the merged frame.

    OFF: No correction
    CURVE_0EV: Tone curve lifting the reference towards 0 EV
    CURVE_1EV: Tone curve lifting the reference towards +1 EV
    LINEAR_FULL_RANGE: Linear gain using the available headroom
    LINEAR_CLIP_2EV: Linear gain of at least +2 EV (highlights may clip)
    """
    OFF = "Off"
    CURVE_0EV = "Curve0EV"
    CURVE_1EV = "Curve1EV"
    LINEAR_FULL_RANGE = "LinearFullRange"
    LINEAR_CLIP_2EV = "LinearClip2EV"


class Robustness(str, Enum):
    """How aggressively motion-inconsistent samples are down-weighted."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class BurstBaseModel(BaseModel):
    """Base model for all burstfuse configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Keeps enum members (ExposureControl, Robustness) instead of raw strings
    """

    model_config = ConfigDict(
        extra='forbid',           # Reject unknown fields
        validate_assignment=True, # Validate on field mutation
        str_strip_whitespace=True,# Strip whitespace from strings
    )
