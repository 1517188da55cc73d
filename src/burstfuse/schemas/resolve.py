"""Configuration resolution and merging logic.

This module provides the single entrypoint for configuration resolution:
resolve_config(). It merges ParamConfig, UserConfig, and CLIConfig in
the correct precedence order and returns a validated InternalConfig.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. UserConfig (user file)
3. ParamConfig (expert defaults)
"""

from typing import Union, Optional
from burstfuse.schemas.param import ParamConfig
from burstfuse.schemas.user import UserConfig
from burstfuse.schemas.cli import CLIConfig
from burstfuse.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values are replaced.

    Parameters
    ----------
    base : dict
        Base dictionary (lowest priority)
    *overrides : dict
        Override dictionaries (higher priority, left to right)

    Returns
    -------
    dict
        Merged dictionary

    Examples
    --------
    >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
    >>> override = {"b": {"d": 4, "e": 5}, "f": 6}
    >>> deep_merge(base, override)
    {'a': 1, 'b': {'c': 2, 'd': 4, 'e': 5}, 'f': 6}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def _coerce(model_cls, cfg):
    if cfg is None or (isinstance(cfg, dict) and not cfg):
        return model_cls()
    if isinstance(cfg, model_cls):
        return cfg
    return model_cls.model_validate(cfg)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, user, and CLI configs.

    This is the SINGLE ENTRYPOINT for configuration resolution. It validates
    and merges configs in the correct precedence order, then returns an
    immutable InternalConfig for runtime use.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    user_cfg : dict or UserConfig, optional
        User configuration with overrides. If None or empty, uses only param defaults.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides. If None or empty, no CLI overrides applied.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValidationError
        If any config fails Pydantic validation
    ValueError
        If the merged values are inconsistent (converter enabled without
        a converter path, fine search radius wider than the coarse one)

    Examples
    --------
    >>> from burstfuse.schemas import resolve_config, ParamConfig, UserConfig
    >>>
    >>> user = UserConfig(EXPOSURE_CONTROL="curve0ev", ROBUSTNESS="high")
    >>> config = resolve_config(ParamConfig(), user)
    >>> config.exposure.control.value
    'Curve0EV'
    >>> config.merger.robustness.value
    'High'
    """
    param = param_cfg if isinstance(param_cfg, ParamConfig) else ParamConfig.model_validate(param_cfg)
    user = _coerce(UserConfig, user_cfg)
    cli = _coerce(CLIConfig, cli_cfg)

    param_dict = param.model_dump()
    user_overrides = user.to_internal_overrides()
    cli_overrides = cli.to_internal_overrides()

    # Deep merge: param < user < cli
    merged = deep_merge(param_dict, user_overrides, cli_overrides)

    converter = merged["converter"]
    if converter["enabled"] and not converter["converter_path"]:
        raise ValueError("converter is enabled but no converter_path was given")

    aligner = merged["aligner"]
    if aligner["fine_search_radius"] > aligner["coarse_search_radius"]:
        # SEARCH_RADIUS may shrink the coarse radius below the default fine one
        aligner["fine_search_radius"] = aligner["coarse_search_radius"]

    # Validate and freeze as InternalConfig
    return InternalConfig.model_validate(merged)
