"""Core burst pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import sys
import json
import argparse
import logging
import importlib.util
from pathlib import Path
from typing import Optional, Dict, Any, Sequence

from burstfuse.contracts import BurstError, ContractViolation
from burstfuse.setup_directories import setup_output_directories
from burstfuse.pipeline.orchestrator import BurstOrchestrator
from burstfuse.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig, ExposureControl, Robustness


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def run_burst_pipeline(
    inputs: Sequence[str],
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> Path:
    """Merge one burst of raw files.

    This is the core pipeline execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Sets up output directories
    3. Runs the orchestrator on the inputs

    Parameters
    ----------
    inputs : sequence of str
        Raw files of the burst, or a single directory holding them.

    user_config_path : str, optional
        Path to user config file (Python file with CONFIG dict).

    cli_args : dict, optional
        CLI argument overrides. Keys: output_dir, exposure_control,
        robustness, reference_index, dng_converter_path, log_level.
        All optional.

    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    Path
        The merged NetCDF file.

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    ValueError
        If configuration validation fails.
    BurstError
        If the burst cannot be merged.

    Examples
    --------
    Run with defaults::

        run_burst_pipeline(["bursts/IMG_0042/"])

    Run with CLI overrides::

        run_burst_pipeline(
            ["bursts/IMG_0042/"],
            "config/my_config.py",
            cli_args={"exposure_control": "Curve0EV", "robustness": "High"},
        )
    """
    param_cfg = ParamConfig()  # Expert defaults

    user_cfg_dict = load_user_config_dict(user_config_path) if user_config_path else {}
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    # Resolve to internal config (Param < User < CLI)
    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    output_dirs = setup_output_directories(config.output.output_dir)

    print(f"\n{'='*60}")
    print("burstfuse: burst raw merge")
    print('='*60)
    print(f"Config:     {user_config_path or '(defaults)'}")
    print(f"Inputs:     {', '.join(str(p) for p in inputs)}")
    print(f"Exposure:   {config.exposure.control.value}")
    print(f"Robustness: {config.merger.robustness.value}")
    print(f"Output:     {output_dirs['base']}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(mode="json"), indent=2))
        print('='*60)

    orchestrator = BurstOrchestrator(config, output_dirs)
    return orchestrator.run(inputs)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge a burst of raw photos into one frame")
    parser.add_argument("inputs", nargs="+", help="Raw files, or one directory holding the burst")
    parser.add_argument("-c", "--config", help="Path to user config file")
    parser.add_argument("-o", "--output-dir", help="Output directory")
    parser.add_argument("--exposure-control", choices=[e.value for e in ExposureControl],
                        help="Exposure correction of the merged frame")
    parser.add_argument("--robustness", choices=[r.value for r in Robustness],
                        help="Motion robustness of the merge")
    parser.add_argument("--reference-index", type=int, help="Index of the reference frame")
    parser.add_argument("--dng-converter", help="Adobe DNG Converter path (enables conversion)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cli_args = {
        "output_dir": args.output_dir,
        "exposure_control": args.exposure_control,
        "robustness": args.robustness,
        "reference_index": args.reference_index,
        "dng_converter_path": args.dng_converter,
    }
    try:
        out_path = run_burst_pipeline(args.inputs, args.config, cli_args, verbose=args.verbose)
    except (BurstError, ContractViolation) as e:
        print(f"burstfuse: {e}", file=sys.stderr)
        return 1
    print(f"Merged burst written to {out_path}")
    return 0
