"""
Directory setup for the burst merge pipeline.

Layout under the base output directory:
- merged/: merged bursts as NetCDF (<name>_merged.nc)
- converted/: DNG files written by the external converter
- logs/: pipeline logs
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

OUTPUT_SUBDIRECTORIES = ("merged", "converted", "logs")


def setup_output_directories(base_output_dir=None):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Base output directory. If None, uses ./burstfuse_output.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'merged', 'converted', 'logs'
    """
    if base_output_dir is None:
        base_output_dir = Path.cwd() / "burstfuse_output"

    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {"base": base_output_dir}
    directories.update({name: base_output_dir / name for name in OUTPUT_SUBDIRECTORIES})

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    logger.debug("Output directories: %s", {k: str(v) for k, v in directories.items()})
    return directories


def get_merged_path(output_dirs, name):
    """
    Get the NetCDF path of a merged burst.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    name : str
        Burst name, usually the stem of the reference file

    Returns
    -------
    Path
        Full path: merged/<name>_merged.nc

    Example
    -------
    >>> get_merged_path(dirs, 'IMG_0042')
    Path('output/merged/IMG_0042_merged.nc')
    """
    merged_dir = Path(output_dirs["merged"])
    merged_dir.mkdir(parents=True, exist_ok=True)
    return merged_dir / f"{name}_merged.nc"


def get_log_path(output_dirs):
    """
    Get the pipeline log file path.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()

    Returns
    -------
    Path
        Full path: logs/burstfuse.log
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "burstfuse.log"
