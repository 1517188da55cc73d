"""Input path handling: directory expansion and DNG conversion.

Raw formats that the decoder cannot read directly can be converted with
the Adobe DNG Converter first. The converter is an external program; it
is only invoked, never reimplemented.
"""

import logging
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from burstfuse.contracts.failure import ExternalConversionFailure

__all__ = ['expand_inputs', 'convert_to_dng', 'resolve_converter_executable']

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_MACOS_BUNDLE_EXECUTABLE = Path("Contents") / "MacOS" / "Adobe DNG Converter"


def expand_inputs(paths: Sequence[PathLike], skip_hidden: bool = True,
                  extensions: Optional[Iterable[str]] = None) -> List[Path]:
    """Expand a single directory argument to the files it contains.

    Parameters
    ----------
    paths : sequence of path-like
        Input files, or exactly one directory.
    skip_hidden : bool
        Ignore dot-files inside the directory.
    extensions : iterable of str, optional
        Keep only files with these (lowercase, dotted) suffixes.

    Returns
    -------
    list of Path
        Files in sorted order when a directory was expanded, otherwise the
        given paths unchanged. Subdirectories are not descended into.
    """
    paths = [Path(p) for p in paths]
    if len(paths) != 1 or not paths[0].is_dir():
        return paths

    directory = paths[0]
    files = [
        p for p in sorted(directory.iterdir())
        if p.is_file() and not (skip_hidden and p.name.startswith("."))
    ]
    if extensions is not None:
        allowed = {e.lower() for e in extensions}
        files = [p for p in files if p.suffix.lower() in allowed]
    logger.info("Expanded %s to %d files", directory, len(files))
    return files


def resolve_converter_executable(converter_path: PathLike) -> Path:
    """Executable inside a macOS application bundle, or the path itself."""
    path = Path(converter_path)
    if path.suffix == ".app" or (path / _MACOS_BUNDLE_EXECUTABLE).exists():
        return path / _MACOS_BUNDLE_EXECUTABLE
    return path


def convert_to_dng(paths: Sequence[PathLike], converter_path: PathLike, tmp_dir: PathLike,
                   arguments: Sequence[str] = ("-c", "-p0")) -> List[Path]:
    """Convert raw files to DNG with the external converter.

    Parameters
    ----------
    paths : sequence of path-like
        Raw files to convert.
    converter_path : path-like
        Converter executable or application bundle.
    tmp_dir : path-like
        Output directory for the DNG files.
    arguments : sequence of str
        Converter flags placed before ``-d tmp_dir``.

    Returns
    -------
    list of Path
        ``tmp_dir/<stem>.dng`` for every input, in input order.

    Raises
    ------
    ExternalConversionFailure
        If the converter cannot be started or any expected output is missing.
    """
    paths = [Path(p) for p in paths]
    tmp_dir = Path(tmp_dir)
    tmp_dir.mkdir(parents=True, exist_ok=True)
    if not paths:
        return []

    executable = resolve_converter_executable(converter_path)
    cmd = [str(executable), *arguments, "-d", str(tmp_dir), *[str(p) for p in paths]]
    logger.info("Converting %d files to DNG in %s", len(paths), tmp_dir)
    logger.debug("Converter command: %s", cmd)

    try:
        result = subprocess.run(cmd, stdin=subprocess.DEVNULL, capture_output=True, text=True)
    except OSError as e:
        raise ExternalConversionFailure(f"could not run DNG converter {executable}: {e}") from e
    if result.returncode != 0:
        logger.warning("DNG converter exited with status %d: %s",
                       result.returncode, result.stderr.strip())

    outputs = [tmp_dir / f"{p.stem}.dng" for p in paths]
    missing = [str(p) for p in outputs if not p.exists()]
    if missing:
        raise ExternalConversionFailure(f"DNG conversion produced no output for: {', '.join(missing)}")
    return outputs
