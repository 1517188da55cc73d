"""Pipeline orchestration for one burst.

Coordinates input expansion, optional DNG conversion, concurrent loading,
processing and NetCDF output. Owns logging setup and the run lifecycle.
"""

import time
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, TYPE_CHECKING

import xarray as xr

from burstfuse.contracts import ContractViolation, BurstError, LoadFailure
from burstfuse.pipeline.processor import BurstProcessor
from burstfuse.raw.inputs import convert_to_dng, expand_inputs
from burstfuse.raw.loader import BurstLoader
from burstfuse.setup_directories import get_log_path, get_merged_path, setup_output_directories

if TYPE_CHECKING:
    from burstfuse.schemas import InternalConfig

__all__ = ['BurstOrchestrator']

logger = logging.getLogger(__name__)


class BurstOrchestrator:
    """Runs the burst merge pipeline from file paths to a NetCDF file.

    This is the main entry point for running ``burstfuse`` on files.

    **Run Lifecycle:**

    1. **Logging**: root logger with console and file handlers
       (logs/burstfuse.log), level from config.

    2. **Inputs**: a single directory argument expands to its files;
       non-DNG files are converted first when the converter is enabled.

    3. **Load**: every file is decoded concurrently (``BurstLoader``).

    4. **Process**: pyramids, alignment, merge and exposure correction
       (``BurstProcessor``).

    5. **Write**: merged/<reference stem>_merged.nc

    Any failure is fatal: nothing is written for a burst that could not be
    fully merged.

    Example usage::

        from burstfuse.schemas import ParamConfig, UserConfig, resolve_config
        from burstfuse.pipeline.orchestrator import BurstOrchestrator

        config = resolve_config(ParamConfig(), UserConfig(EXPOSURE_CONTROL="Curve0EV"))
        orch = BurstOrchestrator(config)
        output_path = orch.run(["burst/"])
    """

    def __init__(self, config: "InternalConfig", output_dirs: Optional[Dict[str, Path]] = None):
        """Initialize orchestrator with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        output_dirs : dict, optional
            Output directories from ``setup_output_directories()``. Created
            from ``config.output.output_dir`` when omitted.
        """
        self.config = config
        self.output_dirs = output_dirs or setup_output_directories(config.output.output_dir)
        self.loader = BurstLoader(config)
        self.processor = BurstProcessor(config)
        self._start_time = None

    def _setup_logging(self):
        """Configure root logger with file and console handlers.

        Log level and path derived from config.
        """
        log_level = getattr(logging, self.config.logging.level, logging.INFO)
        log_path = get_log_path(self.output_dirs)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        # File handler
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def prepare_inputs(self, paths: Sequence) -> list:
        """Expand directories and convert non-DNG files when configured."""
        files = expand_inputs(paths, skip_hidden=self.config.reader.skip_hidden,
                              extensions=self.config.reader.extensions)
        if not files:
            raise LoadFailure("no input files")

        converter = self.config.converter
        if not converter.enabled:
            return files

        to_convert = [p for p in files if p.suffix.lower() != ".dng"]
        converted = iter(convert_to_dng(to_convert, converter.converter_path,
                                        self.output_dirs["converted"], converter.arguments))
        return [next(converted) if p.suffix.lower() != ".dng" else p for p in files]

    def write_output(self, ds: xr.Dataset, name: str) -> Path:
        """Write the processed burst to merged/<name>_merged.nc."""
        out_path = get_merged_path(self.output_dirs, name)
        encoding = {"merged": {"zlib": True, "complevel": self.config.output.compression_level}}
        ds.to_netcdf(out_path, mode='w', engine='netcdf4', format='NETCDF4', encoding=encoding)
        logger.info("Merged burst saved: %s [%s]", out_path.name, ", ".join(ds.data_vars))
        return out_path

    def run(self, paths: Sequence, decode: Optional[Callable] = None) -> Path:
        """Merge the burst given by ``paths`` and write it to disk.

        Parameters
        ----------
        paths : sequence of path-like
            Burst files, or one directory holding them.
        decode : callable, optional
            ``path -> frame``; defaults to the rawpy decoder.

        Returns
        -------
        Path
            The written NetCDF file.

        Raises
        ------
        BurstError
            LoadFailure, AlignmentFailure or ExternalConversionFailure.
        ContractViolation
            If a pipeline stage broke its guarantees.
        """
        self._setup_logging()
        self._start_time = time.time()

        logger.info("=" * 60)
        logger.info("Starting burst merge")
        logger.info("=" * 60)

        try:
            files = self.prepare_inputs(paths)
            frames = self.loader.load(files, decode=decode)
            result = self.processor.process(frames)
            reference = Path(files[self.config.burst.reference_index])
            out_path = self.write_output(result, reference.stem)
        except ContractViolation as e:
            logger.critical("CRITICAL: Pipeline contract violated: %s", e)
            logger.critical("This indicates a bug in pipeline logic.")
            raise
        except BurstError as e:
            logger.error("Burst could not be merged: %s", e)
            raise

        elapsed = time.time() - self._start_time
        logger.info("=" * 60)
        logger.info("Burst merged in %.1f seconds: %s", elapsed, out_path)
        logger.info("=" * 60)
        return out_path
