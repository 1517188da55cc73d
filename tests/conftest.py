"""Root-level pytest fixtures for the burstfuse test suite.

Provides shared configuration fixtures following Pydantic-based architecture.
All tests must use these fixtures instead of creating raw dict configs.
"""

import logging
import pytest
from pathlib import Path
import tempfile
import shutil

from burstfuse.schemas import ParamConfig, UserConfig, resolve_config
from burstfuse.setup_directories import setup_output_directories


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.

    Examples
    --------
    >>> def test_merger_init(internal_config):
    ...     merger = RobustMerger(internal_config)
    ...     assert merger.robustness.value == "Medium"
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_small_tiles(make_config):
    ...     config = make_config(TILE_SIZE=8)
    ...     aligner = TileAligner(config)
    ...     assert aligner.tile_size == 8
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard burstfuse output directory structure.

    Returns dict with keys: base, merged, converted, logs
    All directories are created and cleaned up automatically.
    """
    return setup_output_directories(temp_dir / "output")


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def restore_root_logging():
    """Undo the handlers the orchestrator installs on the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
