"""Exposure stage contract."""

import numpy as np
from burstfuse.contracts.base import require


def assert_corrected(buffer: np.ndarray, shape: tuple, sensor_max_value: int = 65535) -> None:
    """Enforce exposure stage contract.

    Raises
    ------
    ContractViolation
        If the corrected buffer changed shape or left the sensor range
    """
    require(
        buffer.shape == tuple(shape),
        f"Exposure contract violated: shape {buffer.shape}, expected {tuple(shape)}"
    )
    require(
        bool(np.isfinite(buffer).all()),
        "Exposure contract violated: non-finite values in corrected buffer"
    )
    if buffer.size:
        require(
            buffer.min() >= 0 and buffer.max() <= sensor_max_value,
            f"Exposure contract violated: values outside [0, {sensor_max_value}]"
        )
