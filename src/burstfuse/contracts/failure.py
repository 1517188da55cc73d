"""Centralized failure policy and failure types.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing caller to handle pipeline bugs uniformly.

Burst failures (a file that will not decode, a frame that cannot be
aligned, a converter that produced nothing) are a separate family: they
describe bad input, not broken code, and share the ``BurstError`` base.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """Failure policy for contract violations and burst failures.

    FAIL_FAST (default): Raise immediately; the burst is not merged.
    No partial merge is ever produced from a subset of frames.
    """
    FAIL_FAST = "fail_fast"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or an
    unusable burst. It means a pipeline stage did not produce the
    invariants it promised.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - BurstError: The burst itself cannot be processed
    - ContractViolation: Pipeline bug (programmer error)
    """
    pass


class BurstError(RuntimeError):
    """Base class for fatal, synchronous burst processing failures."""
    pass


class LoadFailure(BurstError):
    """A raw file could not be decoded, or the frames are incompatible."""
    pass


class AlignmentFailure(BurstError):
    """A comparison frame cannot be aligned against the reference."""
    pass


class ExternalConversionFailure(BurstError):
    """The external DNG converter did not produce an expected output."""
    pass
