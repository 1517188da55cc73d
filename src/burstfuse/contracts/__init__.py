"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- BurstError subclasses report bursts that cannot be processed
"""

from burstfuse.contracts.failure import (
    ContractViolation,
    FailurePolicy,
    BurstError,
    LoadFailure,
    AlignmentFailure,
    ExternalConversionFailure,
)
from burstfuse.contracts.base import require
from burstfuse.contracts.frames import assert_burst
from burstfuse.contracts.alignment import assert_aligned
from burstfuse.contracts.merge import assert_merged
from burstfuse.contracts.exposure import assert_corrected

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "BurstError",
    "LoadFailure",
    "AlignmentFailure",
    "ExternalConversionFailure",
    "require",
    "assert_burst",
    "assert_aligned",
    "assert_merged",
    "assert_corrected",
]
