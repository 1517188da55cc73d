"""`burstfuse` - Burst alignment, robust merge and exposure correction for raw photographs.

Subpackages:
- raw: Mosaic model, pyramid, alignment, merge, exposure correction
- pipeline: Processor (stage graph) and orchestrator (run lifecycle)
- schemas: Layered pydantic configuration
- contracts: Stage invariants and failure types
"""

__version__ = "0.1.0"
