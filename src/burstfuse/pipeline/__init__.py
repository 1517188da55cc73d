"""Burst pipeline: per-burst processing and run orchestration."""

from burstfuse.pipeline.processor import BurstProcessor
from burstfuse.pipeline.orchestrator import BurstOrchestrator

__all__ = ['BurstProcessor', 'BurstOrchestrator']
