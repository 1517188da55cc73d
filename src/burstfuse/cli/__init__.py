"""Command-line interface modules for burstfuse pipeline execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from burstfuse.cli.run_burst import run_burst_pipeline, main

__all__ = ['run_burst_pipeline', 'main']
