"""Command-line interface modules for NeuroPatt analysis runs.

This package contains the core execution logic, making scripts/ optional.
"""

from neuropatt.cli.run_analysis import run_analysis

__all__ = ['run_analysis']
