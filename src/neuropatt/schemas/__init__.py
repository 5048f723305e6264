"""Pydantic configuration schemas for the NeuroPatt pipeline.

All configuration validation, coercion, and normalization happens at
schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from neuropatt.schemas.resolve import resolve_config
from neuropatt.schemas.internal import InternalConfig
from neuropatt.schemas.param import ParamConfig
from neuropatt.schemas.user import UserConfig
from neuropatt.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
