"""Velocity vector field modules.

- vector_field: Explicit (x, y) velocity field type
- optical_flow: Horn-Schunck and Farneback flow adapters
- builder: Per-trial velocity field construction
"""

from neuropatt.flow.vector_field import VelocityField
from neuropatt.flow.optical_flow import OpticalFlowEstimator, fill_bad_channels
from neuropatt.flow.builder import ConvergenceRecord, build_velocity_fields

__all__ = [
    "VelocityField",
    "OpticalFlowEstimator",
    "fill_bad_channels",
    "ConvergenceRecord",
    "build_velocity_fields",
]
