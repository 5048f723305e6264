"""`NeuroPatt` - spatiotemporal wave pattern analysis of neural recordings.

Subpackages:
- signal: Preprocessing and time-frequency transforms
- flow: Optical flow and velocity vector fields
- patterns: Pattern detection and transition counting
- pipeline: Orchestrator, per-trial loops, transition statistics
- visualization: SVD mode plots
"""

__version__ = "0.1.0"
