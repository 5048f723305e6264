"""Core infrastructure shared by the per-trial stages."""

from neuropatt.core.trials import map_trials

__all__ = ['map_trials']
