"""Visualization of velocity fields."""

from .svd_plotter import SVDModes, SVDPlotter, compute_svd_modes

__all__ = ['SVDModes', 'SVDPlotter', 'compute_svd_modes']
