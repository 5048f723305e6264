"""Singular value decomposition summary of velocity fields.

The dominant spatial modes of a velocity field show the most common flow
structures of a recording at a glance. The field is flattened to a
(space, time x trial) matrix, either as complex values ``x + iy`` or with
the x and y components stacked, and decomposed with ``numpy.linalg.svd``.
Each mode is drawn as a quiver plot with its trial-averaged time course
underneath.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, TYPE_CHECKING

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

if TYPE_CHECKING:
    from neuropatt.flow.vector_field import VelocityField
    from neuropatt.schemas import InternalConfig

__all__ = ['SVDModes', 'SVDPlotter', 'compute_svd_modes']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SVDModes:
    """Leading SVD modes of a velocity field.

    Attributes
    ----------
    spatial_x, spatial_y : np.ndarray
        (n_modes, row, col) mode vector components.
    time_courses : np.ndarray
        (n_modes, trial, time) mode amplitudes. Real part is used for
        complex decompositions.
    singular_values : np.ndarray
        (n_modes,)
    explained : np.ndarray
        (n_modes,) fraction of total variance per mode.
    """
    spatial_x: np.ndarray
    spatial_y: np.ndarray
    time_courses: np.ndarray
    singular_values: np.ndarray
    explained: np.ndarray

    @property
    def n_modes(self) -> int:
        return self.singular_values.size


def compute_svd_modes(field: "VelocityField", n_modes: int, use_complex: bool = False) -> SVDModes:
    """Decompose a velocity field into its leading spatial modes.

    Parameters
    ----------
    field : VelocityField
        (row, col, time, trial) velocity field.
    n_modes : int
        Number of modes to keep; clipped to the matrix rank bound.
    use_complex : bool
        Decompose ``x + iy`` instead of the stacked ``[x; y]`` matrix.
    """
    n_rows, n_cols, n_time, n_trials = field.shape
    n_space = n_rows * n_cols

    def flatten(a):
        # Columns ordered trial-major so time courses reshape to (trial, time)
        return a.transpose(0, 1, 3, 2).reshape(n_space, n_trials * n_time)

    if use_complex:
        matrix = flatten(field.as_complex())
    else:
        matrix = np.vstack([flatten(field.x), flatten(field.y)])

    u, s, vh = np.linalg.svd(matrix, full_matrices=False)
    n_modes = min(n_modes, s.size)

    if use_complex:
        spatial = u[:, :n_modes].T.reshape(n_modes, n_rows, n_cols)
        spatial_x, spatial_y = spatial.real, spatial.imag
    else:
        spatial_x = u[:n_space, :n_modes].T.reshape(n_modes, n_rows, n_cols)
        spatial_y = u[n_space:, :n_modes].T.reshape(n_modes, n_rows, n_cols)

    time_courses = (s[:n_modes, np.newaxis] * vh[:n_modes]).real
    time_courses = time_courses.reshape(n_modes, n_trials, n_time)

    energy = np.sum(s ** 2)
    explained = s[:n_modes] ** 2 / energy if energy > 0 else np.zeros(n_modes)

    return SVDModes(
        spatial_x=spatial_x,
        spatial_y=spatial_y,
        time_courses=time_courses,
        singular_values=s[:n_modes],
        explained=explained,
    )


class SVDPlotter:
    """Save a figure of the dominant SVD modes of a velocity field.

    Called as ``plotter(field, fs)``. Returns the saved path, or None when
    plotting failed. Failures are logged and never raised, so a plotting
    problem cannot abort an analysis.

    Parameters
    ----------
    config : InternalConfig
        Reads ``config.visualization``.

    Examples
    --------
    >>> plotter = SVDPlotter(config)
    >>> path = plotter(result.velocity_fields, fs=1000.0)
    """

    def __init__(self, config: "InternalConfig"):
        viz = config.visualization
        self.n_modes = viz.n_svd_modes
        self.use_complex = viz.use_complex_svd
        self.output_dir = Path(viz.output_dir)
        self.dpi = viz.dpi
        self.output_format = viz.output_format

    def __call__(self, field: "VelocityField", fs: float) -> Optional[str]:
        try:
            modes = compute_svd_modes(field, self.n_modes, self.use_complex)
            fig = self._plot_modes(modes, fs)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            return self._save_figure(fig, self.output_dir / f"svd_modes_{stamp}")
        except Exception:
            logger.exception("Failed to plot SVD modes")
            return None

    def _plot_modes(self, modes: SVDModes, fs: float) -> plt.Figure:
        n = modes.n_modes
        fig, axes = plt.subplots(2, n, figsize=(3 * n, 6), squeeze=False)
        n_rows, n_cols = modes.spatial_x.shape[1:]
        cols, rows = np.meshgrid(np.arange(n_cols), np.arange(n_rows))
        plot_time = np.arange(1, modes.time_courses.shape[2] + 1) / fs

        for i in range(n):
            ax = axes[0, i]
            ax.quiver(cols, rows, modes.spatial_x[i], modes.spatial_y[i],
                      color='#333333', angles='xy', pivot='mid')
            ax.set_xlim(-0.5, n_cols - 0.5)
            ax.set_ylim(n_rows - 0.5, -0.5)
            ax.set_aspect('equal')
            ax.set_title(f"Mode {i + 1} ({100 * modes.explained[i]:.1f}%)")
            ax.set_xticks([])
            ax.set_yticks([])

            ax = axes[1, i]
            ax.plot(plot_time, modes.time_courses[i].mean(axis=0), color='k', linewidth=0.8)
            ax.set_xlabel("Time (s)")
            if i == 0:
                ax.set_ylabel("Mode amplitude")

        fig.suptitle("Dominant SVD modes")
        fig.tight_layout()
        return fig

    def _save_figure(self, fig: plt.Figure, output_path: Path) -> str:
        """Save figure in configured format."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_file = output_path.with_suffix(f'.{self.output_format}')

        fig.savefig(output_file, dpi=self.dpi, bbox_inches='tight', format=self.output_format)
        plt.close(fig)
        logger.info("SVD figure saved: %s", output_file)
        return str(output_file)
