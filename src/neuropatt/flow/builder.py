"""Drive the optical flow adapter over every trial.

Builds the velocity field for a whole recording from its transform
coefficients and aggregates the solver's convergence diagnostics. A high
mean iteration count means the solver is struggling and results are
suspect, so the mean is always surfaced to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Callable, TYPE_CHECKING

import numpy as np

from neuropatt.contracts import assert_velocity_field, require_adapter
from neuropatt.core import map_trials
from neuropatt.flow.vector_field import VelocityField

if TYPE_CHECKING:
    from neuropatt.schemas.internal import InternalFlowConfig

__all__ = ['ConvergenceRecord', 'build_velocity_fields']

logger = logging.getLogger(__name__)

STAGE = "optical_flow"


@dataclass(frozen=True)
class ConvergenceRecord:
    """Mean solver iterations per trial."""
    trial_means: np.ndarray

    @property
    def mean(self) -> float:
        """Mean of the per-trial means."""
        return float(np.mean(self.trial_means))


def build_velocity_fields(
    coeffs: np.ndarray,
    bad_channels: np.ndarray,
    flow_params: "InternalFlowConfig",
    optical_flow: Callable,
    n_workers: int = 1,
):
    """Estimate the velocity field of every trial.

    Parameters
    ----------
    coeffs : np.ndarray
        Complex transform coefficients (row, col, time, trial).
    bad_channels : np.ndarray
        Flat spatial indices of invalid channels.
    flow_params : InternalFlowConfig
        ``op_alpha``, ``op_beta`` and ``use_amplitude``.
    optical_flow : callable
        ``optical_flow(trial_coeffs, bad_channels, alpha, beta, phase_only)
        -> (vx, vy, convergence_steps)``.
    n_workers : int
        Trials processed concurrently.

    Returns
    -------
    field : VelocityField
        (row, col, time-1, trial).
    convergence : ConvergenceRecord
        Per-trial mean iterations; ``convergence.mean`` is the run mean.

    Raises
    ------
    AdapterFailure
        If the adapter raises or returns malformed output for any trial.
        No trial is skipped or replaced.
    """
    n_rows, n_cols, n_time, n_trials = coeffs.shape
    out_shape = (n_rows, n_cols, n_time - 1)
    phase_only = not flow_params.use_amplitude

    def run_trial(trial: int):
        vx, vy, steps = optical_flow(
            coeffs[:, :, :, trial], bad_channels,
            flow_params.op_alpha, flow_params.op_beta, phase_only,
        )
        vx = np.asarray(vx, dtype=np.float64)
        vy = np.asarray(vy, dtype=np.float64)
        steps = np.asarray(steps, dtype=np.float64).ravel()

        require_adapter(vx.shape == out_shape and vy.shape == out_shape, STAGE,
                        f"velocity shapes {vx.shape}/{vy.shape}, expected {out_shape}", trial)
        require_adapter(steps.size == n_time - 1, STAGE,
                        f"{steps.size} convergence entries, expected {n_time - 1}", trial)
        require_adapter(bool(np.isfinite(vx).all() and np.isfinite(vy).all()), STAGE,
                        "non-finite velocities (solver diverged)", trial)
        return vx, vy, steps.mean()

    results = map_trials(run_trial, n_trials, STAGE, n_workers=n_workers)

    # Barrier: merge per-trial buffers into the trial axis
    field = VelocityField.from_trials([r[0] for r in results], [r[1] for r in results])
    convergence = ConvergenceRecord(trial_means=np.array([r[2] for r in results]))
    assert_velocity_field(field, coeffs.shape)

    logger.info("Velocity fields: %d trials, %.1f mean convergence steps",
                n_trials, convergence.mean)
    return field, convergence
