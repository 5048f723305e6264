"""Final analysis result.

Bundles everything a run produced into one immutable record. Large
intermediates (transform coefficients and velocity fields) are dropped in
``only_patterns`` mode.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from neuropatt.flow.builder import ConvergenceRecord
    from neuropatt.flow.vector_field import VelocityField
    from neuropatt.pipeline.pattern_loop import PatternCollection
    from neuropatt.pipeline.transitions import TransitionStatistics
    from neuropatt.schemas import InternalConfig

__all__ = ['PatternAnalysisResult', 'assemble_result']


@dataclass(frozen=True)
class PatternAnalysisResult:
    """Result of one ``analyze_recording`` run.

    Attributes
    ----------
    bad_channels : np.ndarray
        Flat spatial indices (``row * n_cols + col``) of invalid channels.
    n_timesteps : int
        Time extent of the velocity field.
    pattern_types, pattern_columns : tuple of str
        Extractor vocabulary.
    patterns : list of pd.DataFrame
        One table per trial.
    pattern_locations : list of list of np.ndarray
        Per trial, per pattern (n_steps, 2) locations.
    transitions_observed, transitions_expected : np.ndarray
        (n_types, n_types, n_trials) counts.
    transition_stats : TransitionStatistics
        Rate differences, fractional changes and p-values.
    mean_convergence_steps : float
        Mean optical flow iterations over all trials.
    trial_convergence_steps : np.ndarray
        Mean optical flow iterations per trial.
    params : InternalConfig
        Configuration the run used.
    fs : float
        Sampling rate in Hz.
    process_time : timedelta
        Wall-clock duration of the run.
    filtered_signal : np.ndarray or None
        Complex transform coefficients; None in ``only_patterns`` mode.
    velocity_fields : VelocityField or None
        None in ``only_patterns`` mode.
    """
    bad_channels: np.ndarray
    n_timesteps: int
    pattern_types: tuple
    pattern_columns: tuple
    patterns: list
    pattern_locations: list
    transitions_observed: np.ndarray
    transitions_expected: np.ndarray
    transition_stats: "TransitionStatistics"
    mean_convergence_steps: float
    trial_convergence_steps: np.ndarray
    params: "InternalConfig"
    fs: float
    process_time: timedelta
    filtered_signal: Optional[np.ndarray] = None
    velocity_fields: Optional["VelocityField"] = None

    @property
    def n_trials(self) -> int:
        return len(self.patterns)

    def summary_frame(self) -> pd.DataFrame:
        """Transition summary, one row per (initial_type, next_type) pair."""
        return self.transition_stats.summary_frame()


def assemble_result(
    *,
    bad_channels: np.ndarray,
    coeffs: np.ndarray,
    field: "VelocityField",
    convergence: "ConvergenceRecord",
    collection: "PatternCollection",
    stats: "TransitionStatistics",
    config: "InternalConfig",
    fs: float,
    process_time: timedelta,
) -> PatternAnalysisResult:
    """Build the result record, honouring ``config.output.only_patterns``."""
    keep_intermediates = not config.output.only_patterns

    return PatternAnalysisResult(
        bad_channels=np.asarray(bad_channels, dtype=int),
        n_timesteps=field.n_time,
        pattern_types=collection.pattern_types,
        pattern_columns=collection.column_names,
        patterns=collection.patterns,
        pattern_locations=collection.locations,
        transitions_observed=stats.observed,
        transitions_expected=stats.expected,
        transition_stats=stats,
        mean_convergence_steps=convergence.mean,
        trial_convergence_steps=convergence.trial_means,
        params=config,
        fs=fs,
        process_time=process_time,
        filtered_signal=coeffs if keep_intermediates else None,
        velocity_fields=field if keep_intermediates else None,
    )
