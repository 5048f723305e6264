"""Pattern transition statistics.

Quantifies whether one pattern type is followed by another more or less
often than a base-rate null model predicts:

- rate difference: ``(observed - expected) / n_timesteps * fs``, events/sec
- fractional change: ``(observed - expected) / expected`` averaged over
  trials, ignoring cells with zero expected count
- paired test of trial-wise observed vs expected counts for every
  (initial, next) pair, only with more than one trial
- Bonferroni correction: p-values times the number of (type, type) cells,
  not clamped at 1
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np
import pandas as pd
import xarray as xr
from scipy import stats

from neuropatt.contracts import UndefinedStatistic, assert_transition_counts

if TYPE_CHECKING:
    from neuropatt.schemas.internal import InternalTransitionConfig

__all__ = [
    'TransitionStatistics',
    'transition_windows',
    'rate_difference',
    'fractional_change',
    'paired_ttest',
    'paired_pvalues',
    'bonferroni',
    'analyze_transitions',
]

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def transition_windows(fs: float, config: "InternalTransitionConfig") -> tuple:
    """Search windows in samples: ``(window_after, window_before)``."""
    return _round_half_up(config.after_fraction * fs), _round_half_up(config.before_fraction * fs)


def rate_difference(observed: np.ndarray, expected: np.ndarray,
                    n_timesteps: int, fs: float) -> np.ndarray:
    """Observed minus expected transitions per second.

    >>> rate_difference(np.array([[4.0]]), np.array([[2.0]]), 100, 1000)
    array([[20.]])
    """
    return (observed - expected) / n_timesteps * fs


def fractional_change(observed: np.ndarray, expected: np.ndarray) -> np.ndarray:
    """Trial-averaged ``(observed - expected) / expected``.

    Cells with zero expected count are undefined: they are excluded from
    the average and an ``UndefinedStatistic`` warning is issued. A cell
    undefined in every trial is NaN.

    Parameters
    ----------
    observed, expected : np.ndarray
        (n_types, n_types, n_trials) counts.

    Returns
    -------
    np.ndarray
        (n_types, n_types)
    """
    undefined = expected == 0
    with np.errstate(divide='ignore', invalid='ignore'):
        change = (observed - expected) / expected
    change[undefined] = np.nan

    n_undefined = int(undefined.sum())
    if n_undefined:
        warnings.warn(
            f"{n_undefined} transition cells have zero expected count and are "
            "excluded from the fractional change",
            UndefinedStatistic,
            stacklevel=2,
        )

    defined = ~undefined
    n_defined = defined.sum(axis=-1)
    total = np.where(defined, change, 0.0).sum(axis=-1)
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(n_defined > 0, total / n_defined, np.nan)


def paired_ttest(sample_a: np.ndarray, sample_b: np.ndarray) -> float:
    """Two-sided paired t-test p-value (``scipy.stats.ttest_rel``).

    Pairs are taken in order of their difference. All-zero differences
    give p = 1.0.
    """
    sample_a = np.asarray(sample_a, dtype=float)
    sample_b = np.asarray(sample_b, dtype=float)
    if np.all(sample_a == sample_b):
        return 1.0
    order = np.argsort(sample_a - sample_b, kind="stable")
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(stats.ttest_rel(sample_a[order], sample_b[order]).pvalue)


def paired_pvalues(observed: np.ndarray, expected: np.ndarray,
                   paired_test: Callable = paired_ttest) -> np.ndarray:
    """p-value of observed vs expected for every (initial, next) pair."""
    n_initial, n_next, _ = observed.shape
    pvals = np.zeros((n_initial, n_next))
    for initial in range(n_initial):
        for nxt in range(n_next):
            pvals[initial, nxt] = paired_test(observed[initial, nxt, :], expected[initial, nxt, :])
    return pvals


def bonferroni(pvals: np.ndarray) -> np.ndarray:
    """Multiply every p-value by the number of cells tested (no clamping)."""
    return pvals * pvals.size


@dataclass(frozen=True)
class TransitionStatistics:
    """Observed/expected transitions and everything derived from them.

    ``pvalues`` and ``corrected_pvalues`` are None for single-trial runs.
    """
    pattern_types: tuple
    observed: np.ndarray
    expected: np.ndarray
    rate_diff: np.ndarray
    fractional_change: np.ndarray
    window_after: int
    window_before: int
    pvalues: Optional[np.ndarray] = None
    corrected_pvalues: Optional[np.ndarray] = None

    @property
    def n_trials(self) -> int:
        return self.observed.shape[2]

    def to_dataset(self) -> xr.Dataset:
        """Labelled xarray view indexed by pattern type names."""
        types = list(self.pattern_types)
        pair_dims = ("initial_type", "next_type")
        full_dims = pair_dims + ("trial",)
        data_vars = {
            "observed": (full_dims, self.observed),
            "expected": (full_dims, self.expected),
            "rate_diff": (full_dims, self.rate_diff, {"units": "transitions/s"}),
            "fractional_change": (pair_dims, self.fractional_change),
        }
        if self.pvalues is not None:
            data_vars["pvalue"] = (pair_dims, self.pvalues)
            data_vars["pvalue_bonferroni"] = (pair_dims, self.corrected_pvalues)

        return xr.Dataset(
            data_vars,
            coords={"initial_type": types, "next_type": types, "trial": np.arange(self.n_trials)},
            attrs={"window_after": self.window_after, "window_before": self.window_before},
        )

    def summary_frame(self) -> pd.DataFrame:
        """One row per (initial_type, next_type) pair."""
        types = list(self.pattern_types)
        index = pd.MultiIndex.from_product([types, types], names=["initial_type", "next_type"])
        columns = {
            "observed_mean": self.observed.mean(axis=-1).ravel(),
            "expected_mean": self.expected.mean(axis=-1).ravel(),
            "rate_diff_mean": self.rate_diff.mean(axis=-1).ravel(),
            "fractional_change": self.fractional_change.ravel(),
        }
        if self.pvalues is not None:
            columns["pvalue"] = self.pvalues.ravel()
            columns["pvalue_bonferroni"] = self.corrected_pvalues.ravel()
        return pd.DataFrame(columns, index=index)


def analyze_transitions(
    patterns_per_trial: list,
    pattern_types: tuple,
    n_timesteps: int,
    fs: float,
    config: "InternalTransitionConfig",
    count_transitions: Callable,
    paired_test: Callable = paired_ttest,
) -> TransitionStatistics:
    """Count transitions and test them against the null model.

    Parameters
    ----------
    patterns_per_trial : list of pd.DataFrame
        Pattern tables, one per trial.
    pattern_types : tuple of str
        Vocabulary; fixes the size of the type axes.
    n_timesteps : int
        Time extent of the velocity field.
    fs : float
        Sampling rate in Hz.
    config : InternalTransitionConfig
        Window fractions.
    count_transitions : callable
        ``count_transitions(patterns_per_trial, n_timesteps, window_after,
        window_before) -> (observed, expected)``.
    paired_test : callable
        ``paired_test(sample_a, sample_b) -> p``.

    Returns
    -------
    TransitionStatistics
    """
    n_types = len(pattern_types)
    n_trials = len(patterns_per_trial)
    window_after, window_before = transition_windows(fs, config)

    observed, expected = count_transitions(patterns_per_trial, n_timesteps, window_after, window_before)
    observed = np.asarray(observed, dtype=float)
    expected = np.asarray(expected, dtype=float)
    assert_transition_counts(observed, expected, n_types, n_trials)

    rate_diff = rate_difference(observed, expected, n_timesteps, fs)
    frac = fractional_change(observed, expected)

    pvals = corrected = None
    if n_trials > 1:
        pvals = paired_pvalues(observed, expected, paired_test)
        corrected = bonferroni(pvals)
        logger.info("Paired tests: %d cells, min corrected p=%.3g",
                    pvals.size, np.nanmin(corrected))
    else:
        logger.info("Single trial: skipping paired significance tests")

    return TransitionStatistics(
        pattern_types=tuple(pattern_types),
        observed=observed,
        expected=expected,
        rate_diff=rate_diff,
        fractional_change=frac,
        window_after=window_after,
        window_before=window_before,
        pvalues=pvals,
        corrected_pvalues=corrected,
    )
