"""Run the pattern extractor over every trial.

The extractor receives the x and y velocity components of one trial and
the phase of that trial's transform coefficients (not of the velocity
field). Its type vocabulary must be the same for every trial: it is taken
from the extractor's declared ``pattern_types`` / ``column_names`` when
present, otherwise from the first trial, and any disagreement is fatal.
"""

import logging
from dataclasses import dataclass

import numpy as np

from neuropatt.contracts import VocabularyMismatchError, assert_pattern_table, require_adapter
from neuropatt.core import map_trials

__all__ = ['PatternCollection', 'extract_patterns']

logger = logging.getLogger(__name__)

STAGE = "pattern_extraction"


@dataclass(frozen=True)
class PatternCollection:
    """Per-trial pattern tables and locations plus the shared vocabulary."""
    patterns: list
    locations: list
    pattern_types: tuple
    column_names: tuple

    @property
    def n_trials(self) -> int:
        return len(self.patterns)

    def counts(self) -> np.ndarray:
        """Number of patterns of each type per trial, (n_types, n_trials)."""
        out = np.zeros((len(self.pattern_types), self.n_trials), dtype=int)
        for trial, table in enumerate(self.patterns):
            out[:, trial] = np.bincount(table["type"].to_numpy(dtype=int),
                                        minlength=len(self.pattern_types))
        return out


def extract_patterns(field, coeffs: np.ndarray, extractor, params, n_workers: int = 1) -> PatternCollection:
    """Find patterns in every trial of a velocity field.

    Parameters
    ----------
    field : VelocityField
        (row, col, time, trial) velocity field.
    coeffs : np.ndarray
        Complex transform coefficients the field was estimated from.
    extractor : callable
        ``extractor(vx, vy, params, phase) -> (patterns, pattern_types,
        column_names, locations)``. May declare ``pattern_types`` and
        ``column_names`` attributes.
    params : InternalPatternConfig
        Passed through to the extractor.
    n_workers : int
        Trials processed concurrently.

    Raises
    ------
    VocabularyMismatchError
        If any trial reports a vocabulary different from the declared one.
    AdapterFailure
        If the extractor raises or returns malformed output.
    """
    declared_types = getattr(extractor, "pattern_types", None)
    declared_columns = getattr(extractor, "column_names", None)

    def run_trial(trial: int):
        vx, vy = field.trial(trial)
        phase = np.angle(coeffs[:, :, :, trial])
        output = extractor(vx, vy, params, phase)
        require_adapter(isinstance(output, tuple) and len(output) == 4, STAGE,
                        "extractor must return (patterns, types, columns, locations)", trial)
        return output

    results = map_trials(run_trial, field.n_trials, STAGE, n_workers=n_workers)

    # Barrier: establish and check the vocabulary in trial order
    pattern_types = tuple(declared_types) if declared_types is not None else tuple(results[0][1])
    column_names = tuple(declared_columns) if declared_columns is not None else tuple(results[0][2])

    patterns, locations = [], []
    for trial, (table, types, columns, locs) in enumerate(results):
        if tuple(types) != pattern_types:
            raise VocabularyMismatchError(trial, pattern_types, types)
        if tuple(columns) != column_names:
            raise VocabularyMismatchError(trial, column_names, columns)
        assert_pattern_table(table, locs, len(pattern_types), field.n_time, trial)
        patterns.append(table)
        locations.append(list(locs))

    collection = PatternCollection(patterns, locations, pattern_types, column_names)
    per_type = collection.counts().sum(axis=1)
    logger.info("Patterns: %d found across %d trials (%s)",
                int(per_type.sum()), field.n_trials,
                ", ".join(f"{name}={n}" for name, n in zip(pattern_types, per_type)))
    return collection
