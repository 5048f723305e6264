"""Count observed and expected transitions between pattern types.

A transition A -> B is counted when pattern B starts within a window
around the end of pattern A: from ``window_before`` samples before A ends
to ``window_after`` samples after. The expected count is what the same
windows would catch if patterns of each type started at random times with
that trial's base rate, independent of ordering.
"""

import logging

import numpy as np

__all__ = ['TransitionCounter']

logger = logging.getLogger(__name__)


class TransitionCounter:
    """Default transition counting procedure.

    Called as ``counter(patterns_per_trial, n_timesteps, window_after,
    window_before)`` and returns ``(observed, expected)``, each of shape
    (n_types, n_types, n_trials) indexed (initial type, next type, trial).

    Parameters
    ----------
    n_types : int
        Size of the pattern vocabulary.
    """

    def __init__(self, n_types: int):
        self.n_types = n_types

    def __call__(self, patterns_per_trial: list, n_timesteps: int,
                 window_after: int, window_before: int):
        n_trials = len(patterns_per_trial)
        observed = np.zeros((self.n_types, self.n_types, n_trials))
        expected = np.zeros((self.n_types, self.n_types, n_trials))

        for trial, patterns in enumerate(patterns_per_trial):
            observed[:, :, trial], expected[:, :, trial] = self._count_trial(
                patterns, n_timesteps, window_after, window_before
            )

        logger.debug("Transitions: %d observed, %.1f expected over %d trials",
                     int(observed.sum()), expected.sum(), n_trials)
        return observed, expected

    def _count_trial(self, patterns, n_timesteps, window_after, window_before):
        observed = np.zeros((self.n_types, self.n_types))
        expected = np.zeros((self.n_types, self.n_types))
        if len(patterns) == 0:
            return observed, expected

        types = patterns["type"].to_numpy(dtype=int)
        starts = patterns["start_time"].to_numpy()
        ends = patterns["end_time"].to_numpy()
        type_counts = np.bincount(types, minlength=self.n_types).astype(float)

        for index, (kind, end) in enumerate(zip(types, ends)):
            lo = end - window_before
            hi = end + window_after

            in_window = (starts >= lo) & (starts <= hi)
            in_window[index] = False
            np.add.at(observed[kind], types[in_window], 1)

            # A pattern is never its own successor
            window_len = min(hi, n_timesteps - 1) - max(lo, 0) + 1
            others = type_counts.copy()
            others[kind] -= 1
            expected[kind] += window_len * others / n_timesteps

        return observed, expected
