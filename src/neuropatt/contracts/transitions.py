"""Transition stage contract.

Enforces the guarantee that observed and expected transition tensors are
aligned (type, type, trial) arrays of non-negative finite counts.
"""

import numpy as np

from neuropatt.contracts.base import require_adapter


def assert_transition_counts(observed, expected, n_types: int, n_trials: int) -> None:
    """Enforce transition counting contract.

    Raises
    ------
    AdapterFailure
        If the counting procedure returned malformed tensors.
    """
    stage = "transition_counting"
    shape = (n_types, n_types, n_trials)
    for name, arr in (("observed", observed), ("expected", expected)):
        require_adapter(
            isinstance(arr, np.ndarray) and arr.shape == shape, stage,
            f"{name} has shape {getattr(arr, 'shape', None)}, expected {shape}",
        )
        require_adapter(
            bool(np.all(np.isfinite(arr))) and bool(np.all(arr >= 0)), stage,
            f"{name} contains negative or non-finite counts",
        )
