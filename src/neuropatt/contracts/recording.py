"""Recording stage contract.

Enforces the guarantee that the input tensor can be analyzed: rank 3 or 4
with time on the third axis and at least two time samples.
"""

import numpy as np

from neuropatt.contracts.failure import InvalidShapeError


def assert_recording(data: np.ndarray) -> None:
    """Enforce the input recording contract.

    Called before preprocessing. A velocity field is estimated between
    consecutive snapshots, so fewer than two samples cannot be analyzed.

    Parameters
    ----------
    data : np.ndarray
        Recording tensor (row, column, time[, trial]).

    Raises
    ------
    InvalidShapeError
        If the rank or time extent is invalid.
    """
    if data.ndim < 3:
        raise InvalidShapeError(
            f"Recording contract violated: tensor has {data.ndim} axes, "
            "expected (row, column, time[, trial])"
        )
    if data.ndim > 4:
        raise InvalidShapeError(
            f"Recording contract violated: tensor has {data.ndim} axes, expected at most 4"
        )
    if data.shape[2] < 2:
        raise InvalidShapeError(
            f"Recording contract violated: time axis has {data.shape[2]} samples, expected >= 2"
        )
    if not np.issubdtype(data.dtype, np.number) or np.iscomplexobj(data):
        raise InvalidShapeError(
            f"Recording contract violated: dtype is {data.dtype}, expected real numbers"
        )
