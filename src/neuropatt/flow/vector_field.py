"""Two-component velocity vector field.

A velocity field holds the x (column direction) and y (row direction)
components of estimated motion on a (row, column, time, trial) grid. It is
an explicit vector type rather than a complex array, but keeps the
"real part, imaginary part, angle" reading used downstream through
``x``, ``y`` and ``angle()``.
"""

import numpy as np
import xarray as xr

__all__ = ['VelocityField']

DIMS = ("row", "col", "time", "trial")


class VelocityField:
    """Immutable (x, y) velocity field.

    Parameters
    ----------
    x, y : np.ndarray
        Real arrays of identical shape (row, column, time, trial). They are
        copied and made read-only.

    Examples
    --------
    >>> field = VelocityField(vx, vy)
    >>> speed = field.magnitude()
    >>> direction = field.angle()
    >>> trial0 = field.trial(0)
    """

    __slots__ = ("_x", "_y")

    def __init__(self, x: np.ndarray, y: np.ndarray):
        x = np.array(x, dtype=np.float64)
        y = np.array(y, dtype=np.float64)
        if x.shape != y.shape:
            raise ValueError(f"x and y shapes differ: {x.shape} vs {y.shape}")
        if x.ndim != 4:
            raise ValueError(f"velocity field must be 4D (row, col, time, trial), got {x.ndim}D")
        x.flags.writeable = False
        y.flags.writeable = False
        self._x = x
        self._y = y

    @classmethod
    def from_trials(cls, trials_x: list, trials_y: list) -> "VelocityField":
        """Stack per-trial (row, col, time) components along a trial axis."""
        return cls(np.stack(trials_x, axis=-1), np.stack(trials_y, axis=-1))

    @property
    def x(self) -> np.ndarray:
        return self._x

    @property
    def y(self) -> np.ndarray:
        return self._y

    @property
    def shape(self) -> tuple:
        return self._x.shape

    @property
    def n_time(self) -> int:
        return self._x.shape[2]

    @property
    def n_trials(self) -> int:
        return self._x.shape[3]

    def magnitude(self) -> np.ndarray:
        """Speed at every cell."""
        return np.hypot(self._x, self._y)

    def angle(self) -> np.ndarray:
        """Direction in radians, ``atan2(y, x)``."""
        return np.arctan2(self._y, self._x)

    def trial(self, index: int) -> tuple:
        """(x, y) components of one trial, each (row, col, time)."""
        return self._x[..., index], self._y[..., index]

    def as_complex(self) -> np.ndarray:
        """``x + i*y`` for consumers that need a complex array (e.g. SVD)."""
        return self._x + 1j * self._y

    def to_dataset(self) -> xr.Dataset:
        """Labelled xarray view with ``vx`` and ``vy`` variables."""
        return xr.Dataset(
            {
                "vx": (DIMS, self._x, {"long_name": "velocity, column direction"}),
                "vy": (DIMS, self._y, {"long_name": "velocity, row direction"}),
            },
            coords={dim: np.arange(n) for dim, n in zip(DIMS, self.shape)},
        )

    def __repr__(self) -> str:
        return f"VelocityField(shape={self.shape})"
