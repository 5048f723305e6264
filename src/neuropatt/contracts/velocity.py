"""Velocity stage contract.

Enforces the guarantee that the velocity field matches the transform
coefficients it was estimated from, minus one time sample.
"""

import numpy as np

from neuropatt.contracts.base import require


def assert_velocity_field(field, coeffs_shape: tuple) -> None:
    """Enforce velocity stage contract.

    Called after build_velocity_fields().

    Parameters
    ----------
    field : VelocityField
        Output of the velocity field builder.
    coeffs_shape : tuple
        Shape of the transform coefficients (row, column, time, trial).

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    expected = (coeffs_shape[0], coeffs_shape[1], coeffs_shape[2] - 1, coeffs_shape[3])
    require(
        field.shape == expected,
        f"Velocity contract violated: field shape {field.shape}, expected {expected}"
    )
    require(
        np.isrealobj(field.x) and np.isrealobj(field.y),
        "Velocity contract violated: components must be real-valued"
    )
