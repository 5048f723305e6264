"""VelocityField vector type."""

import numpy as np
import pytest

from neuropatt.flow import VelocityField

pytestmark = pytest.mark.unit


@pytest.fixture
def field():
    x = np.full((2, 3, 4, 2), 3.0)
    y = np.full((2, 3, 4, 2), 4.0)
    return VelocityField(x, y)


def test_accessors(field):
    assert field.shape == (2, 3, 4, 2)
    assert field.n_time == 4
    assert field.n_trials == 2
    np.testing.assert_allclose(field.magnitude(), 5.0)
    np.testing.assert_allclose(field.angle(), np.arctan2(4.0, 3.0))
    np.testing.assert_allclose(field.as_complex(), 3.0 + 4.0j)


def test_trial_slice(field):
    x, y = field.trial(1)
    assert x.shape == (2, 3, 4)
    assert y[0, 0, 0] == 4.0


def test_arrays_are_read_only(field):
    with pytest.raises(ValueError):
        field.x[0, 0, 0, 0] = 1.0


def test_constructor_copies_input():
    x = np.zeros((1, 1, 2, 1))
    field = VelocityField(x, x)
    x[0, 0, 0, 0] = 9.0
    assert field.x[0, 0, 0, 0] == 0.0


def test_shape_mismatch_rejected():
    with pytest.raises(ValueError, match="differ"):
        VelocityField(np.zeros((1, 1, 2, 1)), np.zeros((1, 1, 3, 1)))


def test_non_4d_rejected():
    with pytest.raises(ValueError, match="4D"):
        VelocityField(np.zeros((2, 2, 2)), np.zeros((2, 2, 2)))


def test_from_trials_stacks_last_axis():
    trials = [np.full((2, 2, 3), float(i)) for i in range(3)]
    field = VelocityField.from_trials(trials, trials)
    assert field.shape == (2, 2, 3, 3)
    assert field.x[0, 0, 0, 2] == 2.0


def test_to_dataset(field):
    ds = field.to_dataset()
    assert set(ds.data_vars) == {"vx", "vy"}
    assert ds["vx"].dims == ("row", "col", "time", "trial")
    assert ds.sizes["time"] == 4
