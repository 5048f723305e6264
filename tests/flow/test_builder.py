"""Velocity field builder: per-trial loop and convergence tracking."""

import numpy as np
import pytest

from neuropatt.contracts import AdapterFailure
from neuropatt.flow import ConvergenceRecord, VelocityField, build_velocity_fields
from tests.helpers.fake_adapters import ConstantFlow, FailingFlow, TrialStepsFlow

pytestmark = pytest.mark.unit


@pytest.fixture
def coeffs(rng):
    shape = (3, 4, 10, 3)
    return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)


class TestBuildVelocityFields:

    def test_time_extent_is_one_shorter(self, coeffs, internal_config):
        field, _ = build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow, ConstantFlow())
        assert isinstance(field, VelocityField)
        assert field.shape == (3, 4, 9, 3)

    def test_components_come_from_adapter(self, coeffs, internal_config):
        field, _ = build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow,
                                         ConstantFlow(vx=2.0, vy=-1.0))
        np.testing.assert_array_equal(field.x, 2.0)
        np.testing.assert_array_equal(field.y, -1.0)

    def test_adapter_receives_trial_slice_and_params(self, coeffs, make_config):
        config = make_config(opAlpha=0.7, opBeta=3, useAmplitude=True)
        flow = ConstantFlow()
        bad = np.array([1, 5])
        build_velocity_fields(coeffs, bad, config.flow, flow)

        assert len(flow.calls) == 3
        call = flow.calls[0]
        assert call["shape"] == (3, 4, 10)
        np.testing.assert_array_equal(call["bad_channels"], bad)
        assert call["alpha"] == 0.7
        assert call["beta"] == 3.0
        assert call["phase_only"] is False

    def test_phase_only_by_default(self, coeffs, internal_config):
        flow = ConstantFlow()
        build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow, flow)
        assert all(call["phase_only"] for call in flow.calls)

    def test_convergence_is_mean_of_trial_means(self, coeffs, internal_config):
        steps = [np.full(9, 2.0), np.full(9, 4.0), np.arange(9.0)]
        field, convergence = build_velocity_fields(
            coeffs, np.array([], dtype=int), internal_config.flow, TrialStepsFlow(steps)
        )
        assert isinstance(convergence, ConvergenceRecord)
        np.testing.assert_allclose(convergence.trial_means, [2.0, 4.0, 4.0])
        assert convergence.mean == pytest.approx(10.0 / 3)

    def test_parallel_matches_sequential(self, coeffs, internal_config):
        from neuropatt.flow import OpticalFlowEstimator
        estimator = OpticalFlowEstimator(internal_config)
        bad = np.array([0])
        seq, seq_conv = build_velocity_fields(coeffs, bad, internal_config.flow, estimator, n_workers=1)
        par, par_conv = build_velocity_fields(coeffs, bad, internal_config.flow, estimator, n_workers=3)
        np.testing.assert_array_equal(seq.x, par.x)
        np.testing.assert_array_equal(seq.y, par.y)
        np.testing.assert_array_equal(seq_conv.trial_means, par_conv.trial_means)


class TestAdapterFailures:

    def test_adapter_exception_names_trial(self, coeffs, internal_config):
        with pytest.raises(AdapterFailure) as exc_info:
            build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow, FailingFlow(fail_on_call=1))
        assert exc_info.value.stage == "optical_flow"
        assert exc_info.value.trial == 1
        assert isinstance(exc_info.value.__cause__, np.linalg.LinAlgError)

    def test_wrong_shape_rejected(self, coeffs, internal_config):
        def bad_shape(trial_coeffs, bad_channels, alpha, beta, phase_only):
            n_rows, n_cols, n_time = trial_coeffs.shape
            return np.zeros((n_rows, n_cols, n_time)), np.zeros((n_rows, n_cols, n_time)), np.ones(n_time - 1)

        with pytest.raises(AdapterFailure, match="expected"):
            build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow, bad_shape)

    def test_wrong_step_count_rejected(self, coeffs, internal_config):
        def few_steps(trial_coeffs, bad_channels, alpha, beta, phase_only):
            n_rows, n_cols, n_time = trial_coeffs.shape
            v = np.zeros((n_rows, n_cols, n_time - 1))
            return v, v, np.ones(2)

        with pytest.raises(AdapterFailure, match="convergence entries"):
            build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow, few_steps)

    def test_non_finite_velocity_rejected(self, coeffs, internal_config):
        def diverged(trial_coeffs, bad_channels, alpha, beta, phase_only):
            n_rows, n_cols, n_time = trial_coeffs.shape
            v = np.zeros((n_rows, n_cols, n_time - 1))
            v[0, 0, 0] = np.inf
            return v, v, np.ones(n_time - 1)

        with pytest.raises(AdapterFailure, match="non-finite"):
            build_velocity_fields(coeffs, np.array([], dtype=int), internal_config.flow, diverged)
