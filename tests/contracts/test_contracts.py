"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, without defensive logic downstream.
"""

import pytest
import pandas as pd
import numpy as np

pytestmark = pytest.mark.unit

from neuropatt.contracts import (
    AdapterFailure,
    ContractViolation,
    InvalidShapeError,
    NeuroPattError,
    VocabularyMismatchError,
    assert_pattern_table,
    assert_recording,
    assert_transition_counts,
    assert_velocity_field,
    require,
    require_adapter,
)
from neuropatt.contracts.invariants import PIPELINE_INVARIANTS, STAGE_REQUIREMENTS
from neuropatt.flow import VelocityField


class TestFailureTypes:
    """Error taxonomy."""

    def test_invalid_shape_is_value_error(self):
        assert issubclass(InvalidShapeError, ValueError)
        assert issubclass(InvalidShapeError, NeuroPattError)

    def test_adapter_failure_is_contract_violation(self):
        assert issubclass(AdapterFailure, ContractViolation)
        assert issubclass(ContractViolation, RuntimeError)

    def test_adapter_failure_carries_stage_and_trial(self):
        err = AdapterFailure("optical_flow", "diverged", trial=2)
        assert err.stage == "optical_flow"
        assert err.trial == 2
        assert "optical_flow" in str(err)
        assert "trial 2" in str(err)

    def test_adapter_failure_without_trial(self):
        err = AdapterFailure("transform", "bad output")
        assert err.trial is None
        assert "trial" not in str(err)

    def test_vocabulary_mismatch_names_trial(self):
        err = VocabularyMismatchError(3, ["a", "b"], ["a", "c"])
        assert err.trial == 3
        assert err.expected == ("a", "b")
        assert err.found == ("a", "c")
        assert "trial 3" in str(err)


class TestRequire:

    def test_require_passes(self):
        require(True, "never raised")

    def test_require_raises(self):
        with pytest.raises(ContractViolation, match="broken"):
            require(False, "broken")

    def test_require_adapter_raises_adapter_failure(self):
        with pytest.raises(AdapterFailure) as exc_info:
            require_adapter(False, "pattern_extraction", "bad table", trial=1)
        assert exc_info.value.stage == "pattern_extraction"
        assert exc_info.value.trial == 1


class TestRecordingContract:
    """Input tensor contract."""

    def test_accepts_3d_and_4d(self):
        assert_recording(np.zeros((2, 2, 5)))
        assert_recording(np.zeros((2, 2, 5, 3)))

    def test_rejects_2d(self):
        with pytest.raises(InvalidShapeError, match="2 axes"):
            assert_recording(np.zeros((4, 4)))

    def test_rejects_5d(self):
        with pytest.raises(InvalidShapeError, match="at most 4"):
            assert_recording(np.zeros((2, 2, 5, 2, 2)))

    def test_rejects_single_time_sample(self):
        with pytest.raises(InvalidShapeError, match="1 samples"):
            assert_recording(np.zeros((4, 4, 1, 2)))

    def test_rejects_complex(self):
        with pytest.raises(InvalidShapeError, match="real"):
            assert_recording(np.zeros((2, 2, 5), dtype=complex))


class TestVelocityContract:

    def test_passes_with_matching_shape(self):
        field = VelocityField(np.zeros((3, 3, 9, 2)), np.zeros((3, 3, 9, 2)))
        assert_velocity_field(field, (3, 3, 10, 2))

    def test_fails_with_wrong_time_extent(self):
        field = VelocityField(np.zeros((3, 3, 10, 2)), np.zeros((3, 3, 10, 2)))
        with pytest.raises(ContractViolation, match="expected"):
            assert_velocity_field(field, (3, 3, 10, 2))


class TestPatternContract:
    """Pattern table contract."""

    def _table(self, rows):
        return pd.DataFrame(rows, columns=["type", "start_time", "end_time"])

    def test_passes_with_valid_table(self):
        table = self._table([(0, 0, 3), (1, 2, 5)])
        assert_pattern_table(table, [None, None], n_types=2, n_timesteps=10, trial=0)

    def test_passes_with_empty_table(self):
        assert_pattern_table(self._table([]), [], n_types=2, n_timesteps=10, trial=0)

    def test_fails_without_type_column(self):
        table = pd.DataFrame({"start_time": [0], "end_time": [1]})
        with pytest.raises(AdapterFailure, match="missing column 'type'"):
            assert_pattern_table(table, [None], n_types=2, n_timesteps=10, trial=0)

    def test_fails_with_unknown_type(self):
        table = self._table([(2, 0, 3)])
        with pytest.raises(AdapterFailure, match="type outside"):
            assert_pattern_table(table, [None], n_types=2, n_timesteps=10, trial=4)

    def test_fails_when_end_before_start(self):
        table = self._table([(0, 5, 3)])
        with pytest.raises(AdapterFailure, match="end before start"):
            assert_pattern_table(table, [None], n_types=2, n_timesteps=10, trial=0)

    def test_fails_with_location_count_mismatch(self):
        table = self._table([(0, 0, 3)])
        with pytest.raises(AdapterFailure, match="locations"):
            assert_pattern_table(table, [], n_types=2, n_timesteps=10, trial=0)

    def test_fails_with_non_dataframe(self):
        with pytest.raises(AdapterFailure, match="expected DataFrame"):
            assert_pattern_table([(0, 0, 1)], [None], n_types=2, n_timesteps=10, trial=0)


class TestTransitionContract:

    def test_passes_with_matching_shapes(self):
        arr = np.zeros((3, 3, 2))
        assert_transition_counts(arr, arr, n_types=3, n_trials=2)

    def test_fails_with_wrong_shape(self):
        with pytest.raises(AdapterFailure, match="shape"):
            assert_transition_counts(np.zeros((3, 3, 1)), np.zeros((3, 3, 2)), 3, 2)

    def test_fails_with_negative_counts(self):
        observed = np.zeros((2, 2, 1))
        observed[0, 1, 0] = -1
        with pytest.raises(AdapterFailure, match="negative"):
            assert_transition_counts(observed, np.zeros((2, 2, 1)), 2, 1)


def test_invariants_cover_every_stage():
    for stage in ("recording", "preprocess", "transform", "velocity", "patterns", "transitions"):
        assert PIPELINE_INVARIANTS[stage]
    assert set(PIPELINE_INVARIANTS) <= set(STAGE_REQUIREMENTS)
