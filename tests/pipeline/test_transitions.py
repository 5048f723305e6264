"""Transition statistics: rates, fractional change, paired tests."""

import warnings

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from neuropatt.contracts import AdapterFailure, UndefinedStatistic
from neuropatt.pipeline.transitions import (
    TransitionStatistics,
    analyze_transitions,
    bonferroni,
    fractional_change,
    paired_pvalues,
    paired_ttest,
    rate_difference,
    transition_windows,
)
from tests.helpers.fake_adapters import FAKE_TYPES, FixedCounter

pytestmark = pytest.mark.unit


def _empty_tables(n_trials):
    return [pd.DataFrame(columns=["type", "start_time", "end_time"]) for _ in range(n_trials)]


class TestWindows:

    def test_defaults_at_1khz(self, internal_config):
        assert transition_windows(1000.0, internal_config.transitions) == (50, 10)

    def test_half_rounds_up(self, internal_config):
        # 0.05 * 30 = 1.5 and 0.01 * 50 = 0.5
        assert transition_windows(30.0, internal_config.transitions)[0] == 2
        assert transition_windows(50.0, internal_config.transitions)[1] == 1


class TestRateDifference:

    def test_known_value(self):
        result = rate_difference(np.array([[4.0]]), np.array([[2.0]]), n_timesteps=100, fs=1000.0)
        assert result[0, 0] == pytest.approx(20.0)

    def test_equal_counts_give_zero(self):
        obs = np.full((2, 2, 3), 5.0)
        np.testing.assert_array_equal(rate_difference(obs, obs, 10, 100.0), 0.0)


class TestFractionalChange:

    def test_mean_over_trials(self):
        observed = np.array([[[2.0, 6.0]]])
        expected = np.array([[[1.0, 2.0]]])
        np.testing.assert_allclose(fractional_change(observed, expected), [[1.5]])

    def test_zero_expected_cells_excluded_with_warning(self):
        observed = np.array([[[2.0, 5.0, 1.0]]])
        expected = np.array([[[1.0, 0.0, 1.0]]])
        with pytest.warns(UndefinedStatistic, match="1 transition cells"):
            result = fractional_change(observed, expected)
        assert result[0, 0] == pytest.approx(0.5)

    def test_cell_undefined_in_every_trial_is_nan(self):
        observed = np.zeros((1, 1, 2))
        expected = np.zeros((1, 1, 2))
        with pytest.warns(UndefinedStatistic):
            result = fractional_change(observed, expected)
        assert np.isnan(result[0, 0])

    def test_no_warning_when_defined(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            fractional_change(np.ones((2, 2, 2)), np.ones((2, 2, 2)))


class TestPairedTests:

    def test_identical_samples_give_p_one(self):
        a = np.array([3.0, 1.0, 4.0])
        assert paired_ttest(a, a.copy()) == 1.0

    def test_matches_scipy_ttest_rel(self):
        a = np.array([5.0, 7.0, 6.0, 9.0])
        b = np.array([4.0, 4.5, 6.5, 5.0])
        assert paired_ttest(a, b) == pytest.approx(stats.ttest_rel(a, b).pvalue)

    def test_pair_order_does_not_change_p(self):
        a = np.array([5.0, 7.0, 6.0, 9.0, 2.5])
        b = np.array([4.0, 4.5, 6.5, 5.0, 2.0])
        perm = [3, 0, 4, 2, 1]
        assert paired_ttest(a, b) == paired_ttest(a[perm], b[perm])

    def test_trial_permutation_invariance(self, rng):
        observed = rng.poisson(4, size=(3, 3, 6)).astype(float)
        expected = rng.uniform(1, 5, size=(3, 3, 6))
        perm = rng.permutation(6)
        np.testing.assert_array_equal(
            paired_pvalues(observed, expected),
            paired_pvalues(observed[:, :, perm], expected[:, :, perm]),
        )

    def test_injected_test_called_per_pair(self):
        seen = []

        def fake_test(a, b):
            seen.append((a.copy(), b.copy()))
            return 0.5

        pvals = paired_pvalues(np.ones((2, 2, 3)), np.zeros((2, 2, 3)), fake_test)
        assert len(seen) == 4
        np.testing.assert_array_equal(pvals, 0.5)


class TestBonferroni:

    def test_multiplies_by_number_of_cells(self):
        pvals = np.full((3, 3), 0.01)
        np.testing.assert_allclose(bonferroni(pvals), 0.09)

    def test_not_clamped(self):
        assert bonferroni(np.full((2, 2), 0.5))[0, 0] == 2.0


class TestAnalyzeTransitions:

    def test_equal_counts_have_p_one(self, internal_config):
        counts = np.full((2, 2, 3), 4.0)
        stats_ = analyze_transitions(
            _empty_tables(3), FAKE_TYPES, n_timesteps=100, fs=1000.0,
            config=internal_config.transitions, count_transitions=FixedCounter(counts, counts),
        )
        np.testing.assert_array_equal(stats_.pvalues, 1.0)
        np.testing.assert_array_equal(stats_.corrected_pvalues, 4.0)
        np.testing.assert_array_equal(stats_.rate_diff, 0.0)

    def test_rate_diff_known_value(self, internal_config):
        observed = np.full((2, 2, 2), 4.0)
        expected = np.full((2, 2, 2), 2.0)
        stats_ = analyze_transitions(
            _empty_tables(2), FAKE_TYPES, 100, 1000.0, internal_config.transitions,
            FixedCounter(observed, expected),
        )
        np.testing.assert_allclose(stats_.rate_diff, 20.0)
        np.testing.assert_allclose(stats_.fractional_change, 1.0)

    def test_counter_receives_windows(self, internal_config):
        counter = FixedCounter(np.zeros((2, 2, 1)), np.ones((2, 2, 1)))
        analyze_transitions(_empty_tables(1), FAKE_TYPES, 100, 1000.0, internal_config.transitions, counter)
        assert counter.calls == [(100, 50, 10)]

    def test_single_trial_skips_tests(self, internal_config):
        counter = FixedCounter(np.ones((2, 2, 1)), np.ones((2, 2, 1)))

        def never_called(a, b):
            raise AssertionError("paired test must not run with one trial")

        stats_ = analyze_transitions(_empty_tables(1), FAKE_TYPES, 100, 1000.0,
                                     internal_config.transitions, counter, never_called)
        assert stats_.pvalues is None
        assert stats_.corrected_pvalues is None

    def test_malformed_counts_rejected(self, internal_config):
        counter = FixedCounter(np.zeros((3, 3, 2)), np.zeros((3, 3, 2)))
        with pytest.raises(AdapterFailure) as exc_info:
            analyze_transitions(_empty_tables(2), FAKE_TYPES, 100, 1000.0, internal_config.transitions, counter)
        assert exc_info.value.stage == "transition_counting"


class TestTransitionStatistics:

    @pytest.fixture
    def stats_(self, internal_config):
        observed = np.arange(8.0).reshape(2, 2, 2) + 1
        expected = np.ones((2, 2, 2))
        return analyze_transitions(_empty_tables(2), FAKE_TYPES, 100, 1000.0,
                                   internal_config.transitions, FixedCounter(observed, expected))

    def test_dataset_coordinates_are_labels(self, stats_):
        ds = stats_.to_dataset()
        assert list(ds["initial_type"].values) == list(FAKE_TYPES)
        assert list(ds["next_type"].values) == list(FAKE_TYPES)
        assert ds.sizes["trial"] == 2
        assert ds.attrs["window_after"] == 50
        assert {"observed", "expected", "rate_diff", "fractional_change",
                "pvalue", "pvalue_bonferroni"} <= set(ds.data_vars)

    def test_dataset_without_pvalues(self, internal_config):
        counter = FixedCounter(np.ones((2, 2, 1)), np.ones((2, 2, 1)))
        stats_ = analyze_transitions(_empty_tables(1), FAKE_TYPES, 100, 1000.0,
                                     internal_config.transitions, counter)
        assert "pvalue" not in stats_.to_dataset()

    def test_summary_frame(self, stats_):
        frame = stats_.summary_frame()
        assert len(frame) == 4
        assert frame.loc[("wave_a", "wave_b"), "observed_mean"] == pytest.approx((3 + 4) / 2)
        assert "pvalue_bonferroni" in frame.columns

    def test_is_frozen(self, stats_):
        assert isinstance(stats_, TransitionStatistics)
        with pytest.raises(AttributeError):
            stats_.pvalues = None
