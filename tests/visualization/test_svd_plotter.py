"""SVD mode decomposition and figure output."""

import logging

import numpy as np
import pytest

from neuropatt.flow import VelocityField
from neuropatt.visualization import SVDModes, SVDPlotter, compute_svd_modes

pytestmark = pytest.mark.unit


@pytest.fixture
def rank_one_field():
    """x is one spatial pattern times one time course per trial; y is zero."""
    pattern = np.arange(1.0, 13.0).reshape(3, 4)
    course = np.sin(np.linspace(0, 2 * np.pi, 10))[:, None] * np.array([1.0, 2.0])
    x = pattern[:, :, None, None] * course[None, None, :, :]
    return VelocityField(x, np.zeros_like(x))


class TestComputeSVDModes:

    def test_shapes(self, rank_one_field):
        modes = compute_svd_modes(rank_one_field, n_modes=3)
        assert isinstance(modes, SVDModes)
        assert modes.n_modes == 3
        assert modes.spatial_x.shape == (3, 3, 4)
        assert modes.spatial_y.shape == (3, 3, 4)
        assert modes.time_courses.shape == (3, 2, 10)

    def test_rank_one_field_has_one_mode(self, rank_one_field):
        modes = compute_svd_modes(rank_one_field, n_modes=3)
        assert modes.explained[0] == pytest.approx(1.0)
        np.testing.assert_allclose(modes.spatial_y[0], 0.0, atol=1e-12)

        rebuilt = modes.spatial_x[0][:, :, None, None] * modes.time_courses[0].T[None, None]
        np.testing.assert_allclose(rebuilt, rank_one_field.x, atol=1e-10)

    def test_complex_mode(self, rank_one_field):
        modes = compute_svd_modes(rank_one_field, n_modes=2, use_complex=True)
        assert modes.spatial_x.shape == (2, 3, 4)
        assert modes.explained[0] == pytest.approx(1.0)

    def test_modes_clipped_to_rank_bound(self):
        x = np.ones((2, 2, 3, 1))
        modes = compute_svd_modes(VelocityField(x, x), n_modes=10)
        assert modes.n_modes == 3

    def test_zero_field_explains_nothing(self):
        x = np.zeros((2, 2, 4, 2))
        modes = compute_svd_modes(VelocityField(x, x), n_modes=2)
        np.testing.assert_array_equal(modes.explained, 0.0)


class TestSVDPlotter:

    def test_figure_saved(self, make_config, temp_dir, rank_one_field):
        config = make_config(nSVDmodes=2, visualization={"output_dir": str(temp_dir)})
        path = SVDPlotter(config)(rank_one_field, fs=100.0)

        assert path is not None
        assert path.endswith(".png")
        assert (temp_dir / path.rsplit("/", 1)[-1]).exists()

    def test_pdf_format(self, make_config, temp_dir, rank_one_field):
        config = make_config(visualization={"output_dir": str(temp_dir), "output_format": "pdf"})
        path = SVDPlotter(config)(rank_one_field, fs=100.0)
        assert path.endswith(".pdf")

    def test_failure_returns_none(self, make_config, temp_dir, caplog):
        config = make_config(visualization={"output_dir": str(temp_dir)})
        with caplog.at_level(logging.ERROR):
            assert SVDPlotter(config)(None, fs=100.0) is None
        assert "Failed to plot SVD modes" in caplog.text
        assert list(temp_dir.iterdir()) == []
