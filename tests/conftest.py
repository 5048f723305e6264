"""Root-level pytest fixtures for the NeuroPatt test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture. All tests must use these fixtures instead of creating raw
dict configs.
"""

import logging

import pytest
from pathlib import Path
import tempfile
import shutil

import numpy as np

from neuropatt.schemas import ParamConfig, UserConfig, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using make_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Examples
    --------
    >>> def test_estimator_init(internal_config):
    ...     est = OpticalFlowEstimator(internal_config)
    ...     assert est.method == "horn_schunck"
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs (flat
    camelCase names or nested sections).

    Examples
    --------
    >>> def test_custom_alpha(make_config):
    ...     config = make_config(opAlpha=2)
    ...     assert config.flow.op_alpha == 2.0
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


@pytest.fixture
def quiet_config(make_config, temp_dir):
    """Config with figures suppressed, for pipeline runs."""
    return make_config(
        output={"suppress_figures": True},
        visualization={"output_dir": str(temp_dir)},
    )


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def zero_recording():
    """All-zero 4x4x50x3 recording; every channel is invalid."""
    return np.zeros((4, 4, 50, 3))


@pytest.fixture
def random_recording(rng):
    """Small noisy recording (row, col, time, trial)."""
    return rng.standard_normal((5, 5, 40, 2))


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def restore_root_logging(monkeypatch):
    """Root logger whose handlers and level are restored after the test.

    Use for anything that calls ``setup_logging``.
    """
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
