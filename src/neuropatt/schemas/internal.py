"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully
validated, normalized, frozen, and contains explicit values for every
option the pipeline reads.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import ConfigDict
from neuropatt.schemas.base import NeuroPattBaseModel


class _FrozenModel(NeuroPattBaseModel):
    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,
    )


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalPreprocessConfig(_FrozenModel):
    """Runtime preprocessing options.

    - zscore_channels: per-location unit-variance normalization
    - subtract_baseline: per-location mean removal
    """
    zscore_channels: bool
    subtract_baseline: bool


class InternalTransformConfig(_FrozenModel):
    """Runtime transform configuration."""
    method: Literal["morlet", "hilbert"]
    morlet_cfreq: float
    morlet_param: float
    hilbert_band: tuple[float, float]
    hilbert_order: int


class InternalFarnebackConfig(_FrozenModel):
    """Runtime Farneback parameters (passed straight to OpenCV)."""
    pyr_scale: float
    levels: int
    winsize: int
    iterations: int
    poly_n: int
    poly_sigma: float
    flags: int


class InternalFlowConfig(_FrozenModel):
    """Runtime optical flow configuration.

    - op_alpha / op_beta: flow-solver regularization weights
    - use_amplitude: amplitude- vs phase-driven flow estimation
    """
    method: Literal["horn_schunck", "farneback"]
    op_alpha: float
    op_beta: float
    use_amplitude: bool
    max_iterations: int
    tolerance: float
    farneback: InternalFarnebackConfig


class InternalPatternConfig(_FrozenModel):
    """Runtime pattern detection thresholds."""
    plane_wave_threshold: float
    synchrony_threshold: float
    min_duration_secs: float
    max_displacement: float
    min_edge_distance: int


class InternalTransitionConfig(_FrozenModel):
    """Runtime transition windows."""
    after_fraction: float
    before_fraction: float


class InternalVisualizationConfig(_FrozenModel):
    """Runtime visualization settings.

    - perform_svd: enable the SVD visualization stage
    """
    perform_svd: bool
    n_svd_modes: int
    use_complex_svd: bool
    output_dir: str
    dpi: int
    output_format: Literal["png", "pdf", "jpeg"]


class InternalOutputConfig(_FrozenModel):
    """Runtime output options."""
    only_patterns: bool
    suppress_figures: bool


class InternalProcessingConfig(_FrozenModel):
    """Runtime scheduling options."""
    n_workers: int


class InternalLoggingConfig(_FrozenModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_file: Optional[str]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(_FrozenModel):
    """Authoritative runtime configuration.

    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.alpha = config.flow.op_alpha  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    preprocess: InternalPreprocessConfig
    transform: InternalTransformConfig
    flow: InternalFlowConfig
    patterns: InternalPatternConfig
    transitions: InternalTransitionConfig
    visualization: InternalVisualizationConfig
    output: InternalOutputConfig
    processing: InternalProcessingConfig
    logging: InternalLoggingConfig
