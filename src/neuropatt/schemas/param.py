"""ParamConfig: Expert defaults for the NeuroPatt pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from neuropatt.schemas.base import NeuroPattBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class PreprocessConfig(NeuroPattBaseModel):
    """Channel normalization before filtering."""
    zscore_channels: bool = False
    subtract_baseline: bool = False


class TransformConfig(NeuroPattBaseModel):
    """Time-frequency transform configuration."""
    method: Literal["morlet", "hilbert"] = "morlet"
    morlet_cfreq: float = Field(6.0, gt=0, description="Wavelet centre frequency in Hz")
    morlet_param: float = Field(5.0, gt=0, description="Wavelet width in cycles")
    hilbert_band: tuple[float, float] = (4.0, 8.0)
    hilbert_order: int = Field(4, ge=1)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method_name(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @model_validator(mode="after")
    def check_band(self):
        """Band edges must be increasing."""
        low, high = self.hilbert_band
        if not 0 < low < high:
            raise ValueError(f"hilbert_band must satisfy 0 < low < high, got {self.hilbert_band}")
        return self


class FarnebackConfig(NeuroPattBaseModel):
    """OpenCV Farneback optical flow parameters."""
    pyr_scale: float = Field(0.5, gt=0, lt=1.0)
    levels: int = Field(1, ge=1)
    winsize: int = Field(3, ge=1)
    iterations: int = Field(3, ge=1)
    poly_n: int = Field(5, ge=5)
    poly_sigma: float = Field(1.1, gt=0)
    flags: int = 0


class FlowConfig(NeuroPattBaseModel):
    """Optical flow estimation configuration."""
    method: Literal["horn_schunck", "farneback"] = "horn_schunck"
    op_alpha: float = Field(0.5, gt=0, description="Smoothness weight")
    op_beta: float = Field(10.0, gt=0, description="Charbonnier penalty scale")
    use_amplitude: bool = False
    max_iterations: int = Field(1000, ge=1)
    tolerance: float = Field(1e-3, gt=0)
    farneback: FarnebackConfig = Field(default_factory=FarnebackConfig)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method_name(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class PatternConfig(NeuroPattBaseModel):
    """Pattern detection thresholds."""
    plane_wave_threshold: float = Field(0.85, gt=0, le=1.0)
    synchrony_threshold: float = Field(0.85, gt=0, le=1.0)
    min_duration_secs: float = Field(0.02, ge=0)
    max_displacement: float = Field(1.0, gt=0, description="Grid cells per step")
    min_edge_distance: int = Field(2, ge=0)


class TransitionConfig(NeuroPattBaseModel):
    """Transition search windows as fractions of the sampling rate."""
    after_fraction: float = Field(0.05, ge=0)
    before_fraction: float = Field(0.01, ge=0)


class VisualizationConfig(NeuroPattBaseModel):
    """SVD visualization settings."""
    perform_svd: bool = True
    n_svd_modes: int = Field(6, ge=1)
    use_complex_svd: bool = False
    output_dir: str = "."
    dpi: int = Field(150, ge=50)
    output_format: Literal["png", "pdf", "jpeg"] = "png"


class OutputConfig(NeuroPattBaseModel):
    """Result assembly settings."""
    only_patterns: bool = False
    suppress_figures: bool = False


class ProcessingConfig(NeuroPattBaseModel):
    """Per-trial scheduling."""
    n_workers: int = Field(1, ge=1, le=64)


class LoggingConfig(NeuroPattBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(NeuroPattBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    preprocess: PreprocessConfig = Field(default_factory=PreprocessConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    flow: FlowConfig = Field(default_factory=FlowConfig)
    patterns: PatternConfig = Field(default_factory=PatternConfig)
    transitions: TransitionConfig = Field(default_factory=TransitionConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
