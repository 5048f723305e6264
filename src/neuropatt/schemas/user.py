"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts the flat parameter names used by the NeuroPatt MATLAB
toolbox (e.g. ``zscoreChannels``, ``opAlpha``, ``nSVDmodes``) as well as
their snake_case equivalents, plus nested section overrides for advanced
users.

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults.
"""

from typing import Any, Optional
from pydantic import Field, field_validator
from neuropatt.schemas.base import NeuroPattBaseModel


class UserConfig(NeuroPattBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(
            zscoreChannels=True,
            opAlpha=0.5,
            opBeta=10,
            nSVDmodes=4,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Preprocessing
    zscore_channels: Optional[bool] = Field(None, alias="zscoreChannels")
    subtract_baseline: Optional[bool] = Field(None, alias="subtractBaseline")

    # Transform
    use_hilbert: Optional[bool] = Field(None, alias="useHilbert")
    morlet_cfreq: Optional[float] = Field(None, alias="morletCfreq")
    morlet_param: Optional[float] = Field(None, alias="morletParam")

    # Optical flow
    op_alpha: Optional[float] = Field(None, alias="opAlpha")
    op_beta: Optional[float] = Field(None, alias="opBeta")
    use_amplitude: Optional[bool] = Field(None, alias="useAmplitude")

    # Pattern detection
    plane_wave_threshold: Optional[float] = Field(None, alias="planeWaveThreshold")
    synchrony_threshold: Optional[float] = Field(None, alias="synchronyThreshold")
    min_duration_secs: Optional[float] = Field(None, alias="minDurationSecs")
    max_displacement: Optional[float] = Field(None, alias="maxDisplacement")
    min_edge_distance: Optional[int] = Field(None, alias="minEdgeDistance")

    # Visualization
    perform_svd: Optional[bool] = Field(None, alias="performSVD")
    n_svd_modes: Optional[int] = Field(None, alias="nSVDmodes")
    use_complex_svd: Optional[bool] = Field(None, alias="useComplexSVD")

    # Nested overrides (advanced users)
    preprocess: Optional[dict[str, Any]] = None
    transform: Optional[dict[str, Any]] = None
    flow: Optional[dict[str, Any]] = None
    patterns: Optional[dict[str, Any]] = None
    transitions: Optional[dict[str, Any]] = None
    visualization: Optional[dict[str, Any]] = None
    output: Optional[dict[str, Any]] = None
    processing: Optional[dict[str, Any]] = None

    model_config = NeuroPattBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator(
        "morlet_cfreq", "morlet_param", "op_alpha", "op_beta",
        "plane_wave_threshold", "synchrony_threshold",
        "min_duration_secs", "max_displacement",
        mode="before",
    )
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator(
        "zscore_channels", "subtract_baseline", "use_hilbert", "use_amplitude",
        "perform_svd", "use_complex_svd",
        mode="before",
    )
    @classmethod
    def coerce_flags(cls, v):
        """Accept MATLAB style 0/1 flags."""
        if isinstance(v, int) and not isinstance(v, bool) and v in (0, 1):
            return bool(v)
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Flat fields are applied first; explicit nested sections win.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        flat_map = {
            "preprocess": {
                "zscore_channels": self.zscore_channels,
                "subtract_baseline": self.subtract_baseline,
            },
            "transform": {
                "morlet_cfreq": self.morlet_cfreq,
                "morlet_param": self.morlet_param,
            },
            "flow": {
                "op_alpha": self.op_alpha,
                "op_beta": self.op_beta,
                "use_amplitude": self.use_amplitude,
            },
            "patterns": {
                "plane_wave_threshold": self.plane_wave_threshold,
                "synchrony_threshold": self.synchrony_threshold,
                "min_duration_secs": self.min_duration_secs,
                "max_displacement": self.max_displacement,
                "min_edge_distance": self.min_edge_distance,
            },
            "visualization": {
                "perform_svd": self.perform_svd,
                "n_svd_modes": self.n_svd_modes,
                "use_complex_svd": self.use_complex_svd,
            },
        }
        if self.use_hilbert is not None:
            flat_map["transform"]["method"] = "hilbert" if self.use_hilbert else "morlet"

        overrides = {}
        for section, values in flat_map.items():
            section_overrides = {k: v for k, v in values.items() if v is not None}
            if section_overrides:
                overrides[section] = section_overrides

        for section in ("preprocess", "transform", "flow", "patterns", "transitions",
                        "visualization", "output", "processing"):
            nested = getattr(self, section)
            if nested:
                merged = overrides.get(section, {})
                merged.update(nested)
                overrides[section] = merged

        return overrides
