"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: output mode, figure suppression, worker count, verbosity.
"""

from typing import Literal, Optional
from pydantic import Field
from neuropatt.schemas.base import NeuroPattBaseModel


class CLIConfig(NeuroPattBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(only_patterns=True, n_workers=4)
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    only_patterns: Optional[bool] = None
    suppress_figures: Optional[bool] = None
    n_workers: Optional[int] = Field(None, ge=1)
    output_dir: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    log_file: Optional[str] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        output = {}
        if self.only_patterns is not None:
            output["only_patterns"] = self.only_patterns
        if self.suppress_figures is not None:
            output["suppress_figures"] = self.suppress_figures
        if output:
            overrides["output"] = output

        if self.n_workers is not None:
            overrides["processing"] = {"n_workers": self.n_workers}

        if self.output_dir is not None:
            overrides["visualization"] = {"output_dir": str(self.output_dir)}

        logging_cfg = {}
        if self.log_level is not None:
            logging_cfg["level"] = self.log_level
        if self.log_file is not None:
            logging_cfg["log_file"] = str(self.log_file)
        if logging_cfg:
            overrides["logging"] = logging_cfg

        return overrides
