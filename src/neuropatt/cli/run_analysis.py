"""Core NeuroPatt analysis runner.

This module contains the command-line runner, separated from argument
parsing so it can be called from scripts and notebooks as well.
"""

import argparse
import importlib.util
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import xarray as xr

from neuropatt.pipeline.orchestrator import analyze_recording, setup_logging
from neuropatt.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig

__all__ = ['load_user_config_dict', 'load_recording', 'run_analysis', 'main']

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def load_recording(path: str):
    """Load a recording from ``.npy`` or netCDF (``.nc``).

    netCDF files must hold a single data variable with dimensions
    (row, col, time[, trial]).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recording not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".npy":
        return np.load(path)
    if suffix in (".nc", ".nc4", ".netcdf"):
        with xr.open_dataarray(path) as da:
            return da.load()
    raise ValueError(f"Unsupported recording format: {path.suffix} (expected .npy or .nc)")


def run_analysis(
    recording_path: str,
    fs: float,
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    output_path: Optional[str] = None,
    verbose: bool = False,
):
    """Run the pattern analysis on one recording file.

    1. Loads and resolves configuration (Param < User < CLI)
    2. Sets up logging
    3. Loads the recording and runs ``analyze_recording``
    4. Prints the transition summary and optionally writes it to netCDF

    Parameters
    ----------
    recording_path : str
        ``.npy`` or netCDF recording.
    fs : float
        Sampling rate in Hz.
    user_config_path : str, optional
        Python file with a CONFIG dict.
    cli_args : dict, optional
        CLI overrides. Keys: only_patterns, suppress_figures, n_workers,
        output_dir, log_level, log_file. All optional.
    output_path : str, optional
        Where to write the transition dataset.
    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    PatternAnalysisResult

    Examples
    --------
    ::

        run_analysis("lfp.npy", fs=1017.0, user_config_path="scripts/user_config.py")
    """
    param_cfg = ParamConfig()

    user_cfg = UserConfig()
    if user_config_path:
        user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = resolve_config(param_cfg, user_cfg, cli_cfg)
    setup_logging(config.logging.level, config.logging.log_file)

    print(f"\n{'='*60}")
    print("NeuroPatt Pattern Analysis")
    print('='*60)
    print(f"Recording: {recording_path}")
    print(f"Config:    {user_config_path or '(defaults)'}")
    print(f"Fs:        {fs} Hz")
    print(f"Workers:   {config.processing.n_workers}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('='*60)

    data = load_recording(recording_path)
    result = analyze_recording(data, fs, config=config)

    print(f"\nBad channels: {result.bad_channels.tolist()}")
    print(f"Mean optical flow steps: {result.mean_convergence_steps:.1f}")
    print(f"Patterns per trial: {[len(p) for p in result.patterns]}")
    print("\nPattern transitions (observed vs expected):")
    print(result.summary_frame().to_string(float_format=lambda v: f"{v:.4g}"))

    if output_path:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        result.transition_stats.to_dataset().to_netcdf(out)
        logger.info("Transition statistics written: %s", out)

    return result


def main(argv=None):
    parser = argparse.ArgumentParser(description="Detect wave patterns in a neural recording")
    parser.add_argument("recording", help="Recording file (.npy or .nc), (row, col, time[, trial])")
    parser.add_argument("--fs", type=float, required=True, help="Sampling rate in Hz")
    parser.add_argument("--config", help="Path to user config file (Python, CONFIG dict)")
    parser.add_argument("--output", help="Write transition statistics to this netCDF file")
    parser.add_argument("--output-dir", help="Directory for figures")
    parser.add_argument("--only-patterns", action="store_true",
                        help="Drop filtered signal and velocity fields from the result")
    parser.add_argument("--suppress-figures", action="store_true", help="Do not produce figures")
    parser.add_argument("--workers", type=int, help="Trials processed concurrently")
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    cli_args = {
        "only_patterns": True if args.only_patterns else None,
        "suppress_figures": True if args.suppress_figures else None,
        "n_workers": args.workers,
        "output_dir": args.output_dir,
        "log_file": args.log_file,
    }
    run_analysis(
        args.recording,
        args.fs,
        user_config_path=args.config,
        cli_args=cli_args,
        output_path=args.output,
        verbose=args.verbose,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
