"""Collaborator interfaces consumed by the pipeline.

Every external collaborator is a plain callable (or object with
``report``) matching one of these protocols. Defaults live in
``neuropatt.signal``, ``neuropatt.flow``, ``neuropatt.patterns`` and
``neuropatt.visualization``; any of them can be replaced at construction
time of the pipeline.
"""

from typing import Protocol, Tuple

import numpy as np
import pandas as pd


class ProgressSink(Protocol):
    """Fire-and-forget progress notifications. Must never raise."""

    def report(self, message: str) -> None: ...


class Transform(Protocol):
    def __call__(self, data: np.ndarray, fs: float, center_frequency: float,
                 bandwidth_param: float, time_axis: int) -> np.ndarray: ...


class OpticalFlow(Protocol):
    def __call__(self, trial_coeffs: np.ndarray, bad_channels: np.ndarray,
                 alpha: float, beta: float,
                 phase_only: bool) -> Tuple[np.ndarray, np.ndarray, np.ndarray]: ...


class PatternExtractor(Protocol):
    def __call__(self, vx: np.ndarray, vy: np.ndarray, params,
                 phase: np.ndarray) -> Tuple[pd.DataFrame, list, list, list]: ...


class TransitionCounter(Protocol):
    def __call__(self, patterns_per_trial: list, n_timesteps: int,
                 window_after: int, window_before: int) -> Tuple[np.ndarray, np.ndarray]: ...


class PairedTest(Protocol):
    def __call__(self, sample_a: np.ndarray, sample_b: np.ndarray) -> float: ...


class Visualizer(Protocol):
    def __call__(self, field, fs: float) -> None: ...
