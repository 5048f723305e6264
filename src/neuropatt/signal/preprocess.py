"""Normalize recordings and flag invalid channels.

The recording is a (row, column, time, trial) tensor. Baseline removal and
z-scoring act per spatial location and trial along the time axis. Invalid
channels are those with a NaN anywhere, or whose signal never changes
across the whole time x trial extent; they are flagged, not removed, so the
optical flow solver can interpolate across them.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np
import xarray as xr

from neuropatt.contracts import assert_recording

if TYPE_CHECKING:
    from neuropatt.schemas.internal import InternalPreprocessConfig

__all__ = ['TIME_AXIS', 'as_recording', 'find_bad_channels', 'preprocess']

logger = logging.getLogger(__name__)

# Time is always the third axis
TIME_AXIS = 2


def as_recording(data) -> np.ndarray:
    """Return the recording as a float64 4D array (row, column, time, trial).

    Accepts numpy arrays and xarray DataArrays. A 3D tensor is treated as a
    single trial. The input is never modified.

    Raises
    ------
    InvalidShapeError
        If the tensor has the wrong rank or fewer than 2 time samples.
    """
    if isinstance(data, xr.DataArray):
        data = data.values
    data = np.asarray(data)
    assert_recording(data)

    data = data.astype(np.float64, copy=True)
    if data.ndim == 3:
        data = data[..., np.newaxis]
    return data


def find_bad_channels(data: np.ndarray) -> np.ndarray:
    """Flat (row-major) indices of channels that must be interpolated over.

    Parameters
    ----------
    data : np.ndarray
        4D recording (row, column, time, trial).

    Returns
    -------
    np.ndarray
        Sorted int array of ``row * n_cols + col`` indices.
    """
    n_rows, n_cols = data.shape[:2]
    flat = data.reshape(n_rows, n_cols, -1)

    nan_chans = np.isnan(flat).any(axis=-1)
    # NaN channels are already flagged; compare only finite values here
    with np.errstate(invalid='ignore'):
        const_chans = np.all(flat == flat[..., :1], axis=-1)

    bad = np.flatnonzero(nan_chans | const_chans)
    logger.debug("Bad channels: %d NaN, %d constant, %d total",
                 int(nan_chans.sum()), int(const_chans.sum()), bad.size)
    return bad


def preprocess(data, options: "InternalPreprocessConfig"):
    """Optionally center / z-score channels, then find invalid channels.

    Baseline subtraction always happens before the variance division, so
    the z-score denominator is computed from centered data. Standard
    deviation is the sample standard deviation (ddof=1).

    Parameters
    ----------
    data : np.ndarray or xr.DataArray
        Recording (row, column, time[, trial]).
    options : InternalPreprocessConfig
        ``zscore_channels`` and ``subtract_baseline`` flags.

    Returns
    -------
    adjusted : np.ndarray
        4D float64 copy of the (possibly) normalized recording.
    bad_channels : np.ndarray
        Flat spatial indices of invalid channels.

    Raises
    ------
    InvalidShapeError
        If the tensor has fewer than 3 axes or fewer than 2 time samples.
    """
    adjusted = as_recording(data)

    if options.zscore_channels or options.subtract_baseline:
        adjusted -= adjusted.mean(axis=TIME_AXIS, keepdims=True)

    if options.zscore_channels:
        # Constant channels become 0/0 = NaN and are flagged below
        with np.errstate(invalid='ignore', divide='ignore'):
            adjusted /= adjusted.std(axis=TIME_AXIS, ddof=1, keepdims=True)

    bad_channels = find_bad_channels(adjusted)
    return adjusted, bad_channels
