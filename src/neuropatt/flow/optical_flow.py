"""Estimate velocity vector fields between consecutive complex snapshots.

Velocity is estimated for each pair of consecutive time samples of one
trial's transform coefficients, so a trial with T samples yields T-1
velocity fields.

Two methods are available:

- ``horn_schunck`` (default): iterative Horn-Schunck with a Charbonnier
  robust data term. Driven by phase (wrapped phase differences) or by
  amplitude. Reports the iterations needed to converge at each step.
- ``farneback``: OpenCV dense Farneback flow on normalized 8-bit images.
  Reports the fixed iteration budget as convergence steps.

Bad channels are filled from their valid neighbours before derivatives
are taken, and carry no weight in the data term.
"""

import logging
from typing import TYPE_CHECKING

import cv2
import numpy as np
from scipy import ndimage

if TYPE_CHECKING:
    from neuropatt.schemas import InternalConfig

__all__ = ['OpticalFlowEstimator', 'fill_bad_channels']

logger = logging.getLogger(__name__)

# Horn-Schunck neighbourhood average (excludes the centre)
_AVG_KERNEL = np.array([
    [1 / 12, 1 / 6, 1 / 12],
    [1 / 6, 0.0, 1 / 6],
    [1 / 12, 1 / 6, 1 / 12],
])


def fill_bad_channels(frames: np.ndarray, bad_mask: np.ndarray) -> np.ndarray:
    """Replace bad channels with the mean of their valid 4-neighbours.

    Filling is repeated so that clusters of bad channels are filled from
    the outside in. Channels with no valid channel anywhere stay unchanged.

    Parameters
    ----------
    frames : np.ndarray
        (row, col, time) real or complex array.
    bad_mask : np.ndarray
        (row, col) boolean mask of bad channels.
    """
    filled = frames.copy()
    missing = bad_mask.copy()

    while missing.any():
        valid = ~missing
        total = np.zeros_like(filled)
        count = np.zeros(missing.shape)
        for axis, shift in ((0, 1), (0, -1), (1, 1), (1, -1)):
            neighbour_valid = _shift(valid, shift, axis)
            total += _shift(filled, shift, axis) * neighbour_valid[..., np.newaxis]
            count += neighbour_valid

        fillable = missing & (count > 0)
        if not fillable.any():
            break
        filled[fillable] = total[fillable] / count[fillable][:, np.newaxis]
        missing &= ~fillable

    return filled


def _shift(arr: np.ndarray, shift: int, axis: int) -> np.ndarray:
    """Shift without wrap-around; vacated cells are zero/False."""
    out = np.zeros_like(arr)
    src = [slice(None)] * arr.ndim
    dst = [slice(None)] * arr.ndim
    if shift > 0:
        src[axis] = slice(0, -shift)
        dst[axis] = slice(shift, None)
    else:
        src[axis] = slice(-shift, None)
        dst[axis] = slice(0, shift)
    out[tuple(dst)] = arr[tuple(src)]
    return out


def _phase_gradient(z: np.ndarray, axis: int) -> np.ndarray:
    """Spatial derivative of the phase of ``z`` using wrapped differences."""
    n = z.shape[axis]
    grad = np.zeros(z.shape)
    if n < 2:
        return grad

    fwd = np.angle(np.take(z, np.arange(1, n), axis=axis) *
                   np.conj(np.take(z, np.arange(0, n - 1), axis=axis)))
    index = [slice(None)] * z.ndim

    index[axis] = 0
    grad[tuple(index)] = np.take(fwd, 0, axis=axis)
    index[axis] = n - 1
    grad[tuple(index)] = np.take(fwd, n - 2, axis=axis)
    if n > 2:
        index[axis] = slice(1, n - 1)
        grad[tuple(index)] = 0.5 * (np.take(fwd, np.arange(0, n - 2), axis=axis) +
                                    np.take(fwd, np.arange(1, n - 1), axis=axis))
    return grad


def _amplitude_gradient(a: np.ndarray, axis: int) -> np.ndarray:
    if a.shape[axis] < 2:
        return np.zeros(a.shape)
    return np.gradient(a, axis=axis)


class OpticalFlowEstimator:
    """Per-trial optical flow adapter.

    Called as ``estimator(trial_coeffs, bad_channels, alpha, beta,
    phase_only)`` and returns ``(vx, vy, convergence_steps)`` where
    ``vx``/``vy`` have shape (row, col, time-1) and ``convergence_steps``
    has one entry per output time step.

    Horn-Schunck minimizes, per time step,

        sum(w * (Ix*u + Iy*v + It)**2) + alpha * sum(|grad u|**2 + |grad v|**2)

    with Charbonnier weights ``w = 1 / sqrt(1 + r**2 / beta**2)`` that are
    recomputed every iteration (r is the current residual). Each step is
    warm-started from the previous step's solution.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration. Reads ``config.flow``.

    Examples
    --------
    >>> estimator = OpticalFlowEstimator(config)
    >>> vx, vy, steps = estimator(coeffs[..., 0], bad, 0.5, 10.0, True)
    """

    def __init__(self, config: "InternalConfig"):
        self.method = config.flow.method
        self.max_iterations = config.flow.max_iterations
        self.tolerance = config.flow.tolerance
        fb = config.flow.farneback
        self.farneback_params = {
            "pyr_scale": fb.pyr_scale,
            "levels": fb.levels,
            "winsize": fb.winsize,
            "iterations": fb.iterations,
            "poly_n": fb.poly_n,
            "poly_sigma": fb.poly_sigma,
            "flags": fb.flags,
        }

    def __call__(self, trial_coeffs: np.ndarray, bad_channels: np.ndarray,
                 alpha: float, beta: float, phase_only: bool):
        """Estimate velocity between every pair of consecutive snapshots."""
        n_rows, n_cols, _ = trial_coeffs.shape
        bad_mask = np.zeros(n_rows * n_cols, dtype=bool)
        bad_mask[np.asarray(bad_channels, dtype=int)] = True
        bad_mask = bad_mask.reshape(n_rows, n_cols)

        frames = fill_bad_channels(trial_coeffs, bad_mask)

        if self.method == "horn_schunck":
            return self._horn_schunck(frames, bad_mask, alpha, beta, phase_only)
        elif self.method == "farneback":
            return self._farneback(frames, phase_only)
        else:
            raise ValueError(f"Unknown optical flow method: {self.method}")

    def _horn_schunck(self, frames, bad_mask, alpha, beta, phase_only):
        n_rows, n_cols, n_time = frames.shape
        vx = np.zeros((n_rows, n_cols, n_time - 1))
        vy = np.zeros((n_rows, n_cols, n_time - 1))
        steps = np.zeros(n_time - 1, dtype=int)
        good = (~bad_mask).astype(float)

        u = np.zeros((n_rows, n_cols))
        v = np.zeros((n_rows, n_cols))
        for t in range(n_time - 1):
            Ix, Iy, It = self._derivatives(frames[:, :, t], frames[:, :, t + 1], phase_only)
            u, v, steps[t] = self._solve(Ix, Iy, It, good, alpha, beta, u, v)
            vx[:, :, t] = u
            vy[:, :, t] = v

        logger.debug("Horn-Schunck: %d steps, mean %.1f iterations", n_time - 1, steps.mean())
        return vx, vy, steps

    @staticmethod
    def _derivatives(frame1, frame2, phase_only):
        if phase_only:
            Ix = 0.5 * (_phase_gradient(frame1, 1) + _phase_gradient(frame2, 1))
            Iy = 0.5 * (_phase_gradient(frame1, 0) + _phase_gradient(frame2, 0))
            It = np.angle(frame2 * np.conj(frame1))
        else:
            a1, a2 = np.abs(frame1), np.abs(frame2)
            Ix = 0.5 * (_amplitude_gradient(a1, 1) + _amplitude_gradient(a2, 1))
            Iy = 0.5 * (_amplitude_gradient(a1, 0) + _amplitude_gradient(a2, 0))
            It = a2 - a1
        return Ix, Iy, It

    def _solve(self, Ix, Iy, It, good, alpha, beta, u, v):
        """Iterate Horn-Schunck updates until the relative change is small."""
        u = u.copy()
        v = v.copy()
        for iteration in range(1, self.max_iterations + 1):
            u_avg = ndimage.convolve(u, _AVG_KERNEL, mode='nearest')
            v_avg = ndimage.convolve(v, _AVG_KERNEL, mode='nearest')

            residual = Ix * u + Iy * v + It
            weight = good / np.sqrt(1.0 + (residual / beta) ** 2)

            update = weight * (Ix * u_avg + Iy * v_avg + It) / (alpha + weight * (Ix ** 2 + Iy ** 2))
            u_new = u_avg - Ix * update
            v_new = v_avg - Iy * update

            delta = max(np.abs(u_new - u).max(), np.abs(v_new - v).max())
            scale = max(np.abs(u_new).max(), np.abs(v_new).max())
            u, v = u_new, v_new
            if delta == 0 or delta <= self.tolerance * scale:
                return u, v, iteration

        logger.debug("Horn-Schunck did not converge in %d iterations", self.max_iterations)
        return u, v, self.max_iterations

    def _farneback(self, frames, phase_only):
        n_rows, n_cols, n_time = frames.shape
        vx = np.zeros((n_rows, n_cols, n_time - 1))
        vy = np.zeros((n_rows, n_cols, n_time - 1))

        images = np.angle(frames) if phase_only else np.abs(frames)
        for t in range(n_time - 1):
            img1, img2 = self._normalize(images[:, :, t], images[:, :, t + 1])
            flow = cv2.calcOpticalFlowFarneback(img1, img2, None, **self.farneback_params)
            vx[:, :, t] = flow[:, :, 0]
            vy[:, :, t] = flow[:, :, 1]

        budget = self.farneback_params["iterations"] * self.farneback_params["levels"]
        steps = np.full(n_time - 1, budget, dtype=int)
        return vx, vy, steps

    @staticmethod
    def _normalize(img1, img2):
        """Normalize a frame pair jointly to uint8."""
        vmin = min(img1.min(), img2.min())
        vmax = max(img1.max(), img2.max())

        if vmax > vmin:
            img1_norm = np.uint8(255 * (img1 - vmin) / (vmax - vmin))
            img2_norm = np.uint8(255 * (img2 - vmin) / (vmax - vmin))
        else:
            img1_norm = np.zeros(img1.shape, dtype=np.uint8)
            img2_norm = np.zeros(img2.shape, dtype=np.uint8)

        return img1_norm, img2_norm
