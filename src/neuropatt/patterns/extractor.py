"""Detect wave patterns in velocity vector fields.

Patterns are detected independently at every time step, then linked over
time into events:

- **Global patterns** use order parameters over the whole grid.
  ``plane_wave``: velocity vectors are aligned, ``|sum v| / sum |v|``.
  ``synchronous``: phases are aligned, ``|mean exp(i*phase)|``.
- **Critical points** are grid cells where both velocity components change
  sign. The local Jacobian classifies them: negative determinant is a
  ``saddle``; otherwise complex eigenvalues give ``spiral_in`` /
  ``spiral_out`` and real eigenvalues give ``sink`` / ``source``
  (by the sign of the trace).

Detections of the same type at consecutive steps are paired by minimum
total displacement; pairs no further apart than
``max_displacement`` grid cells continue one event. Events shorter than
``min_duration_secs`` are dropped.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy.optimize import linear_sum_assignment

if TYPE_CHECKING:
    from neuropatt.schemas.internal import InternalPatternConfig

__all__ = ['PATTERN_TYPES', 'PATTERN_COLUMNS', 'PatternExtractor']

logger = logging.getLogger(__name__)

PATTERN_TYPES = (
    "plane_wave",
    "synchronous",
    "sink",
    "source",
    "spiral_in",
    "spiral_out",
    "saddle",
)

PATTERN_COLUMNS = (
    "type",
    "start_time",
    "end_time",
    "duration",
    "start_row",
    "start_col",
    "end_row",
    "end_col",
)

_TYPE_INDEX = {name: i for i, name in enumerate(PATTERN_TYPES)}
_GLOBAL_TYPES = ("plane_wave", "synchronous")


class PatternExtractor:
    """Default pattern extractor.

    The vocabulary is declared on the class (``pattern_types``,
    ``column_names``) so callers can check it before any trial runs.

    Parameters
    ----------
    fs : float
        Sampling rate in Hz, used to convert the minimum duration.

    Examples
    --------
    >>> extractor = PatternExtractor(fs=1000.0)
    >>> patterns, types, columns, locs = extractor(vx, vy, config.patterns, phase)
    >>> patterns[patterns["type"] == types.index("saddle")]
    """

    pattern_types = PATTERN_TYPES
    column_names = PATTERN_COLUMNS

    def __init__(self, fs: float):
        self.fs = fs

    def __call__(self, vx: np.ndarray, vy: np.ndarray,
                 params: "InternalPatternConfig", phase: np.ndarray):
        """Find all patterns in one trial.

        Parameters
        ----------
        vx, vy : np.ndarray
            (row, col, time) velocity components.
        params : InternalPatternConfig
            Detection thresholds.
        phase : np.ndarray
            (row, col, time') phase of the transform coefficients. Only the
            first ``time`` samples are used.

        Returns
        -------
        patterns : pd.DataFrame
            One row per event, columns ``PATTERN_COLUMNS``. ``type`` is an
            index into ``pattern_types``; times are inclusive sample
            indices on the velocity time axis.
        pattern_types : list of str
        column_names : list of str
        locations : list of np.ndarray
            Per event, an (n_steps, 2) array of (row, col) locations. Global
            patterns have NaN locations.
        """
        n_time = vx.shape[2]
        min_samples = max(1, int(np.floor(params.min_duration_secs * self.fs + 0.5)))

        tracker = _EventTracker(params.max_displacement)
        for t in range(n_time):
            detections = []
            u, v = vx[:, :, t], vy[:, :, t]

            if _velocity_order(u, v) >= params.plane_wave_threshold:
                detections.append(("plane_wave", (np.nan, np.nan)))
            if _phase_order(phase[:, :, t]) >= params.synchrony_threshold:
                detections.append(("synchronous", (np.nan, np.nan)))
            detections.extend(_critical_points(u, v, params.min_edge_distance))

            tracker.step(t, detections)

        events = [e for e in tracker.finish() if e.duration >= min_samples]
        events.sort(key=lambda e: (e.start, _TYPE_INDEX[e.kind]))

        rows = [
            (
                _TYPE_INDEX[e.kind], e.start, e.end, e.duration,
                e.path[0][0], e.path[0][1], e.path[-1][0], e.path[-1][1],
            )
            for e in events
        ]
        patterns = pd.DataFrame(rows, columns=list(PATTERN_COLUMNS))
        patterns = patterns.astype({"type": int, "start_time": int, "end_time": int, "duration": int})
        locations = [np.array(e.path, dtype=float) for e in events]

        logger.debug("Found %d patterns in %d steps", len(patterns), n_time)
        return patterns, list(PATTERN_TYPES), list(PATTERN_COLUMNS), locations


def _velocity_order(u: np.ndarray, v: np.ndarray) -> float:
    total_speed = np.nansum(np.hypot(u, v))
    if total_speed == 0:
        return 0.0
    return float(np.abs(np.nansum(u + 1j * v)) / total_speed)


def _phase_order(phase: np.ndarray) -> float:
    return float(np.abs(np.nanmean(np.exp(1j * phase))))


def _critical_points(u: np.ndarray, v: np.ndarray, min_edge_distance: int) -> list:
    """Classify every grid cell enclosing a zero of both components."""
    n_rows, n_cols = u.shape
    if n_rows < 2 or n_cols < 2:
        return []

    def corners(a):
        return np.stack([a[:-1, :-1], a[:-1, 1:], a[1:, :-1], a[1:, 1:]])

    cu, cv = corners(u), corners(v)
    crosses = (cu.min(0) < 0) & (cu.max(0) > 0) & (cv.min(0) < 0) & (cv.max(0) > 0)

    points = []
    for r, c in zip(*np.nonzero(crosses)):
        row, col = r + 0.5, c + 0.5
        edge = min(row, col, n_rows - 1 - row, n_cols - 1 - col)
        if edge < min_edge_distance:
            continue

        du_dx = 0.5 * (u[r, c + 1] - u[r, c] + u[r + 1, c + 1] - u[r + 1, c])
        du_dy = 0.5 * (u[r + 1, c] - u[r, c] + u[r + 1, c + 1] - u[r, c + 1])
        dv_dx = 0.5 * (v[r, c + 1] - v[r, c] + v[r + 1, c + 1] - v[r + 1, c])
        dv_dy = 0.5 * (v[r + 1, c] - v[r, c] + v[r + 1, c + 1] - v[r, c + 1])

        kind = _classify(du_dx + dv_dy, du_dx * dv_dy - du_dy * dv_dx)
        if kind is not None:
            points.append((kind, (row, col)))
    return points


def _classify(trace: float, det: float):
    if det < 0:
        return "saddle"
    if det == 0:
        return None
    if trace ** 2 - 4 * det < 0:
        return "spiral_in" if trace < 0 else "spiral_out"
    return "sink" if trace < 0 else "source"


class _Event:
    __slots__ = ("kind", "start", "end", "path")

    def __init__(self, kind, t, loc):
        self.kind = kind
        self.start = t
        self.end = t
        self.path = [loc]

    @property
    def duration(self) -> int:
        return self.end - self.start + 1


class _EventTracker:
    """Link per-step detections into events.

    Critical points of each type are matched to the active events of that
    type by minimum total displacement (``linear_sum_assignment``); pairs
    further apart than ``max_displacement`` start a new event. Global
    patterns occur at most once per step and simply continue.
    """

    def __init__(self, max_displacement: float):
        self.max_displacement = max_displacement
        self.active = []
        self.closed = []

    def step(self, t: int, detections: list):
        still_active = []
        for kind in dict.fromkeys(k for k, _ in detections):
            locs = [loc for k, loc in detections if k == kind]
            events = [e for e in self.active if e.kind == kind]
            matches = self._match(kind, events, locs)
            for j, loc in enumerate(locs):
                i = matches.get(j)
                if i is None:
                    still_active.append(_Event(kind, t, loc))
                    continue
                event = events[i]
                event.end = t
                event.path.append(loc)
                still_active.append(event)
        continued = {id(e) for e in still_active}
        self.closed.extend(e for e in self.active if id(e) not in continued)
        self.active = still_active

    def _match(self, kind, events, locs) -> dict:
        """Map detection index -> event index."""
        if not events:
            return {}
        if kind in _GLOBAL_TYPES:
            return {j: j for j in range(min(len(events), len(locs)))}

        last = np.array([e.path[-1] for e in events], dtype=float)
        new = np.array(locs, dtype=float)
        dist = np.hypot(last[:, None, 0] - new[None, :, 0], last[:, None, 1] - new[None, :, 1])
        # Forbidden pairs get a cost no allowed assignment can reach
        cost = np.where(dist <= self.max_displacement, dist, dist.size * (self.max_displacement + 1) + 1)
        rows, cols = linear_sum_assignment(cost)
        return {j: i for i, j in zip(rows, cols) if dist[i, j] <= self.max_displacement}

    def finish(self) -> list:
        events = self.closed + self.active
        self.closed, self.active = [], []
        return events
