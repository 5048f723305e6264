"""Pattern analysis pipeline orchestration.

Runs one recording through every stage in order:

    preprocess -> transform -> velocity fields -> [SVD figure]
    -> pattern extraction -> transition statistics -> result

Each stage is a collaborator that can be injected; defaults come from
``neuropatt.signal``, ``neuropatt.flow``, ``neuropatt.patterns`` and
``neuropatt.visualization``. Progress is reported through a sink before
every stage. Failures are logged with their stage and re-raised; no
partial result is returned.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np

from neuropatt.contracts import AdapterFailure, ContractViolation, NeuroPattError, require_adapter
from neuropatt.flow import OpticalFlowEstimator, build_velocity_fields
from neuropatt.patterns import PatternExtractor, TransitionCounter
from neuropatt.pipeline import interfaces
from neuropatt.pipeline.pattern_loop import extract_patterns
from neuropatt.pipeline.progress import LoggingProgressSink
from neuropatt.pipeline.results import PatternAnalysisResult, assemble_result
from neuropatt.pipeline.transitions import analyze_transitions, paired_ttest
from neuropatt.schemas import resolve_config
from neuropatt.signal import TIME_AXIS, hilbert_transform, morlet_transform, preprocess

if TYPE_CHECKING:
    from neuropatt.schemas import InternalConfig

__all__ = ['PatternAnalysisPipeline', 'analyze_recording', 'setup_logging']

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_path: Optional[str] = None):
    """Install console (and optional file) handlers on the root logger.

    Existing root handlers are removed so repeated calls don't duplicate
    output.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if log_path:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)


def _default_transform(config: "InternalConfig") -> Callable:
    """Transform callable for ``config.transform.method``."""
    tcfg = config.transform
    if tcfg.method == "hilbert":
        def transform(data, fs, center_frequency, bandwidth_param, time_axis):
            return hilbert_transform(data, fs, tcfg.hilbert_band, tcfg.hilbert_order, time_axis)
        return transform
    return morlet_transform


class PatternAnalysisPipeline:
    """Runs the full pattern analysis on one recording.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration (see ``resolve_config``).
    progress : ProgressSink, optional
        Receives human-readable progress messages. Defaults to logging.
    transform : callable, optional
        ``transform(data, fs, center_frequency, bandwidth_param, time_axis)``.
    optical_flow : callable, optional
        ``optical_flow(trial_coeffs, bad_channels, alpha, beta, phase_only)``.
    extractor : callable, optional
        ``extractor(vx, vy, params, phase)``; built with ``fs`` at run time
        when not given.
    count_transitions : callable, optional
        ``count_transitions(patterns_per_trial, n_timesteps, window_after,
        window_before)``; built from the extractor vocabulary when not given.
    paired_test : callable, optional
        ``paired_test(sample_a, sample_b) -> p``.
    visualizer : callable, optional
        ``visualizer(field, fs)``. Only called when SVD is enabled and
        figures are not suppressed.

    Examples
    --------
    >>> config = resolve_config()
    >>> result = PatternAnalysisPipeline(config).run(data, fs=1000.0)
    >>> result.summary_frame()
    """

    def __init__(
        self,
        config: "InternalConfig",
        progress: Optional[interfaces.ProgressSink] = None,
        transform: Optional[interfaces.Transform] = None,
        optical_flow: Optional[interfaces.OpticalFlow] = None,
        extractor: Optional[interfaces.PatternExtractor] = None,
        count_transitions: Optional[interfaces.TransitionCounter] = None,
        paired_test: Optional[interfaces.PairedTest] = None,
        visualizer: Optional[interfaces.Visualizer] = None,
    ):
        self.config = config
        self.progress = progress if progress is not None else LoggingProgressSink()
        self.transform = transform if transform is not None else _default_transform(config)
        self.optical_flow = optical_flow if optical_flow is not None else OpticalFlowEstimator(config)
        self.extractor = extractor
        self.count_transitions = count_transitions
        self.paired_test = paired_test if paired_test is not None else paired_ttest
        self.visualizer = visualizer

    def run(self, data, fs: float) -> PatternAnalysisResult:
        """Analyze ``data`` sampled at ``fs`` Hz.

        Raises
        ------
        InvalidShapeError
            Malformed recording.
        AdapterFailure
            A collaborator raised or broke its contract; carries the stage
            and, for per-trial stages, the trial.
        VocabularyMismatchError
            The extractor changed its pattern vocabulary between trials.
        """
        if not fs > 0:
            raise ValueError(f"Sampling rate must be positive, got {fs}")

        start_time = datetime.now()
        self.progress.report(f"Beginning NeuroPatt pattern analysis at {start_time:%Y-%m-%d %H:%M:%S}")

        try:
            result = self._run_stages(data, fs, start_time)
        except NeuroPattError as e:
            stage = getattr(e, "stage", None)
            trial = getattr(e, "trial", None)
            logger.error("Pattern analysis failed (stage=%s, trial=%s): %s", stage, trial, e)
            raise

        self.progress.report(f"Finished in {result.process_time.total_seconds():.1f} s")
        return result

    def _run_stages(self, data, fs: float, start_time: datetime) -> PatternAnalysisResult:
        cfg = self.config
        n_workers = cfg.processing.n_workers

        # Step 1: Preprocess
        self.progress.report("Preprocessing data...")
        adjusted, bad_channels = preprocess(data, cfg.preprocess)
        logger.info("Recording %s, %d bad channels", adjusted.shape, bad_channels.size)

        # Step 2: Transform
        self.progress.report("Filtering waveforms...")
        stage_start = datetime.now()
        coeffs = self._transform(adjusted, fs)
        logger.info("Transform took %.2f s", (datetime.now() - stage_start).total_seconds())

        # Step 3: Velocity fields
        self.progress.report("Calculating velocity vector fields...")
        stage_start = datetime.now()
        field, convergence = build_velocity_fields(
            coeffs, bad_channels, cfg.flow, self.optical_flow, n_workers=n_workers
        )
        logger.info("Optical flow took %.2f s", (datetime.now() - stage_start).total_seconds())
        self.progress.report(
            f"Optical flow took {convergence.mean:.1f} steps on average to converge."
        )

        # Step 4: Optional SVD figure
        if cfg.visualization.perform_svd and not cfg.output.suppress_figures:
            self.progress.report("Performing SVD of velocity vector fields...")
            self._visualize(field, fs)

        # Step 5: Patterns
        self.progress.report("Identifying all patterns in velocity fields...")
        stage_start = datetime.now()
        extractor = self.extractor if self.extractor is not None else PatternExtractor(fs)
        collection = extract_patterns(field, coeffs, extractor, cfg.patterns, n_workers=n_workers)
        logger.info("Pattern extraction took %.2f s", (datetime.now() - stage_start).total_seconds())

        # Step 6: Transitions
        self.progress.report("Analysing pattern transitions...")
        counter = self.count_transitions
        if counter is None:
            counter = TransitionCounter(len(collection.pattern_types))
        stats = analyze_transitions(
            collection.patterns, collection.pattern_types, field.n_time, fs,
            cfg.transitions, counter, self.paired_test,
        )

        return assemble_result(
            bad_channels=bad_channels,
            coeffs=coeffs,
            field=field,
            convergence=convergence,
            collection=collection,
            stats=stats,
            config=cfg,
            fs=fs,
            process_time=datetime.now() - start_time,
        )

    def _transform(self, adjusted: np.ndarray, fs: float) -> np.ndarray:
        tcfg = self.config.transform
        try:
            coeffs = self.transform(adjusted, fs, tcfg.morlet_cfreq, tcfg.morlet_param, TIME_AXIS)
        except ContractViolation:
            raise
        except Exception as exc:
            raise AdapterFailure("transform", f"{type(exc).__name__}: {exc}") from exc

        coeffs = np.asarray(coeffs)
        require_adapter(coeffs.shape == adjusted.shape, "transform",
                        f"coefficients shape {coeffs.shape}, expected {adjusted.shape}")
        require_adapter(bool(np.isfinite(coeffs).all()), "transform",
                        "non-finite coefficients")
        return coeffs.astype(np.complex128, copy=False)

    def _visualize(self, field, fs: float):
        visualizer = self.visualizer
        if visualizer is None:
            from neuropatt.visualization import SVDPlotter
            visualizer = SVDPlotter(self.config)
        try:
            visualizer(field, fs)
        except Exception:
            logger.exception("SVD visualization failed; continuing without figure")


def analyze_recording(data, fs: float, config: Optional["InternalConfig"] = None,
                      **collaborators) -> PatternAnalysisResult:
    """Run the full pattern analysis with default or injected collaborators.

    Parameters
    ----------
    data : np.ndarray or xr.DataArray
        Recording (row, column, time[, trial]).
    fs : float
        Sampling rate in Hz.
    config : InternalConfig, optional
        Defaults to ``resolve_config()``.
    **collaborators
        Passed to ``PatternAnalysisPipeline`` (``progress``, ``transform``,
        ``optical_flow``, ``extractor``, ``count_transitions``,
        ``paired_test``, ``visualizer``).
    """
    if config is None:
        config = resolve_config()
    return PatternAnalysisPipeline(config, **collaborators).run(data, fs)
