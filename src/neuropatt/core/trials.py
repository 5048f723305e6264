"""Per-trial scheduling.

Trials never read or write each other's state, so each one can run on a
worker thread. Every trial returns its own buffers; callers merge them
into disjoint trial slices once all trials have finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List

from neuropatt.contracts import AdapterFailure, ContractViolation

__all__ = ['map_trials']

logger = logging.getLogger(__name__)


def map_trials(func: Callable[[int], object], n_trials: int, stage: str,
               n_workers: int = 1) -> List[object]:
    """Run ``func(trial)`` for every trial and return results in trial order.

    Parameters
    ----------
    func : callable
        Per-trial work. Must only touch its own trial's data.
    n_trials : int
        Number of trials.
    stage : str
        Stage name used in failure messages.
    n_workers : int
        1 runs a plain loop; more uses a thread pool.

    Returns
    -------
    list
        ``[func(0), func(1), ...]``

    Raises
    ------
    AdapterFailure
        If ``func`` raises anything other than a ContractViolation. The
        first failing trial (in trial order) is reported and pending
        trials are cancelled.
    ContractViolation
        Propagated unchanged.
    """
    if n_workers <= 1 or n_trials <= 1:
        return [_run_one(func, trial, stage) for trial in range(n_trials)]

    executor = ThreadPoolExecutor(max_workers=min(n_workers, n_trials),
                                  thread_name_prefix=f"neuropatt-{stage}")
    futures = [executor.submit(_run_one, func, trial, stage) for trial in range(n_trials)]
    try:
        results = [future.result() for future in futures]
    except BaseException:
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return results


def _run_one(func, trial: int, stage: str):
    try:
        result = func(trial)
    except ContractViolation:
        raise
    except Exception as exc:
        raise AdapterFailure(stage, f"{type(exc).__name__}: {exc}", trial=trial) from exc
    logger.debug("Processed trial %d (%s)", trial, stage)
    return result
