"""Pattern stage contract.

Enforces the guarantee that each trial's pattern table carries the
declared columns and only labels from the declared vocabulary.
"""

import numpy as np
import pandas as pd

from neuropatt.contracts.base import require_adapter

REQUIRED_COLUMNS = ("type", "start_time", "end_time")


def assert_pattern_table(
    patterns: pd.DataFrame,
    locations: list,
    n_types: int,
    n_timesteps: int,
    trial: int,
) -> None:
    """Enforce pattern stage contract for one trial.

    The core only reads pattern type, start and end; everything else in
    the table is opaque.

    Parameters
    ----------
    patterns : pd.DataFrame
        Extractor output, one row per pattern.
    locations : list
        One location array per pattern.
    n_types : int
        Size of the pattern vocabulary. Types are 0-based indices into it.
    n_timesteps : int
        Time extent of the velocity field.
    trial : int
        Trial index (for error context).

    Raises
    ------
    AdapterFailure
        If the extractor output is malformed.
    """
    stage = "pattern_extraction"
    require_adapter(
        isinstance(patterns, pd.DataFrame), stage,
        f"patterns is {type(patterns).__name__}, expected DataFrame", trial,
    )
    for col in REQUIRED_COLUMNS:
        require_adapter(col in patterns.columns, stage, f"missing column '{col}'", trial)
    require_adapter(
        len(locations) == len(patterns), stage,
        f"{len(locations)} locations for {len(patterns)} patterns", trial,
    )

    if len(patterns) > 0:
        types = patterns["type"].to_numpy()
        require_adapter(
            np.all((types >= 0) & (types < n_types)), stage,
            f"pattern type outside 0..{n_types - 1}", trial,
        )
        start = patterns["start_time"].to_numpy()
        end = patterns["end_time"].to_numpy()
        require_adapter(
            np.all((start >= 0) & (end >= start) & (end < n_timesteps)), stage,
            f"pattern times outside 0..{n_timesteps - 1} or end before start", trial,
        )
