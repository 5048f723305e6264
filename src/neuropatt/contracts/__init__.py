"""Pipeline contracts - fail-fast enforcement of stage invariants.

Contracts fail immediately and loudly when pipeline stages (or the
external collaborators they wrap) don't produce their promised
invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Algorithms handle science edge cases
"""

from neuropatt.contracts.failure import (
    NeuroPattError,
    InvalidShapeError,
    ContractViolation,
    AdapterFailure,
    VocabularyMismatchError,
    UndefinedStatistic,
)
from neuropatt.contracts.base import require, require_adapter
from neuropatt.contracts.recording import assert_recording
from neuropatt.contracts.velocity import assert_velocity_field
from neuropatt.contracts.patterns import assert_pattern_table
from neuropatt.contracts.transitions import assert_transition_counts

__all__ = [
    "NeuroPattError",
    "InvalidShapeError",
    "ContractViolation",
    "AdapterFailure",
    "VocabularyMismatchError",
    "UndefinedStatistic",
    "require",
    "require_adapter",
    "assert_recording",
    "assert_velocity_field",
    "assert_pattern_table",
    "assert_transition_counts",
]
