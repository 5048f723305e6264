"""Pattern detection modules.

- extractor: Default critical point / order parameter pattern detector
- evolution: Observed and expected pattern transition counts
"""

from neuropatt.patterns.extractor import PATTERN_TYPES, PATTERN_COLUMNS, PatternExtractor
from neuropatt.patterns.evolution import TransitionCounter

__all__ = [
    "PATTERN_TYPES",
    "PATTERN_COLUMNS",
    "PatternExtractor",
    "TransitionCounter",
]
