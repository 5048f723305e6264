"""Signal conditioning modules.

- preprocess: Baseline removal, z-scoring, bad channel detection
- transform: Morlet wavelet and Hilbert analytic signals
"""

from neuropatt.signal.preprocess import TIME_AXIS, as_recording, find_bad_channels, preprocess
from neuropatt.signal.transform import morlet_transform, hilbert_transform

__all__ = [
    "TIME_AXIS",
    "as_recording",
    "find_bad_channels",
    "preprocess",
    "morlet_transform",
    "hilbert_transform",
]
