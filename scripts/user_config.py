"""NeuroPatt User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the analysis. Advanced settings are in src/neuropatt/schemas/param.py

Usage:
    python scripts/run_neuropatt.py data/lfp.npy --fs 1017 --config scripts/user_config.py
    neuropatt-run data/lfp.npy --fs 1017 --config scripts/user_config.py
"""

CONFIG = {
    # ========================================================================
    # PREPROCESSING
    # ========================================================================
    "zscoreChannels": 0,       # Normalize every channel to unit variance
    "subtractBaseline": 0,     # Remove the mean of every channel

    # ========================================================================
    # FILTERING
    # ========================================================================
    "useHilbert": 0,           # 1: band-pass + Hilbert, 0: Morlet wavelet
    "morletCfreq": 6,          # Wavelet centre frequency (Hz)
    "morletParam": 5,          # Wavelet width (cycles)

    # ========================================================================
    # OPTICAL FLOW
    # ========================================================================
    "opAlpha": 0.5,            # Smoothness weight
    "opBeta": 10,              # Robust data term scale
    "useAmplitude": 0,         # 1: amplitude-driven, 0: phase-driven

    # ========================================================================
    # PATTERN DETECTION
    # ========================================================================
    "planeWaveThreshold": 0.85,
    "synchronyThreshold": 0.85,
    "minDurationSecs": 0.02,   # Shortest pattern kept (seconds)
    "maxDisplacement": 1,      # Grid cells a critical point may move per step
    "minEdgeDistance": 2,      # Ignore critical points this close to the edge

    # ========================================================================
    # SVD FIGURE
    # ========================================================================
    "performSVD": 1,
    "nSVDmodes": 6,
    "useComplexSVD": 0,

    # ========================================================================
    # ADVANCED (nested sections override the flat keys above)
    # ========================================================================
    # "flow": {"method": "farneback", "max_iterations": 500},
    # "transitions": {"after_fraction": 0.05, "before_fraction": 0.01},
    # "processing": {"n_workers": 4},
}
