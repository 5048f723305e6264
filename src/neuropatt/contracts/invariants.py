"""Formal pipeline invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "recording": [
        "Tensor is (row, column, time[, trial]); time is always axis 2",
        "At least 2 time samples (velocity needs two snapshots)",
        "A 3D tensor is a single trial",
    ],

    "preprocess": [
        "Baseline removal happens before variance division",
        "Bad channels: NaN anywhere, or constant over time and trials",
        "Bad channels are flagged, never removed from the tensor",
    ],

    "transform": [
        "Coefficients are complex with the same shape as the recording",
    ],

    "velocity": [
        "Field time extent == coefficient time extent - 1",
        "One convergence mean per trial; run mean is the mean of trial means",
        "A failing trial aborts the run (no neutral substitution)",
    ],

    "patterns": [
        "Phase comes from the transform coefficients, not the velocity field",
        "Vocabulary is declared once and identical for every trial",
        "Pattern times index the velocity-field time axis",
    ],

    "transitions": [
        "observed and expected are (type, type, trial)",
        "Zero expected counts give undefined (NaN) fractional change cells",
        "Paired tests only with more than one trial",
        "Bonferroni: p * n_types**2, not clamped",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "recording": "REQUIRED",
    "preprocess": "REQUIRED",
    "transform": "REQUIRED",
    "velocity": "REQUIRED",
    "svd": "OPTIONAL",         # Only if perform_svd and figures not suppressed
    "patterns": "REQUIRED",
    "transitions": "REQUIRED",
    "significance": "OPTIONAL",  # Only with 2+ trials
}
