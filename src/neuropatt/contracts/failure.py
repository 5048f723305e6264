"""Centralized failure types for the pattern analysis pipeline.

Structural and adapter failures are fatal and raised once. Numeric edge
cases inside a statistic are recovered in place and only warned about.
"""


class NeuroPattError(Exception):
    """Base class for NeuroPatt specific errors."""
    pass


class InvalidShapeError(NeuroPattError, ValueError):
    """Input recording tensor is malformed (rank or time extent).

    This is a user input error: nothing downstream can run on the data.
    """
    pass


class ContractViolation(NeuroPattError, RuntimeError):
    """Raised when a pipeline contract is violated.

    A pipeline stage did not produce the invariants it promised.

    Key distinction:
    - InvalidShapeError / ValidationError: bad user input or config
    - ContractViolation: a stage or collaborator broke its promise
    - UndefinedStatistic: recoverable per-cell numeric issue
    """
    pass


class AdapterFailure(ContractViolation):
    """An external collaborator raised or returned an invalid result.

    Parameters
    ----------
    stage : str
        Pipeline stage that failed ("transform", "optical_flow", ...).
    message : str
        Human readable description.
    trial : int, optional
        Trial index being processed, if the stage is per-trial.
    """

    def __init__(self, stage: str, message: str, trial: int = None):
        self.stage = stage
        self.trial = trial
        where = f"stage '{stage}'" if trial is None else f"stage '{stage}', trial {trial}"
        super().__init__(f"Adapter failure in {where}: {message}")


class VocabularyMismatchError(ContractViolation):
    """Pattern type vocabulary differs between trials.

    Vocabularies are never merged; the run stops at the first trial whose
    extractor output disagrees with the declared vocabulary.
    """

    def __init__(self, trial: int, expected, found):
        self.trial = trial
        self.expected = tuple(expected)
        self.found = tuple(found)
        super().__init__(
            f"Pattern vocabulary mismatch in trial {trial}: "
            f"expected {list(self.expected)}, found {list(self.found)}"
        )


class UndefinedStatistic(RuntimeWarning):
    """A statistic cell is undefined (e.g. zero expected count).

    Issued as a warning; the cell is marked NaN and excluded from averages.
    """
    pass
