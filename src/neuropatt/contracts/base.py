"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for stage
contracts. Adapter outputs are checked with require_adapter() so the
failure carries the stage and trial that produced it.
"""

from neuropatt.contracts.failure import AdapterFailure, ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a pipeline contract.

    Parameters
    ----------
    condition : bool
        The invariant that must be true.
    message : str
        Error message explaining the contract violation.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(field.n_time == coeffs.shape[2] - 1, "Velocity contract: time extent")
    """
    if not condition:
        raise ContractViolation(message)


def require_adapter(condition: bool, stage: str, message: str, trial: int = None) -> None:
    """Enforce an external collaborator's output contract.

    Raises
    ------
    AdapterFailure
        If condition is False.
    """
    if not condition:
        raise AdapterFailure(stage, message, trial=trial)
