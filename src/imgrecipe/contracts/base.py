"""Base contract enforcement utilities.

``require()`` is the single enforcement mechanism for all contracts.
"""

from imgrecipe.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a pipeline contract.

    Called at stage boundaries to verify the preceding stage produced
    the guaranteed invariants. No recovery, no fallback, no silence.

    Parameters
    ----------
    condition : bool
        The invariant that must hold.
    message : str
        Explanation used in the raised ContractViolation.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(buffer.pixels.ndim == 3, "Raster contract: expected HxWx4")
    """
    if not condition:
        raise ContractViolation(message)
