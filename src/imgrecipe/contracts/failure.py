"""Centralized failure policy for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type so callers can handle pipeline bugs uniformly.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """What the batch runner does when one image's pass fails.

    SKIP_IMAGE (default): record the failure, continue with the next image
    FAIL_FAST: re-raise and stop the batch
    """
    SKIP_IMAGE = "skip_image"
    FAIL_FAST = "fail_fast"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in engine or kernel logic, not a bad recipe or
    an unreadable image. A stage did not produce the invariants it
    promised.

    Key distinction:
    - ValueError: recipe/config error (handled by Pydantic)
    - ContractViolation: pipeline bug (programmer error)
    - KernelError: recoverable per-image failure
    """
    pass
