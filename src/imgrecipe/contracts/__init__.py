"""Pipeline contracts - fail-fast enforcement of stage invariants.

Contracts fail immediately and loudly when a stage does not produce its
promised invariants.

Key principle:
- Pydantic validates recipes and config
- Contracts validate pipeline correctness
- Kernels handle image edge cases
"""

from imgrecipe.contracts.failure import ContractViolation, FailurePolicy
from imgrecipe.contracts.base import require
from imgrecipe.contracts.raster import assert_raster
from imgrecipe.contracts.captures import assert_capture_order, assert_composite_output
from imgrecipe.contracts.invariants import PIPELINE_INVARIANTS, STAGE_REQUIREMENTS

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "require",
    "assert_raster",
    "assert_capture_order",
    "assert_composite_output",
    "PIPELINE_INVARIANTS",
    "STAGE_REQUIREMENTS",
]
