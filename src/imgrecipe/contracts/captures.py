"""Capture and compositing contracts.

Frames handed to the compositor for one aggregation id must be in batch
input order, and every compositor output must be a non-empty artifact.
"""

from typing import Sequence

from imgrecipe.contracts.base import require


def assert_capture_order(aggregation_id: str, input_indices: Sequence[int]) -> None:
    """Enforce that captures are ordered by batch input index.

    Raises
    ------
    ContractViolation
        If indices are not strictly increasing.
    """
    for previous, current in zip(input_indices, input_indices[1:]):
        require(
            current > previous,
            f"Capture contract violated: '{aggregation_id}' frames out of input order "
            f"({previous} before {current})"
        )


def assert_composite_output(aggregation_id: str, data: bytes) -> None:
    """Enforce that a compositor produced bytes."""
    require(
        isinstance(data, (bytes, bytearray)) and len(data) > 0,
        f"Compositing contract violated: '{aggregation_id}' produced no data"
    )
