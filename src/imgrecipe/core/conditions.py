"""Condition evaluation for guarded recipe steps.

``evaluate_condition`` is pure and never raises: fields it cannot
resolve and comparisons across types it cannot coerce evaluate to False.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any, Optional

from imgrecipe.core.context import RunContext
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.schemas.recipe import Condition

__all__ = ['evaluate_condition', 'resolve_field', 'MISSING']

logger = logging.getLogger(__name__)

METADATA_PREFIX = "metadata."


class _Missing:
    """Marker for a field that resolved to nothing."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()
_UNRESOLVABLE = object()


def resolve_field(field: str, buffer: RasterBuffer, context: Optional[RunContext]) -> Any:
    """Resolve a condition field against the current raster and context.

    Returns
    -------
    object
        The value; ``MISSING`` for an absent metadata key; an internal
        sentinel for fields that are not recognised at all.
    """
    if field == "width":
        return buffer.width
    if field == "height":
        return buffer.height
    if field == "aspectRatio":
        return buffer.width / buffer.height
    if field.startswith(METADATA_PREFIX):
        metadata = context.metadata if context is not None else None
        value: Any = metadata if metadata is not None else MISSING
        # Dotted keys walk nested mappings: metadata.gps.lat
        for key in field[len(METADATA_PREFIX):].split("."):
            if not isinstance(value, Mapping) or key not in value:
                return MISSING
            value = value[key]
        return MISSING if value is None else value
    return _UNRESOLVABLE


def _to_number(value: Any) -> Optional[float]:
    """Numeric coercion: numbers, bools and numeric strings; otherwise None."""
    if value is MISSING or value is None:
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if text == "":
            number = 0.0
        else:
            try:
                number = float(text)
            except ValueError:
                return None
    else:
        return None
    return None if math.isnan(number) else number


def _stringify(value: Any) -> Optional[str]:
    if value is MISSING or value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _loose_equal(left: Any, right: Any) -> bool:
    """Equality where numeric strings equal numbers and absent equals only absent."""
    left_absent = left is MISSING or left is None
    right_absent = right is MISSING or right is None
    if left_absent or right_absent:
        return left_absent and right_absent
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, (int, float, bool, str)) and isinstance(right, (int, float, bool, str)):
        left_num, right_num = _to_number(left), _to_number(right)
        if left_num is None or right_num is None:
            return False
        return left_num == right_num
    return left == right


def _compare(left: Any, operator: str, right: Any) -> bool:
    if operator == "eq":
        return _loose_equal(left, right)
    if operator == "neq":
        return not _loose_equal(left, right)
    if operator == "contains":
        haystack, needle = _stringify(left), _stringify(right)
        if haystack is None or needle is None:
            return False
        return needle in haystack

    left_num, right_num = _to_number(left), _to_number(right)
    if left_num is None or right_num is None:
        return False
    if operator == "gt":
        return left_num > right_num
    if operator == "lt":
        return left_num < right_num
    if operator == "gte":
        return left_num >= right_num
    if operator == "lte":
        return left_num <= right_num
    return False


def evaluate_condition(condition: Condition, buffer: RasterBuffer,
                       context: Optional[RunContext] = None) -> bool:
    """Evaluate a step condition.

    Parameters
    ----------
    condition : Condition
        ``{field, operator, value}``.
    buffer : RasterBuffer
        Current raster state (dimensions after earlier steps).
    context : RunContext, optional
        Supplies ``metadata`` for ``metadata.<key>`` fields.

    Returns
    -------
    bool
        Result of the comparison; False for unknown fields or
        incomparable values.

    Examples
    --------
    >>> evaluate_condition(Condition(field="width", operator="gt", value="100"), buf)
    True
    """
    try:
        resolved = resolve_field(condition.field, buffer, context)
        if resolved is _UNRESOLVABLE:
            logger.debug("Unknown condition field '%s' evaluates to False", condition.field)
            return False
        return bool(_compare(resolved, condition.operator, condition.value))
    except Exception as e:  # never propagate out of condition evaluation
        logger.debug("Condition %r failed to evaluate: %s", condition, e)
        return False
