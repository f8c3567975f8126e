"""Parameter declarations for transformations.

Each transformation declares an ordered list of ``ParameterDefinition``.
``build_params_model`` turns that list into a pydantic model so a step's
raw ``params`` mapping is validated once, out-of-range values are
rejected, and kernels receive a typed object with defaults filled in.
"""

import re
from typing import Any, List, Literal, Optional, Sequence, Type

from pydantic import BaseModel, ConfigDict, Field, create_model, model_validator
from pydantic.alias_generators import to_camel

from imgrecipe.schemas.base import ImgRecipeBaseModel

__all__ = ['SelectOption', 'ParameterDefinition', 'TransformationParams', 'build_params_model']

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"

ParameterType = Literal["text", "number", "boolean", "select", "color", "range"]


class SelectOption(ImgRecipeBaseModel):
    """One choice of a ``select`` parameter."""
    label: str
    value: str


class ParameterDefinition(ImgRecipeBaseModel):
    """Declared shape of one transformation parameter.

    ``min``/``max``/``step`` apply to ``number`` and ``range`` types;
    ``options`` is required for ``select``.
    """
    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    label: str
    type: ParameterType
    default_value: Any = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: Optional[List[SelectOption]] = None

    @model_validator(mode="after")
    def check_type_specific_fields(self):
        """Select needs options, numeric bounds must be ordered."""
        if self.type == "select" and not self.options:
            raise ValueError(f"Select parameter '{self.name}' requires options")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Parameter '{self.name}': min {self.min} > max {self.max}")
        return self


class TransformationParams(BaseModel):
    """Base for generated per-transformation parameter models.

    Fields are snake_case; camelCase keys (``secondsPerSlide``) are
    accepted as aliases so recipes written for other tools still load.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, alias_generator=to_camel, populate_by_name=True)


def _field_for(definition: ParameterDefinition) -> tuple:
    """Return the ``(annotation, FieldInfo)`` pair for one parameter."""
    if definition.type in ("number", "range"):
        return (
            float,
            Field(definition.default_value, ge=definition.min, le=definition.max,
                  description=definition.label),
        )
    if definition.type == "boolean":
        return (bool, Field(bool(definition.default_value), description=definition.label))
    if definition.type == "select":
        values = tuple(option.value for option in definition.options)
        return (Literal[values], Field(definition.default_value, description=definition.label))
    if definition.type == "color":
        return (str, Field(definition.default_value, pattern=HEX_COLOR_PATTERN,
                           description=definition.label))
    return (str, Field("" if definition.default_value is None else definition.default_value,
                       description=definition.label))


def build_params_model(
    transformation_id: str,
    definitions: Sequence[ParameterDefinition],
) -> Type[TransformationParams]:
    """Create the typed parameter model for a transformation.

    Parameters
    ----------
    transformation_id : str
        Used to name the generated class (``FilterSharpenParams``).
    definitions : sequence of ParameterDefinition
        Declared parameters, in order.

    Returns
    -------
    type
        Frozen pydantic model. Unknown keys are rejected, numeric values
        outside ``[min, max]`` are rejected, missing keys take defaults.
    """
    fields = {definition.name: _field_for(definition) for definition in definitions}
    class_name = "".join(part.title() for part in re.split(r"[^A-Za-z0-9]+", transformation_id) if part)
    return create_model(
        f"{class_name}Params",
        __base__=TransformationParams,
        **fields,
    )
