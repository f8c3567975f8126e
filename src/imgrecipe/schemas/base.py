"""Base Pydantic model with strict defaults for imgrecipe schemas.

Recipe documents and run configuration both inherit from this base so
validation behaves the same everywhere a schema is loaded.
"""

from pydantic import BaseModel, ConfigDict


class ImgRecipeBaseModel(BaseModel):
    """Base model for all imgrecipe schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Enum members stored as their values
    - Surrounding whitespace stripped from strings
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
