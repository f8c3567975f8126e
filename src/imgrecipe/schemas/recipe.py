"""Recipe document schema.

A recipe is an ordered list of configured transformation steps. The
document is persisted as JSON and must round-trip through
``save_recipe``/``load_recipe`` without loss. Editor-style mutations
(toggle, condition update, removal) address steps by id and are no-ops
when the id does not resolve.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from imgrecipe.schemas.base import ImgRecipeBaseModel

__all__ = ['Condition', 'RecipeStep', 'Recipe', 'load_recipe', 'save_recipe']

logger = logging.getLogger(__name__)

ConditionOperator = Literal["eq", "neq", "gt", "lt", "gte", "lte", "contains"]


class Condition(ImgRecipeBaseModel):
    """Runtime predicate guarding a step.

    ``field`` is ``width``, ``height``, ``aspectRatio`` or
    ``metadata.<key>``. Anything else evaluates to False.
    """
    field: str
    operator: ConditionOperator
    value: Any = None


class RecipeStep(ImgRecipeBaseModel):
    """One configured transformation instance within a recipe."""

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: str = Field(..., min_length=1)
    transformation_id: str = Field(..., alias="transformationId", min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    condition: Optional[Condition] = None
    disabled: Optional[bool] = None

    @property
    def is_disabled(self) -> bool:
        return bool(self.disabled)


class Recipe(ImgRecipeBaseModel):
    """Ordered, conditional, reusable list of image operations.

    Step order is execution order. Step ids must be unique.

    Usage
    -----
        recipe = Recipe(id="r1", name="Web export", steps=[
            RecipeStep(id="s1", transformation_id="filter-sharpen"),
            RecipeStep(id="s2", transformation_id="workflow-export",
                       params={"format": "image/webp"}),
        ])
        save_recipe(recipe, "web.json")
    """
    id: str = Field(..., min_length=1)
    name: str = ""
    steps: List[RecipeStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_step_ids(self):
        """Reject documents where two steps share an id."""
        seen = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id in recipe '{self.id}': {step.id}")
            seen.add(step.id)
        return self

    # ------------------------------------------------------------------
    # Step lookup and editor operations
    # ------------------------------------------------------------------

    def index_of(self, step_id: str) -> Optional[int]:
        """Position of ``step_id`` in the step list, or None."""
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None

    def get_step(self, step_id: str) -> Optional[RecipeStep]:
        index = self.index_of(step_id)
        return None if index is None else self.steps[index]

    def add_step(self, step: RecipeStep) -> bool:
        if self.index_of(step.id) is not None:
            logger.warning("Step id '%s' already present in recipe '%s'", step.id, self.id)
            return False
        self.steps = [*self.steps, step]
        return True

    def remove_step(self, step_id: str) -> bool:
        index = self.index_of(step_id)
        if index is None:
            return False
        self.steps = self.steps[:index] + self.steps[index + 1:]
        return True

    def set_disabled(self, step_id: str, disabled: bool) -> bool:
        step = self.get_step(step_id)
        if step is None:
            return False
        step.disabled = disabled
        return True

    def set_condition(self, step_id: str, condition: Optional[Condition]) -> bool:
        step = self.get_step(step_id)
        if step is None:
            return False
        step.condition = condition
        return True

    def set_params(self, step_id: str, **params: Any) -> bool:
        step = self.get_step(step_id)
        if step is None:
            return False
        step.params = {**step.params, **params}
        return True

    def move_step(self, step_id: str, new_index: int) -> bool:
        index = self.index_of(step_id)
        if index is None:
            return False
        steps = list(self.steps)
        step = steps.pop(index)
        new_index = max(0, min(new_index, len(steps)))
        steps.insert(new_index, step)
        self.steps = steps
        return True

    # ------------------------------------------------------------------
    # Document serialization
    # ------------------------------------------------------------------

    def to_document(self) -> dict:
        """Plain dict in the exchanged document shape (camelCase step keys)."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: dict) -> "Recipe":
        return cls.model_validate(document)


def load_recipe(path: str | Path) -> Recipe:
    """Load a recipe document from a JSON file.

    Parameters
    ----------
    path : str or Path
        JSON file holding ``{id, name, steps}``.

    Returns
    -------
    Recipe
        Validated document. Parameter values are checked separately
        against the registry (see ``validate_recipe``).

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    pydantic.ValidationError
        If the document shape is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recipe not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        document = json.load(f)

    recipe = Recipe.from_document(document)
    logger.debug("Loaded recipe '%s' (%d steps) from %s", recipe.id, len(recipe.steps), path)
    return recipe


def save_recipe(recipe: Recipe, path: str | Path) -> Path:
    """Write a recipe document as indented JSON and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(recipe.to_document(), f, indent=2)
    return path
