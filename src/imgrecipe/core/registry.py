"""Transformation registry.

Maps stable transformation ids to their definition: declared parameters,
the typed parameter model derived from them, the kind of step (kernel,
export, aggregation) and, for kernels, the ``apply`` callable.

The registry is populated once at startup and frozen. Registering an id
twice is rejected unless the caller asks to replace it explicitly.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Literal, Mapping, Optional, Tuple, Type

from pydantic import ValidationError

from imgrecipe.core.errors import DuplicateTransformationError, RecipeValidationError, RegistryFrozenError
from imgrecipe.schemas.parameter import ParameterDefinition, TransformationParams, build_params_model
from imgrecipe.schemas.recipe import Recipe

__all__ = [
    'TransformationKind',
    'AggregationKind',
    'TransformationDefinition',
    'TransformationRegistry',
    'build_default_registry',
    'validate_recipe',
]

logger = logging.getLogger(__name__)


class TransformationKind(str, Enum):
    """How the engine dispatches a step."""
    KERNEL = "kernel"
    EXPORT = "export"
    AGGREGATION = "aggregation"


class AggregationKind(str, Enum):
    """Which batch-level artifact an aggregation step feeds."""
    CONTACT_SHEET = "contact_sheet"
    ANIMATION = "animation"
    VIDEO = "video"


@dataclass(frozen=True)
class TransformationDefinition:
    """Registered transformation.

    Attributes
    ----------
    id : str
        Unique, stable identifier referenced by ``RecipeStep.transformation_id``.
    name, description : str
        Display text.
    params : tuple of ParameterDefinition
        Declared parameters, in order.
    apply : callable, optional
        ``apply(buffer, params, context)``; required for kernels. Mutates
        the buffer in place.
    kind : TransformationKind
        Dispatch category.
    aggregation : AggregationKind, optional
        Required for aggregation steps.
    stochastic : bool
        True for kernels whose output is not reproducible by default.
    """
    id: str
    name: str
    description: str = ""
    params: Tuple[ParameterDefinition, ...] = ()
    apply: Optional[Callable] = None
    kind: TransformationKind = TransformationKind.KERNEL
    aggregation: Optional[AggregationKind] = None
    stochastic: bool = False
    params_model: Type[TransformationParams] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Transformation id must be non-empty")
        if self.kind == TransformationKind.KERNEL and self.apply is None:
            raise ValueError(f"Kernel transformation '{self.id}' needs an apply callable")
        if self.kind == TransformationKind.AGGREGATION and self.aggregation is None:
            raise ValueError(f"Aggregation transformation '{self.id}' needs an aggregation kind")
        object.__setattr__(self, "params", tuple(self.params))
        object.__setattr__(self, "params_model", build_params_model(self.id, self.params))

    @property
    def is_output(self) -> bool:
        """Export and aggregation steps produce artifacts instead of pixels."""
        return self.kind in (TransformationKind.EXPORT, TransformationKind.AGGREGATION)

    def resolve_params(self, raw: Optional[Mapping] = None) -> TransformationParams:
        """Validate raw step params and fill defaults.

        Raises
        ------
        pydantic.ValidationError
            Unknown keys, wrong types or out-of-range values.
        """
        return self.params_model.model_validate(dict(raw or {}))

    def default_params(self) -> dict:
        """Defaults for a newly added step."""
        return {p.name: p.default_value for p in self.params}


class TransformationRegistry:
    """Ownership-checked id → TransformationDefinition table.

    Parameters
    ----------
    duplicate_policy : {"reject", "replace"}
        What ``register`` does with an id that is already present when
        the caller does not pass ``replace`` explicitly.

    Examples
    --------
    >>> registry = TransformationRegistry()
    >>> registry.register(definition)
    >>> registry.freeze()
    >>> registry.get("filter-sharpen")
    """

    def __init__(self, duplicate_policy: Literal["reject", "replace"] = "reject"):
        self._definitions: Dict[str, TransformationDefinition] = {}
        self._lock = threading.Lock()
        self._frozen = False
        self.duplicate_policy = duplicate_policy

    def register(self, definition: TransformationDefinition, replace: Optional[bool] = None) -> None:
        """Add a definition.

        Raises
        ------
        DuplicateTransformationError
            If the id exists and replacement is not allowed.
        RegistryFrozenError
            If the registry has been frozen.
        """
        if replace is None:
            replace = self.duplicate_policy == "replace"

        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Registry is frozen; cannot register '{definition.id}'"
                )
            if definition.id in self._definitions:
                if not replace:
                    raise DuplicateTransformationError(
                        f"Transformation '{definition.id}' is already registered"
                    )
                logger.warning("Replacing registered transformation '%s'", definition.id)
            self._definitions[definition.id] = definition

    def get(self, transformation_id: str) -> Optional[TransformationDefinition]:
        return self._definitions.get(transformation_id)

    def freeze(self) -> None:
        """Make the registry read-only."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def ids(self) -> List[str]:
        return list(self._definitions)

    def definitions(self) -> List[TransformationDefinition]:
        return list(self._definitions.values())

    def is_output_step(self, transformation_id: str) -> bool:
        definition = self.get(transformation_id)
        return definition is not None and definition.is_output

    def __contains__(self, transformation_id: str) -> bool:
        return transformation_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"TransformationRegistry({len(self)} transformations, {state})"


def validate_recipe(recipe: Recipe, registry: TransformationRegistry) -> Dict[str, TransformationParams]:
    """Check every step's parameters against its transformation schema.

    Steps naming an unknown transformation are logged and left out of the
    result; the engine skips them at run time.

    Parameters
    ----------
    recipe : Recipe
        Loaded recipe document.
    registry : TransformationRegistry
        Registry to resolve ids against.

    Returns
    -------
    dict
        Step id → validated parameter model.

    Raises
    ------
    RecipeValidationError
        If any step's params are rejected. All offending steps are listed.
    """
    resolved = {}
    problems = {}

    for step in recipe.steps:
        definition = registry.get(step.transformation_id)
        if definition is None:
            logger.warning(
                "Recipe '%s' step '%s' references unknown transformation '%s'",
                recipe.id, step.id, step.transformation_id,
            )
            continue
        try:
            resolved[step.id] = definition.resolve_params(step.params)
        except ValidationError as e:
            reasons = ", ".join(
                f"{'.'.join(str(loc) for loc in err['loc']) or 'params'}: {err['msg']}"
                for err in e.errors()
            )
            problems[step.id] = reasons

    if problems:
        raise RecipeValidationError(recipe.id, problems)

    return resolved


def build_default_registry(duplicate_policy: Literal["reject", "replace"] = "reject") -> TransformationRegistry:
    """Create a registry holding every built-in transformation, frozen."""
    from imgrecipe.transforms import register_builtin_transformations

    registry = TransformationRegistry(duplicate_policy=duplicate_policy)
    register_builtin_transformations(registry)
    registry.freeze()
    logger.debug("Registered %d built-in transformations", len(registry))
    return registry
