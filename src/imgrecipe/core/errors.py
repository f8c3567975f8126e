"""Exception types raised by the engine, kernels and batch stages.

ContractViolation (pipeline bugs) lives in ``imgrecipe.contracts``.
"""


class RecipeValidationError(ValueError):
    """A recipe references bad parameter values.

    ``problems`` maps step id to a human-readable reason.
    """

    def __init__(self, recipe_id: str, problems: dict):
        self.recipe_id = recipe_id
        self.problems = dict(problems)
        details = "; ".join(f"{step_id}: {reason}" for step_id, reason in self.problems.items())
        super().__init__(f"Recipe '{recipe_id}' has invalid steps: {details}")


class RegistryError(KeyError):
    """Base class for registry misuse."""


class DuplicateTransformationError(RegistryError):
    """A transformation id was registered twice without ``replace=True``."""


class RegistryFrozenError(RegistryError):
    """Registration attempted after the registry was frozen."""


class KernelError(RuntimeError):
    """A kernel could not complete; aborts the current image's pass."""


class EncodingError(KernelError):
    """Encoding the raster buffer to an image format failed."""


class CompositingError(RuntimeError):
    """One aggregation output could not be produced."""


class ImageLoadError(IOError):
    """A source image could not be decoded."""
