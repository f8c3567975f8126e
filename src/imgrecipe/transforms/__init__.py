"""Built-in transformations.

``register_builtin_transformations`` is the startup routine that fills a
registry before any recipe runs.
"""

from imgrecipe.core.registry import TransformationRegistry
from imgrecipe.transforms.filters import ADVANCED_FILTERS
from imgrecipe.transforms.tonal import TONAL_FILTERS
from imgrecipe.transforms.geometry import GEOMETRY_TRANSFORMS
from imgrecipe.transforms.detection import DETECTION_TRANSFORMS
from imgrecipe.transforms.workflow import OUTPUT_TRANSFORMS, WORKFLOW_TRANSFORMS

__all__ = ['BUILTIN_TRANSFORMATIONS', 'register_builtin_transformations']

BUILTIN_TRANSFORMATIONS = (
    *TONAL_FILTERS,
    *GEOMETRY_TRANSFORMS,
    *WORKFLOW_TRANSFORMS,
    *ADVANCED_FILTERS,
    *DETECTION_TRANSFORMS,
    *OUTPUT_TRANSFORMS,
)


def register_builtin_transformations(registry: TransformationRegistry) -> TransformationRegistry:
    """Register every built-in definition and return the registry."""
    for definition in BUILTIN_TRANSFORMATIONS:
        registry.register(definition)
    return registry
