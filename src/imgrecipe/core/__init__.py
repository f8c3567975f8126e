"""Core building blocks shared by kernels, the engine and the batch runner."""

from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.context import (
    BackgroundRemover,
    Collaborators,
    Detection,
    Detector,
    ProcessResult,
    TextDetector,
    RunContext,
)
from imgrecipe.core.registry import (
    AggregationKind,
    TransformationDefinition,
    TransformationKind,
    TransformationRegistry,
    build_default_registry,
    validate_recipe,
)
from imgrecipe.core.conditions import evaluate_condition
from imgrecipe.core.errors import (
    CompositingError,
    DuplicateTransformationError,
    EncodingError,
    ImageLoadError,
    KernelError,
    RecipeValidationError,
    RegistryError,
    RegistryFrozenError,
)

__all__ = [
    'RasterBuffer',
    'BackgroundRemover',
    'Collaborators',
    'Detection',
    'Detector',
    'TextDetector',
    'ProcessResult',
    'RunContext',
    'AggregationKind',
    'TransformationDefinition',
    'TransformationKind',
    'TransformationRegistry',
    'build_default_registry',
    'validate_recipe',
    'evaluate_condition',
    'CompositingError',
    'DuplicateTransformationError',
    'EncodingError',
    'ImageLoadError',
    'KernelError',
    'RecipeValidationError',
    'RegistryError',
    'RegistryFrozenError',
]
