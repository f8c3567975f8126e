"""Pydantic schemas for imgrecipe.

Recipe documents, parameter declarations and the layered run
configuration. All validation, coercion and normalization happens here
at load time.

Exports
-------
Recipe, RecipeStep, Condition : class
    Recipe document models
load_recipe, save_recipe : function
    JSON document persistence
ParameterDefinition : class
    Declared transformation parameter
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig, ParamConfig, UserConfig, CLIConfig : class
    Configuration layers
"""

from imgrecipe.schemas.recipe import Condition, RecipeStep, Recipe, load_recipe, save_recipe
from imgrecipe.schemas.parameter import (
    ParameterDefinition,
    SelectOption,
    TransformationParams,
    build_params_model,
)
from imgrecipe.schemas.resolve import resolve_config, deep_merge
from imgrecipe.schemas.internal import InternalConfig
from imgrecipe.schemas.param import ParamConfig
from imgrecipe.schemas.user import UserConfig
from imgrecipe.schemas.cli import CLIConfig

__all__ = [
    'Condition',
    'RecipeStep',
    'Recipe',
    'load_recipe',
    'save_recipe',
    'ParameterDefinition',
    'SelectOption',
    'TransformationParams',
    'build_params_model',
    'resolve_config',
    'deep_merge',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
