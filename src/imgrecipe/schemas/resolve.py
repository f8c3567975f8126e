"""Configuration resolution and merging logic.

``resolve_config()`` is the single entrypoint: it merges ParamConfig,
UserConfig and CLIConfig in precedence order and returns a validated,
frozen InternalConfig.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. UserConfig (user file)
3. ParamConfig (expert defaults)
"""

from typing import Union, Optional
from imgrecipe.schemas.param import ParamConfig
from imgrecipe.schemas.user import UserConfig
from imgrecipe.schemas.cli import CLIConfig
from imgrecipe.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values are replaced.

    Examples
    --------
    >>> deep_merge({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
    {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def _coerce(model_cls, value):
    if value is None or (isinstance(value, dict) and not value):
        return model_cls()
    if isinstance(value, model_cls):
        return value
    return model_cls.model_validate(value)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
    run_id: Optional[str] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, user, and CLI configs.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    user_cfg : dict or UserConfig, optional
        User overrides. None or empty uses only param defaults.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.
    run_id : str, optional
        Identifier stamped on the resolved config (log and report names).

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValidationError
        If any config fails Pydantic validation

    Examples
    --------
    >>> config = resolve_config(ParamConfig(), UserConfig(WORKERS=4))
    >>> config.batch.workers
    4
    """
    param = _coerce(ParamConfig, param_cfg)
    user = _coerce(UserConfig, user_cfg)
    cli = _coerce(CLIConfig, cli_cfg)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )
    if run_id is not None:
        merged["run_id"] = run_id

    return InternalConfig.model_validate(merged)
