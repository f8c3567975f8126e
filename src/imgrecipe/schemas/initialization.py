"""Runtime initialization for imgrecipe batch runs.

Handles configuration resolution (CLI > User > Param), output directory
setup, persistence of the resolved configuration with a run ID, and
returns the InternalConfig the batch runner needs.
"""

import importlib.util
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

from imgrecipe.schemas.resolve import resolve_config
from imgrecipe.schemas.param import ParamConfig
from imgrecipe.schemas.user import UserConfig
from imgrecipe.schemas.cli import CLIConfig
from imgrecipe.schemas.internal import InternalConfig
from imgrecipe.setup_directories import setup_output_directories

logger = logging.getLogger(__name__)


def generate_run_id() -> str:
    """Return a sortable run identifier, e.g. ``20260101T120000Z-1a2b3c``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid.uuid4().hex[:6]}"


def load_user_config_dict(config_path: str | Path) -> dict:
    """Load the ``CONFIG`` dict from a Python user config file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("imgrecipe_user_config", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load config module from {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def _persist_runtime_config(config: InternalConfig, output_dirs: Dict[str, Path]) -> Path:
    """Save the resolved configuration next to the run's logs."""
    config_file = Path(output_dirs["logs"]) / f"runtime_config_{config.run_id}.json"

    config_dict = config.model_dump()
    config_dict["created_at"] = datetime.now(timezone.utc).isoformat()

    with open(config_file, 'w') as f:
        json.dump(config_dict, f, indent=2, default=str)

    logger.info("Runtime config saved: %s", config_file)
    return config_file


def init_runtime_config(args) -> Tuple[InternalConfig, Optional[Dict[str, Path]]]:
    """Resolve configuration from an argparse namespace and prepare outputs.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed CLI arguments. Reads ``config`` (optional user config
        file), ``output_dir``, ``workers``, ``verbose`` and ``no_log``.

    Returns
    -------
    config : InternalConfig
        Frozen runtime configuration with a fresh ``run_id``.
    output_dirs : dict or None
        Directory layout from ``setup_output_directories``, or None when
        no output directory is configured (archive-only run).
    """
    config_path = getattr(args, 'config', None)
    user_cfg = UserConfig()
    if config_path:
        user_cfg = UserConfig.model_validate(load_user_config_dict(config_path))

    cli_args = {
        k: v
        for k, v in {
            "output_dir": getattr(args, 'output_dir', None),
            "workers": getattr(args, 'workers', None),
            "log_level": "DEBUG" if getattr(args, 'verbose', False) else None,
            "no_log": getattr(args, 'no_log', None) or None,
        }.items()
        if v is not None
    }
    cli_cfg = CLIConfig.model_validate(cli_args)

    config = resolve_config(ParamConfig(), user_cfg, cli_cfg, run_id=generate_run_id())

    output_dirs = None
    if config.output.base_dir:
        output_dirs = setup_output_directories(config.output.base_dir)
        _persist_runtime_config(config, output_dirs)

    return config, output_dirs


__all__ = ['init_runtime_config', 'load_user_config_dict', 'generate_run_id']
