"""Output directory layout for imgrecipe runs."""

import logging
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

OUTPUT_SUBDIRS = ("logs", "previews")


def setup_output_directories(base_dir: str | Path) -> Dict[str, Path]:
    """Create the standard output layout under ``base_dir``.

    Artifacts (exports, aggregation outputs, the batch log) are written
    to the base directory itself or to recipe-chosen subfolders of it.

    Returns
    -------
    dict
        ``{"base": ..., "logs": ..., "previews": ...}``, all existing.
    """
    base = Path(base_dir).expanduser().resolve()
    dirs = {"base": base}
    for name in OUTPUT_SUBDIRS:
        dirs[name] = base / name

    for path in dirs.values():
        path.mkdir(parents=True, exist_ok=True)

    logger.debug("Output directories ready under %s", base)
    return dirs
