"""Workflow and output steps.

Export and aggregation steps carry no kernel: the engine encodes the
current buffer for them. State snapshots and the output folder are
ordinary kernels that only touch the run context.
"""

import logging
from pathlib import PurePosixPath

from imgrecipe.core.context import RunContext
from imgrecipe.core.errors import KernelError
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import AggregationKind, TransformationDefinition, TransformationKind
from imgrecipe.transforms.common import range_param, select_param, text_param

__all__ = [
    'WORKFLOW_TRANSFORMS',
    'OUTPUT_TRANSFORMS',
    'EXPORT_FORMAT_OPTIONS',
    'sanitize_subfolder',
]

logger = logging.getLogger(__name__)

EXPORT_FORMAT_OPTIONS = [
    ("JPEG", "image/jpeg"),
    ("PNG", "image/png"),
    ("WebP", "image/webp"),
    ("AVIF", "image/avif"),
    ("TIFF", "image/tiff"),
]


def sanitize_subfolder(folder: str) -> str:
    """Normalize a user folder name to a relative POSIX path.

    Raises
    ------
    KernelError
        If the path would escape the output root.
    """
    parts = [p for p in PurePosixPath(folder.strip().replace("\\", "/")).parts if p not in ("/", ".", "")]
    if any(p == ".." for p in parts):
        raise KernelError(f"Output folder may not leave the output root: {folder!r}")
    return "/".join(parts)


def save_state(buffer: RasterBuffer, params, context: RunContext) -> None:
    context.variables[params.name] = buffer.copy()


def load_state(buffer: RasterBuffer, params, context: RunContext) -> None:
    snapshot = context.variables.get(params.name)
    if snapshot is None:
        logger.warning("No saved state named '%s' for %s; step has no effect",
                       params.name, context.filename)
        return
    buffer.load(snapshot)


def output_folder(buffer: RasterBuffer, params, context: RunContext) -> None:
    context.output_subfolder = sanitize_subfolder(params.folder) or None


WORKFLOW_TRANSFORMS = (
    TransformationDefinition(
        id="workflow-export",
        name="Export Image",
        description="Write the current image as a file.",
        params=(
            text_param("suffix", "Filename Suffix", "_processed"),
            select_param("format", "Format", "image/jpeg", EXPORT_FORMAT_OPTIONS),
            range_param("quality", "Quality", 90, 1, 100, step=1),
        ),
        kind=TransformationKind.EXPORT,
    ),
    TransformationDefinition(
        id="workflow-save-state",
        name="Save State",
        description="Remember the current image under a name.",
        params=(text_param("name", "State Name", "default"),),
        apply=save_state,
    ),
    TransformationDefinition(
        id="workflow-load-state",
        name="Load State",
        description="Restore an image saved earlier in this recipe.",
        params=(text_param("name", "State Name", "default"),),
        apply=load_state,
    ),
)

OUTPUT_TRANSFORMS = (
    TransformationDefinition(
        id="output-folder",
        name="Set Output Folder",
        description="Write later exports into a subfolder.",
        params=(text_param("folder", "Folder Name", "output"),),
        apply=output_folder,
    ),
    TransformationDefinition(
        id="output-contact-sheet",
        name="Create Contact Sheet",
        description="Grid of every processed image.",
        params=(
            text_param("filename", "Filename (blank for automatic)", ""),
            range_param("columns", "Columns", 5, 1, 20, step=1),
            range_param("gap", "Gap (px)", 10, 0, 100, step=1),
        ),
        kind=TransformationKind.AGGREGATION,
        aggregation=AggregationKind.CONTACT_SHEET,
    ),
    TransformationDefinition(
        id="output-gif",
        name="Create GIF",
        description="Animated GIF of every processed image.",
        params=(
            text_param("filename", "Filename (blank for automatic)", ""),
            range_param("seconds_per_slide", "Seconds per Slide", 0.5, 0.1, 10, step=0.1),
        ),
        kind=TransformationKind.AGGREGATION,
        aggregation=AggregationKind.ANIMATION,
    ),
    TransformationDefinition(
        id="output-video",
        name="Create Video",
        description="Slideshow video of every processed image.",
        params=(
            text_param("filename", "Filename (blank for automatic)", ""),
            range_param("seconds_per_slide", "Seconds per Slide", 1, 0.1, 10, step=0.1),
            range_param("fps", "FPS", 30, 1, 60, step=1),
        ),
        kind=TransformationKind.AGGREGATION,
        aggregation=AggregationKind.VIDEO,
    ),
)
