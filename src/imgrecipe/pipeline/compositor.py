"""Batch-final compositing: contact sheets, animated GIFs and videos.

Runs once, after every image in a batch has been processed, over the
frames captured by each aggregation step. Each aggregation step is
produced independently; one failing does not stop the others.
"""

import io
import logging
import math
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence, TYPE_CHECKING

import cv2
import numpy as np
from PIL import Image

from imgrecipe.contracts import assert_composite_output
from imgrecipe.core.codec import decode_image, flatten_over_black
from imgrecipe.core.errors import CompositingError
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import AggregationKind, TransformationKind, TransformationRegistry
from imgrecipe.pipeline.captures import CaptureSet
from imgrecipe.schemas.recipe import Recipe

if TYPE_CHECKING:
    from imgrecipe.schemas import InternalConfig

__all__ = ['Compositor', 'CompositeOutcome', 'OUTPUT_FILENAMES', 'frames_per_slide']

logger = logging.getLogger(__name__)

OUTPUT_FILENAMES = {
    AggregationKind.CONTACT_SHEET: ("contact_sheet", "jpg"),
    AggregationKind.ANIMATION: ("animation", "gif"),
    AggregationKind.VIDEO: ("video", "mp4"),
}


@dataclass
class CompositeOutcome:
    """Result of compositing one aggregation step."""
    step_id: str
    kind: AggregationKind
    filename: str
    frame_count: int
    data: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None


def frames_per_slide(seconds_per_slide: float, fps: float) -> int:
    """Encoded frames per slide, rounding halves up."""
    return max(1, math.floor(seconds_per_slide * fps + 0.5))


def _fit(frame: RasterBuffer, size: tuple) -> Image.Image:
    """Frame as an RGBA Pillow image stretched to ``size``."""
    image = frame.to_pil()
    if image.size != size:
        image = image.resize(size, Image.Resampling.BILINEAR)
    return image


class Compositor:
    """Builds batch-level artifacts from captured frames.

    Parameters
    ----------
    config : InternalConfig
        Supplies contact sheet quality, video codec, keyframe interval
        and GIF looping.

    Example usage::

        compositor = Compositor(config)
        outcomes = compositor.compose(recipe, registry, captures)
        for outcome in outcomes:
            if outcome.ok:
                router.write(outcome.data, outcome.filename)
    """

    def __init__(self, config: "InternalConfig"):
        self.config = config

    # ------------------------------------------------------------------
    # Batch entry point
    # ------------------------------------------------------------------

    def compose(self, recipe: Recipe, registry: TransformationRegistry,
                captures: CaptureSet) -> List[CompositeOutcome]:
        """Composite every aggregation step of ``recipe`` that has frames.

        Steps are handled in recipe order. Failures are logged and
        reported in the outcome instead of raised.
        """
        aggregation_steps = []
        for step in recipe.steps:
            definition = registry.get(step.transformation_id)
            if definition is not None and definition.kind == TransformationKind.AGGREGATION:
                aggregation_steps.append((step, definition))

        kind_counts = {}
        for _, definition in aggregation_steps:
            kind_counts[definition.aggregation] = kind_counts.get(definition.aggregation, 0) + 1

        outcomes = []
        for step, definition in aggregation_steps:
            kind = AggregationKind(definition.aggregation)
            stem, ext = OUTPUT_FILENAMES[kind]
            filename = f"{stem}_{step.id}.{ext}" if kind_counts[definition.aggregation] > 1 else f"{stem}.{ext}"

            if step.id not in captures:
                logger.info("No frames captured for '%s', skipping %s", step.id, filename)
                continue

            encoded = captures.frames(step.id)
            outcome = CompositeOutcome(step.id, kind, filename, frame_count=len(encoded))
            try:
                params = definition.resolve_params(step.params)
                # Only the base name of a requested filename is used
                requested = PurePosixPath(params.filename.strip().replace("\\", "/")).name
                if requested:
                    filename = outcome.filename = requested
                frames = [decode_image(data) for data in encoded]
                if kind == AggregationKind.CONTACT_SHEET:
                    data = self.contact_sheet(frames, int(params.columns), int(params.gap))
                elif kind == AggregationKind.ANIMATION:
                    data = self.animation(frames, params.seconds_per_slide)
                else:
                    data = self.video(frames, params.seconds_per_slide, params.fps)
                assert_composite_output(step.id, data)
                outcome.data = data
                logger.info("Composited %s from %d frame(s)", filename, len(frames))
            except Exception as e:
                logger.exception("Compositing %s for step '%s' failed", filename, step.id)
                outcome.error = str(e)
            outcomes.append(outcome)

        return outcomes

    # ------------------------------------------------------------------
    # Individual artifacts
    # ------------------------------------------------------------------

    def contact_sheet(self, frames: Sequence[RasterBuffer], columns: int, gap: int) -> bytes:
        """Grid of frames on a black canvas, encoded as JPEG.

        The first frame's size is the cell size; every frame is stretched
        into its cell. The canvas is
        ``cell_w * columns + gap * (columns - 1)`` wide and
        ``cell_h * rows + gap * (rows - 1)`` tall with
        ``rows = ceil(len(frames) / columns)``.
        """
        if not frames:
            raise CompositingError("Contact sheet needs at least one frame")
        if columns < 1:
            raise CompositingError(f"Contact sheet needs at least one column, got {columns}")

        cell_w, cell_h = frames[0].size
        rows = math.ceil(len(frames) / columns)
        width = cell_w * columns + gap * (columns - 1)
        height = cell_h * rows + gap * (rows - 1)

        sheet = Image.new("RGB", (width, height), (0, 0, 0))
        for index, frame in enumerate(frames):
            row, col = divmod(index, columns)
            cell = _fit(frame, (cell_w, cell_h))
            sheet.paste(flatten_over_black(cell), (col * (cell_w + gap), row * (cell_h + gap)))

        stream = io.BytesIO()
        sheet.save(stream, format="JPEG", quality=self.config.compositing.contact_sheet_quality)
        return stream.getvalue()

    def animation(self, frames: Sequence[RasterBuffer], seconds_per_slide: float) -> bytes:
        """Looping animated GIF, one frame per capture, in capture order."""
        if not frames:
            raise CompositingError("Animation needs at least one frame")

        size = frames[0].size
        images = [flatten_over_black(_fit(frame, size)) for frame in frames]
        duration_ms = int(round(seconds_per_slide * 1000))

        stream = io.BytesIO()
        images[0].save(
            stream,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=duration_ms,
            loop=self.config.compositing.gif_loop,
        )
        return stream.getvalue()

    def video(self, frames: Sequence[RasterBuffer], seconds_per_slide: float, fps: float) -> bytes:
        """MP4 slideshow sized to the first frame.

        Each capture is repeated ``frames_per_slide(seconds_per_slide, fps)``
        times. The keyframe interval comes from configuration.
        """
        if not frames:
            raise CompositingError("Video needs at least one frame")

        size = frames[0].size
        repeats = frames_per_slide(seconds_per_slide, fps)

        with tempfile.TemporaryDirectory(prefix="imgrecipe_video_") as tmp:
            path = Path(tmp) / "video.mp4"
            writer = self._open_video_writer(path, float(fps), size)
            try:
                for frame in frames:
                    rgb = np.asarray(flatten_over_black(_fit(frame, size)))
                    bgr = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
                    for _ in range(repeats):
                        writer.write(bgr)
            finally:
                writer.release()

            if not path.exists() or path.stat().st_size == 0:
                raise CompositingError("Video writer produced no output")
            data = path.read_bytes()

        logger.debug("Encoded video: %d slides x %d frames at %.1f fps", len(frames), repeats, fps)
        return data

    def _open_video_writer(self, path: Path, fps: float, size: tuple) -> "cv2.VideoWriter":
        compositing = self.config.compositing
        fourcc = cv2.VideoWriter_fourcc(*compositing.video_fourcc)

        key_interval_prop = getattr(cv2, "VIDEOWRITER_PROP_KEY_INTERVAL", None)
        if key_interval_prop is not None:
            writer = cv2.VideoWriter(
                str(path), cv2.CAP_FFMPEG, fourcc, fps, size,
                [key_interval_prop, compositing.keyframe_interval],
            )
            if writer.isOpened():
                return writer
            writer.release()
            logger.warning("Video backend rejected keyframe interval %d, using its default",
                           compositing.keyframe_interval)
        else:
            logger.warning("OpenCV build cannot set a keyframe interval, using backend default")

        writer = cv2.VideoWriter(str(path), fourcc, fps, size)
        if not writer.isOpened():
            raise CompositingError(
                f"Could not open video writer (fourcc={compositing.video_fourcc}, size={size})"
            )
        return writer
