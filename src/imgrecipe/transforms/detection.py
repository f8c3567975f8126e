"""Detection-driven kernels: face privacy, smart redaction, background removal, crop to face.

The detectors and the background model are external collaborators
reached through ``context.collaborators``. A kernel whose collaborator
is missing raises ``KernelError``; collaborator exceptions propagate and
abort the image's pass.
"""

import logging
from typing import List, Sequence

import numpy as np
from skimage.draw import ellipse

from imgrecipe.core.context import Detection, RunContext
from imgrecipe.core.errors import KernelError
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import TransformationDefinition
from imgrecipe.transforms.common import gaussian_blur, range_param, select_param, to_uint8
from imgrecipe.transforms.geometry import crop_box

__all__ = ['DETECTION_TRANSFORMS', 'ellipse_mask', 'box_mask', 'union_box']

logger = logging.getLogger(__name__)

REDACTION_PADDING = 2


def _confident(detections: Sequence[Detection], confidence: float) -> List[Detection]:
    return [d for d in detections if d.confidence >= confidence]


def ellipse_mask(shape: tuple, boxes: Sequence[tuple]) -> np.ndarray:
    """Union of ellipses inscribed in each ``(x, y, w, h)`` box."""
    mask = np.zeros(shape, dtype=bool)
    for x, y, w, h in boxes:
        if w <= 0 or h <= 0:
            continue
        rr, cc = ellipse(y + h / 2.0, x + w / 2.0, h / 2.0, w / 2.0, shape=shape)
        mask[rr, cc] = True
    return mask


def box_mask(shape: tuple, boxes: Sequence[tuple], padding: int = 0) -> np.ndarray:
    """Union of padded rectangles, clipped to ``shape``."""
    mask = np.zeros(shape, dtype=bool)
    height, width = shape
    for x, y, w, h in boxes:
        top = max(int(np.floor(y - padding)), 0)
        left = max(int(np.floor(x - padding)), 0)
        bottom = min(int(np.ceil(y + h + padding)), height)
        right = min(int(np.ceil(x + w + padding)), width)
        if bottom > top and right > left:
            mask[top:bottom, left:right] = True
    return mask


def union_box(boxes: Sequence[tuple]) -> tuple:
    """Smallest ``(left, top, right, bottom)`` covering all boxes."""
    left = min(x for x, _, _, _ in boxes)
    top = min(y for _, y, _, _ in boxes)
    right = max(x + w for x, _, w, _ in boxes)
    bottom = max(y + h for _, y, _, h in boxes)
    return left, top, right, bottom


def _blur_inside(buffer: RasterBuffer, mask: np.ndarray, sigma: float) -> None:
    if not mask.any():
        return
    blurred = to_uint8(gaussian_blur(buffer.pixels, sigma))
    buffer.pixels[mask] = blurred[mask]


def _face_detector(context: RunContext, transformation_id: str):
    detector = context.collaborators.face_detector
    if detector is None:
        raise KernelError(f"{transformation_id}: no face detector configured")
    return detector


def face_privacy(buffer: RasterBuffer, params, context: RunContext) -> None:
    detector = _face_detector(context, "ai-face-privacy")
    faces = _confident(detector.detect(buffer), params.confidence)
    logger.debug("Face privacy: %d face(s) above %.2f in %s",
                 len(faces), params.confidence, context.filename)
    if not faces:
        return
    mask = ellipse_mask((buffer.height, buffer.width), [face.box for face in faces])
    _blur_inside(buffer, mask, params.blur_amount)


def smart_redaction(buffer: RasterBuffer, params, context: RunContext) -> None:
    detector = context.collaborators.text_detector
    if detector is None:
        raise KernelError("ai-smart-redaction: no text detector configured")
    regions = detector.detect(buffer, language=params.language)
    if not regions:
        return
    mask = box_mask((buffer.height, buffer.width), [r.box for r in regions], REDACTION_PADDING)
    _blur_inside(buffer, mask, params.blur_amount)


def background_removal(buffer: RasterBuffer, params, context: RunContext) -> None:
    remover = context.collaborators.background_remover
    if remover is None:
        raise KernelError("ai-background-removal: no background remover configured")
    result = remover.remove_background(buffer.copy(), model=params.model)
    if result.size != buffer.size:
        raise KernelError(
            f"ai-background-removal: remover returned {result.size}, expected {buffer.size}"
        )
    buffer.load(result)


def crop_to_face(buffer: RasterBuffer, params, context: RunContext) -> None:
    detector = _face_detector(context, "geometry-crop-to-face")
    faces = _confident(detector.detect(buffer), params.confidence)
    if not faces:
        logger.info("Crop to face: no faces found in %s, leaving image uncropped", context.filename)
        return

    left, top, right, bottom = union_box([face.box for face in faces])
    padding = params.padding
    left = max(0, left - padding)
    top = max(0, top - padding)
    right = min(buffer.width, right + padding)
    bottom = min(buffer.height, bottom + padding)
    crop_box(buffer, left, top, right - left, bottom - top)


DETECTION_TRANSFORMS = (
    TransformationDefinition(
        id="ai-face-privacy",
        name="Face Privacy",
        description="Detect and blur faces.",
        params=(
            range_param("blur_amount", "Blur Amount", 10, 1, 20),
            range_param("confidence", "Confidence Threshold", 0.5, 0.1, 1.0, step=0.1),
        ),
        apply=face_privacy,
    ),
    TransformationDefinition(
        id="ai-smart-redaction",
        name="Smart Redaction",
        description="Detect and blur text.",
        params=(
            range_param("blur_amount", "Blur Amount", 5, 1, 20),
            select_param("language", "Language", "eng", [("English", "eng")]),
        ),
        apply=smart_redaction,
    ),
    TransformationDefinition(
        id="ai-background-removal",
        name="Remove Background",
        description="Make the background transparent.",
        params=(
            select_param("model", "Model Quality", "medium",
                         [("Medium (Balanced)", "medium"), ("Small (Fast)", "small")]),
        ),
        apply=background_removal,
    ),
    TransformationDefinition(
        id="geometry-crop-to-face",
        name="Crop to Face",
        description="Crop to include all detected faces.",
        params=(
            range_param("padding", "Padding (px)", 50, 0, 500),
            range_param("confidence", "Confidence Threshold", 0.5, 0.1, 1.0, step=0.1),
        ),
        apply=crop_to_face,
    ),
)
