"""Per-pass execution state and results.

A ``RunContext`` is created for one image and owned by exactly one
execution pass. ``ProcessResult`` is what the pass hands back: either a
deliverable artifact or, when ``aggregation_id`` is set, a capture kept
for the compositing phase.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence, runtime_checkable

from imgrecipe.core.raster import RasterBuffer

__all__ = ['Detection', 'Detector', 'TextDetector', 'BackgroundRemover', 'Collaborators', 'RunContext', 'ProcessResult']


@dataclass(frozen=True)
class Detection:
    """One detected region: ``box`` is ``(x, y, width, height)`` in pixels."""
    box: tuple
    confidence: float = 1.0

    @property
    def center(self) -> tuple:
        x, y, w, h = self.box
        return x + w / 2.0, y + h / 2.0


@runtime_checkable
class Detector(Protocol):
    """Finds face regions in a raster."""

    def detect(self, image: RasterBuffer) -> Sequence[Detection]:
        ...


@runtime_checkable
class TextDetector(Protocol):
    """Finds text regions; ``language`` is a Tesseract-style code such as ``eng``."""

    def detect(self, image: RasterBuffer, language: str = "eng") -> Sequence[Detection]:
        ...


@runtime_checkable
class BackgroundRemover(Protocol):
    """Returns an RGBA copy of the image with the background made transparent."""

    def remove_background(self, image: RasterBuffer, model: str) -> RasterBuffer:
        ...


@dataclass
class Collaborators:
    """External capabilities the detection-driven kernels consume.

    Any of them may be None; a kernel that needs a missing one fails
    with ``KernelError``.
    """
    face_detector: Optional[Detector] = None
    text_detector: Optional[TextDetector] = None
    background_remover: Optional[BackgroundRemover] = None


@dataclass
class RunContext:
    """Execution state for one image and one pass.

    Attributes
    ----------
    original_image : RasterBuffer
        Decoded source image; never mutated by the engine.
    filename : str
        Source file name, used to name exports.
    metadata : dict, optional
        Values resolved by ``metadata.<key>`` conditions.
    variables : dict
        Named raster snapshots written by save-state steps.
    output_subfolder : str, optional
        Set by output-folder steps; applied to later exports.
    collaborators : Collaborators
        Detectors and model-backed capabilities.
    """
    original_image: RasterBuffer
    filename: str
    metadata: Optional[Dict[str, Any]] = None
    variables: Dict[str, RasterBuffer] = field(default_factory=dict)
    output_subfolder: Optional[str] = None
    collaborators: Collaborators = field(default_factory=Collaborators)

    def fresh(self) -> "RunContext":
        """Copy with per-pass state (variables, subfolder) reset."""
        return RunContext(
            original_image=self.original_image,
            filename=self.filename,
            metadata=self.metadata,
            collaborators=self.collaborators,
        )


@dataclass(frozen=True)
class ProcessResult:
    """One artifact produced by a pass.

    ``aggregation_id`` set means the data is a capture for the
    compositing phase and not a deliverable.
    """
    data: bytes
    filename: str
    aggregation_id: Optional[str] = None
    subfolder: Optional[str] = None

    @property
    def is_capture(self) -> bool:
        return self.aggregation_id is not None

    def __repr__(self) -> str:
        return (
            f"ProcessResult(filename={self.filename!r}, bytes={len(self.data)}, "
            f"aggregation_id={self.aggregation_id!r}, subfolder={self.subfolder!r})"
        )
