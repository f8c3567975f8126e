"""Pipeline modules.

- engine: Recipe execution over one image
- captures: Aggregation capture accumulator
- compositor: Contact sheet, GIF and video outputs
- batch: Batch driver and logging setup
- status_tracker: SQLite-based per-image status tracking
"""

from imgrecipe.pipeline.engine import RecipeEngine
from imgrecipe.pipeline.captures import CaptureSet
from imgrecipe.pipeline.compositor import Compositor, CompositeOutcome
from imgrecipe.pipeline.batch import BatchRunner, BatchReport, configure_logging
from imgrecipe.pipeline.status_tracker import ImageStatusTracker

__all__ = [
    "RecipeEngine",
    "CaptureSet",
    "Compositor",
    "CompositeOutcome",
    "BatchRunner",
    "BatchReport",
    "configure_logging",
    "ImageStatusTracker",
]
