"""Batch driver.

Runs one recipe over many images, routes their artifacts, collects
aggregation captures and, after the last image, composites the
batch-level outputs and writes the batch log.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union, TYPE_CHECKING

from imgrecipe.contracts import FailurePolicy
from imgrecipe.core.context import Collaborators, RunContext
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import TransformationRegistry, build_default_registry, validate_recipe
from imgrecipe.io.batch_log import BatchLog
from imgrecipe.io.detection import build_face_detector
from imgrecipe.io.loader import load_image
from imgrecipe.io.metadata import ExifMetadataExtractor
from imgrecipe.io.output_router import OutputRouter
from imgrecipe.pipeline.captures import CaptureSet
from imgrecipe.pipeline.compositor import Compositor
from imgrecipe.pipeline.engine import RecipeEngine
from imgrecipe.pipeline.status_tracker import ImageStatusTracker
from imgrecipe.schemas.recipe import Recipe

if TYPE_CHECKING:
    from imgrecipe.schemas import InternalConfig

__all__ = ['BatchRunner', 'BatchReport', 'configure_logging', 'Source']

logger = logging.getLogger(__name__)

# A batch input: a file path, or an already decoded image with its name
Source = Union[str, Path, Tuple[str, RasterBuffer]]


def configure_logging(config: "InternalConfig", log_dir: Optional[str | Path] = None) -> Optional[Path]:
    """Configure the root logger for a batch run.

    Installs a console handler and, when ``log_dir`` is given, a file
    handler writing ``imgrecipe_<run_id>.log``. Existing root handlers
    are removed. Level comes from ``config.logging.level``.

    Returns
    -------
    Path or None
        The log file path, if one was created.
    """
    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    log_path = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"imgrecipe_{config.run_id or 'run'}.log"

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    logger.info("Logging: level=%s, file=%s", config.logging.level, log_path)
    return log_path


@dataclass
class BatchReport:
    """Summary of one batch run.

    Attributes
    ----------
    processed, failed, skipped : int
        Image counts by outcome.
    artifacts : list of str
        Where each deliverable went (file path or ``zip:<entry>``).
    messages : list of str
        Failure descriptions, one per failed image or aggregation.
    statuses : dict
        Input index to final status.
    cancelled : bool
        True if ``cancel()`` stopped the run early.
    archive : bytes, optional
        Fallback ZIP archive, when any artifact could not be written.
    statistics : dict
        Counts from the status tracker.
    """
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    artifacts: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    statuses: Dict[int, str] = field(default_factory=dict)
    cancelled: bool = False
    archive: Optional[bytes] = None
    statistics: Dict = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped

    @property
    def all_failed(self) -> bool:
        return self.total > 0 and self.failed == self.total


class BatchRunner:
    """Runs a recipe over a batch of images.

    **Per image** (in input order, or concurrently with ``workers > 1``):

    1. Skip it if the batch was cancelled.
    2. Load the image and extract its metadata (metadata failures are
       logged and leave the metadata empty).
    3. Execute the recipe with a fresh ``RunContext``.
    4. Route deliverables immediately; keep captures keyed by
       ``(aggregation_id, input_index)``.
    5. Add a batch log row and record the image's status.

    A failure in one image is logged with its traceback, recorded as
    ``failed`` and the batch continues (unless the failure policy is
    ``fail_fast``).

    **After the last image:** every aggregation step is composited in
    recipe order and written to the output root, then the batch log is
    written and the fallback archive, if any, finalized. A cancelled
    batch skips compositing and discards its captures.

    A runner may be reused: each ``run()`` starts with empty captures,
    an empty batch log and, unless one was supplied, a fresh tracker.

    Example usage::

        config = resolve_config(ParamConfig(), user_cfg)
        runner = BatchRunner(load_recipe("recipe.json"), config)
        report = runner.run(["a.jpg", "b.jpg"])
        print(report.processed, report.failed)
    """

    def __init__(self, recipe: Recipe, config: "InternalConfig",
                 registry: Optional[TransformationRegistry] = None,
                 router: Optional[OutputRouter] = None,
                 metadata_extractor: Optional[ExifMetadataExtractor] = None,
                 collaborators: Optional[Collaborators] = None,
                 batch_log: Optional[BatchLog] = None,
                 tracker: Optional[ImageStatusTracker] = None):
        """Initialize the runner.

        Parameters
        ----------
        recipe : Recipe
            Recipe applied to every image; validated before the first image.
        config : InternalConfig
            Resolved runtime configuration.
        registry : TransformationRegistry, optional
            Defaults to the frozen built-in registry.
        router : OutputRouter, optional
            Defaults to ``config.output.base_dir`` with ZIP fallback.
        metadata_extractor : ExifMetadataExtractor, optional
            Defaults to EXIF extraction, counting faces when configured.
        collaborators : Collaborators, optional
            Detectors for detection-driven kernels. Defaults to the
            configured face detector only.
        batch_log : BatchLog, optional
            Defaults to a new log named ``config.output.log_filename``.
        tracker : ImageStatusTracker, optional
            Caller-owned tracker, never closed by the runner. Defaults to
            an in-memory tracker created for each run and closed after it.
        """
        self.recipe = recipe
        self.config = config
        self.registry = registry or build_default_registry(config.registry.duplicate_policy)

        if collaborators is None:
            collaborators = Collaborators(face_detector=build_face_detector(config))
        self.collaborators = collaborators

        if metadata_extractor is None:
            count_faces = config.detection.count_faces_in_metadata
            metadata_extractor = ExifMetadataExtractor(
                face_detector=collaborators.face_detector if count_faces else None
            )
        self.metadata_extractor = metadata_extractor

        self.router = router or OutputRouter(config.output.base_dir, config.output.archive_name)
        self.batch_log = batch_log or BatchLog(config.output.log_filename)
        self.compositor = Compositor(config)

        self._owns_tracker = tracker is None
        self.tracker = tracker or ImageStatusTracker()

        self.captures = CaptureSet()
        self._cancel = threading.Event()
        self._local = threading.local()
        self._report_lock = threading.Lock()
        self._fatal: Optional[BaseException] = None
        self._runs = 0

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop after the images already running; skip the rest.

        Called between runs, it cancels the next run.
        """
        if not self._cancel.is_set():
            logger.info("Batch cancellation requested")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _engine(self) -> RecipeEngine:
        """The calling thread's engine (one pass at a time per engine)."""
        engine = getattr(self._local, "engine", None)
        if engine is None:
            engine = RecipeEngine(self.registry, self.config)
            self._local.engine = engine
        return engine

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, sources: Iterable[Source]) -> BatchReport:
        """Process every source and produce the batch outputs.

        Raises
        ------
        RecipeValidationError
            The recipe has invalid parameters; nothing is processed.
        Exception
            The first image failure, when the failure policy is fail_fast.
        """
        sources = list(sources)
        validate_recipe(self.recipe, self.registry)
        self._start_run()
        try:
            return self._run(sources)
        finally:
            # A cancellation ends with the run it applied to
            self._cancel.clear()
            if self._owns_tracker:
                self.tracker.close()

    def _start_run(self) -> None:
        """Reset per-run state so one runner can process several batches."""
        if self._runs and self._owns_tracker:
            self.tracker = ImageStatusTracker()
        self._runs += 1
        self.captures = CaptureSet()
        self.batch_log.clear()
        self._fatal = None

    def _run(self, sources: List[Source]) -> BatchReport:
        workers = self.config.batch.workers
        report = BatchReport()
        start = time.time()

        logger.info("=" * 60)
        logger.info("Starting batch: recipe '%s', %d image(s), %d worker(s)",
                    self.recipe.name or self.recipe.id, len(sources), workers)
        logger.info("=" * 60)

        for index, source in enumerate(sources):
            self.tracker.register(index, self._source_name(source))

        if workers > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="imgrecipe") as pool:
                futures = [
                    pool.submit(self._process_one, index, source, report)
                    for index, source in enumerate(sources)
                ]
                for future in futures:
                    future.result()
        else:
            for index, source in enumerate(sources):
                self._process_one(index, source, report)

        if self._fatal is not None:
            raise self._fatal

        report.cancelled = self.cancelled
        if report.cancelled:
            logger.warning("Batch cancelled: discarding %d capture(s), skipping compositing",
                           len(self.captures))
            self.captures.clear()
        else:
            self._composite(report)

        if self.config.output.write_log:
            location = self.batch_log.write(self.router)
            if location:
                report.artifacts.append(location)

        report.archive = self.router.archive_bytes()
        if report.archive is not None:
            logger.warning("%d artifact(s) stored in fallback archive %s",
                           sum(a.startswith("zip:") for a in report.artifacts), self.router.archive_name)

        report.statistics = self.tracker.get_statistics()

        logger.info("=" * 60)
        logger.info("Batch finished in %.1f seconds: processed=%d, failed=%d, skipped=%d",
                    time.time() - start, report.processed, report.failed, report.skipped)
        logger.info("=" * 60)
        return report

    @staticmethod
    def _source_name(source: Source) -> str:
        if isinstance(source, tuple):
            return source[0]
        return Path(source).name

    def _process_one(self, index: int, source: Source, report: BatchReport) -> None:
        name = self._source_name(source)

        if self._cancel.is_set():
            self.tracker.mark(index, "skipped")
            with self._report_lock:
                report.skipped += 1
                report.statuses[index] = "skipped"
            return

        self.tracker.mark(index, "processing")
        try:
            if isinstance(source, tuple):
                image, path = source[1], None
            else:
                path = Path(source)
                image = load_image(path)

            metadata = self.metadata_extractor.extract(path, image)
            context = RunContext(
                original_image=image,
                filename=name,
                metadata=metadata,
                collaborators=self.collaborators,
            )
            results = self._engine().execute(image, self.recipe, context)

            outputs, captures = [], 0
            for result in results:
                if result.is_capture:
                    self.captures.add(result.aggregation_id, index, result.data)
                    captures += 1
                else:
                    outputs.append(self.router.write(result.data, result.filename, result.subfolder))

            entry = BatchLog.make_entry(name, image.width, image.height, metadata)
            self.batch_log.add_entry(entry, index=index)
            self.tracker.mark(index, "completed", num_outputs=len(outputs), num_captures=captures)
            with self._report_lock:
                report.processed += 1
                report.artifacts.extend(outputs)
                report.statuses[index] = "completed"
            logger.info("Processed %s: %d output(s), %d capture(s)", name, len(outputs), captures)

        except Exception as e:
            logger.exception("Error processing %s", name)
            self.tracker.mark(index, "failed", error=str(e))
            with self._report_lock:
                report.failed += 1
                report.messages.append(f"{name}: {e}")
                report.statuses[index] = "failed"
            if self.config.batch.failure_policy == FailurePolicy.FAIL_FAST.value:
                with self._report_lock:
                    if self._fatal is None:
                        self._fatal = e
                self.cancel()

    def _composite(self, report: BatchReport) -> None:
        outcomes = self.compositor.compose(self.recipe, self.registry, self.captures)
        for outcome in outcomes:
            if outcome.ok:
                report.artifacts.append(self.router.write(outcome.data, outcome.filename))
            else:
                report.messages.append(f"{outcome.filename}: {outcome.error}")
