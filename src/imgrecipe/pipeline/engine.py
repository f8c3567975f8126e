"""Recipe execution engine.

Runs one pass of a recipe over one image: evaluates step conditions,
skips disabled steps, applies kernels to the pass's raster buffer,
encodes exports and aggregation captures, and honours a preview stop
index.
"""

import logging
import threading
import time
from typing import List, Optional, TYPE_CHECKING

from pydantic import ValidationError

from imgrecipe.contracts import ContractViolation, assert_raster
from imgrecipe.core.codec import FORMAT_EXTENSIONS, encode_raster, with_extension
from imgrecipe.core.conditions import evaluate_condition
from imgrecipe.core.context import ProcessResult, RunContext
from imgrecipe.core.errors import RecipeValidationError
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.core.registry import TransformationKind, TransformationRegistry
from imgrecipe.schemas.recipe import Recipe, RecipeStep

if TYPE_CHECKING:
    from imgrecipe.schemas import InternalConfig

__all__ = ['RecipeEngine']

logger = logging.getLogger(__name__)


class RecipeEngine:
    """Executes recipes one image at a time.

    **Per-step algorithm** (step index ``i``):

    1. Disabled step: nothing runs, but ``stop_after_index == i`` still
       ends the pass.
    2. Step with a condition that evaluates False: skipped, not an error.
    3. Otherwise dispatch on the transformation kind:

       - *export*: encode the buffer in the requested format and emit a
         deliverable ``ProcessResult`` named ``<stem><suffix>.<ext>``.
       - *aggregation*: encode the buffer in the capture format and emit
         a ``ProcessResult`` tagged ``aggregation_id = step.id``.
       - *kernel*: apply it to the buffer in place. Unknown ids are
         logged and skipped.

    4. ``stop_after_index == i`` ends the pass after the step.

    When the recipe contains no export or aggregation step and no stop
    index was requested, one final result is synthesized from the buffer
    with the default encoding.

    **Ownership:**

    Each call to ``execute`` copies the source image into a new buffer
    that belongs to that pass. An engine runs one pass at a time; a
    second concurrent ``execute`` on the same instance is a contract
    violation. Use one engine per worker thread.

    Example usage::

        engine = RecipeEngine(build_default_registry(), config)
        results = engine.execute(image, recipe, RunContext(image, "a.jpg"))
        preview_png = engine.preview(image, recipe, context, stop_after_index=2)
    """

    def __init__(self, registry: TransformationRegistry, config: "InternalConfig"):
        """Initialize the engine.

        Parameters
        ----------
        registry : TransformationRegistry
            Populated (normally frozen) registry.
        config : InternalConfig
            Supplies capture, default and preview encodings.
        """
        self.registry = registry
        self.config = config
        self.buffer: Optional[RasterBuffer] = None
        self._pass_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, image: RasterBuffer, recipe: Recipe, context: RunContext,
                stop_after_index: Optional[int] = None) -> List[ProcessResult]:
        """Run one pass and return its results in step order.

        Parameters
        ----------
        image : RasterBuffer
            Source image. Not modified.
        recipe : Recipe
            Steps to run. Must not be mutated during the pass.
        context : RunContext
            Per-image state; kernels may write ``variables`` and
            ``output_subfolder``.
        stop_after_index : int, optional
            Last step index to handle (partial preview).

        Returns
        -------
        list of ProcessResult

        Raises
        ------
        KernelError, EncodingError
            A kernel or encoder failed; the pass is aborted.
        RecipeValidationError
            A step's parameters do not validate.
        ContractViolation
            The engine is already running a pass, or a kernel broke the
            raster contract.
        """
        if not self._pass_lock.acquire(blocking=False):
            raise ContractViolation(
                "Engine contract violated: execute() called while another pass is running"
            )
        try:
            return self._run_pass(image, recipe, context, stop_after_index)
        finally:
            self._pass_lock.release()

    def render(self, image: RasterBuffer, recipe: Recipe, context: RunContext,
               stop_after_index: Optional[int] = None) -> RasterBuffer:
        """Run a throwaway pass and return a copy of the final buffer."""
        self.execute(image, recipe, context.fresh(), stop_after_index)
        return self.buffer.copy()

    def preview(self, image: RasterBuffer, recipe: Recipe, context: RunContext,
                stop_after_index: Optional[int] = None) -> bytes:
        """Encoded (preview format) image after the pass, for display."""
        final = self.render(image, recipe, context, stop_after_index)
        encoding = self.config.encoding
        data, _ = encode_raster(final, encoding.preview_format, encoding.preview_quality,
                                fallback_to_jpeg=True)
        return data

    def has_output_steps(self, recipe: Recipe) -> bool:
        """True if any step (enabled or not) is an export or aggregation step."""
        return any(self.registry.is_output_step(step.transformation_id) for step in recipe.steps)

    # ------------------------------------------------------------------
    # Pass internals
    # ------------------------------------------------------------------

    def _run_pass(self, image: RasterBuffer, recipe: Recipe, context: RunContext,
                  stop_after_index: Optional[int]) -> List[ProcessResult]:
        buffer = image.copy()
        self.buffer = buffer
        results: List[ProcessResult] = []
        start = time.perf_counter()

        for index, step in enumerate(recipe.steps):
            handled = self._run_step(index, step, recipe, buffer, context, results)
            # A step skipped by its condition never ends the pass
            if handled and stop_after_index is not None and stop_after_index == index:
                logger.debug("Stopping after step %d (%s)", index, step.id)
                break

        if stop_after_index is None and not self.has_output_steps(recipe):
            results.append(self._default_output(buffer, context))

        logger.debug("Pass over %s: %d result(s) in %.3fs",
                     context.filename, len(results), time.perf_counter() - start)
        return results

    def _run_step(self, index: int, step: RecipeStep, recipe: Recipe, buffer: RasterBuffer,
                  context: RunContext, results: List[ProcessResult]) -> bool:
        """Handle one step. Returns False only when its condition skipped it."""
        label = f"step {index} '{step.id}' ({step.transformation_id})"

        if step.is_disabled:
            logger.debug("Skipping disabled %s", label)
            return True

        if step.condition is not None and not evaluate_condition(step.condition, buffer, context):
            logger.debug("Condition false, skipping %s", label)
            return False

        definition = self.registry.get(step.transformation_id)
        if definition is None:
            logger.warning("Unknown transformation in %s, skipping", label)
            return True

        try:
            params = definition.resolve_params(step.params)
        except ValidationError as e:
            raise RecipeValidationError(recipe.id, {step.id: str(e)}) from e

        if definition.kind == TransformationKind.EXPORT:
            results.append(self._export(buffer, params, context))
        elif definition.kind == TransformationKind.AGGREGATION:
            results.append(self._capture(buffer, step, context))
        else:
            definition.apply(buffer, params, context)
            assert_raster(buffer, label)
        logger.debug("Ran %s -> %dx%d", label, buffer.width, buffer.height)
        return True

    def _export(self, buffer: RasterBuffer, params, context: RunContext) -> ProcessResult:
        data, fmt = encode_raster(buffer, params.format, int(params.quality), fallback_to_jpeg=True)
        return ProcessResult(
            data=data,
            filename=with_extension(context.filename, fmt, params.suffix),
            subfolder=context.output_subfolder,
        )

    def _capture(self, buffer: RasterBuffer, step: RecipeStep, context: RunContext) -> ProcessResult:
        encoding = self.config.encoding
        data, fmt = encode_raster(buffer, encoding.capture_format, encoding.capture_quality)
        return ProcessResult(
            data=data,
            filename=f"capture_{step.id}.{FORMAT_EXTENSIONS[fmt]}",
            aggregation_id=step.id,
            subfolder=context.output_subfolder,
        )

    def _default_output(self, buffer: RasterBuffer, context: RunContext) -> ProcessResult:
        encoding = self.config.encoding
        data, fmt = encode_raster(buffer, encoding.default_format, encoding.default_quality,
                                  fallback_to_jpeg=True)
        return ProcessResult(
            data=data,
            filename=with_extension(context.filename, fmt),
            subfolder=context.output_subfolder,
        )
