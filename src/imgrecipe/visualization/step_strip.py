"""Step-by-step recipe preview figure.

Renders one panel per recipe step showing the image as it looks after
that step, so a recipe can be checked before running a whole batch.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from imgrecipe.core.codec import decode_image
from imgrecipe.core.conditions import evaluate_condition
from imgrecipe.core.context import RunContext
from imgrecipe.core.raster import RasterBuffer
from imgrecipe.pipeline.engine import RecipeEngine
from imgrecipe.schemas.recipe import Recipe

__all__ = ['StepPreviewPlotter']

logger = logging.getLogger(__name__)


class StepPreviewPlotter:
    """Plots the image after each step of a recipe.

    The first panel is the original image; panel ``i + 1`` is
    ``engine.preview(..., stop_after_index=i)``. Disabled steps and steps
    whose condition is false on the original image are labelled as such.

    Example usage::

        plotter = StepPreviewPlotter(engine)
        plotter.plot(image, recipe, RunContext(image, "a.jpg"), "previews/a_steps.png")
    """

    def __init__(self, engine: RecipeEngine, columns: int = 4, panel_size: float = 3.0,
                 dpi: int = 100, output_format: str = "png"):
        """Initialize plotter.

        Parameters
        ----------
        engine : RecipeEngine
            Engine used to render each partial pass.
        columns : int, optional
            Panels per row.
        panel_size : float, optional
            Panel edge length in inches.
        dpi : int, optional
            Output resolution.
        output_format : str, optional
            Matplotlib output format; also sets the file extension.
        """
        self.engine = engine
        self.columns = max(1, columns)
        self.panel_size = panel_size
        self.dpi = dpi
        self.output_format = output_format

    def _panel_label(self, index: int, recipe: Recipe, image: RasterBuffer, context: RunContext) -> str:
        step = recipe.steps[index]
        definition = self.engine.registry.get(step.transformation_id)
        name = definition.name if definition is not None else f"{step.transformation_id} (unknown)"
        label = f"{index + 1}. {name}"
        if step.is_disabled:
            return f"{label}\n[disabled]"
        if step.condition is not None and not evaluate_condition(step.condition, image, context):
            return f"{label}\n[condition false]"
        return label

    def render_panels(self, image: RasterBuffer, recipe: Recipe,
                      context: RunContext) -> List[Tuple[str, np.ndarray]]:
        """``(label, rgba_pixels)`` for the original and every step."""
        panels = [("Original", image.pixels.copy())]
        for index in range(len(recipe.steps)):
            label = self._panel_label(index, recipe, image, context)
            if label.endswith("[condition false]"):
                # A skipped step does not end a preview, so show the state before it
                panels.append((label, panels[-1][1]))
                continue
            data = self.engine.preview(image, recipe, context, stop_after_index=index)
            panels.append((label, decode_image(data).pixels))
        return panels

    def plot(self, image: RasterBuffer, recipe: Recipe, context: RunContext,
             output_path: str | Path, title: Optional[str] = None) -> str:
        """Render the preview strip and save it.

        Returns
        -------
        str
            Path of the saved figure.
        """
        panels = self.render_panels(image, recipe, context)
        rows = int(np.ceil(len(panels) / self.columns))
        cols = min(self.columns, len(panels))

        fig, axes = plt.subplots(
            rows, cols,
            figsize=(cols * self.panel_size, rows * self.panel_size),
            dpi=self.dpi,
            squeeze=False,
        )
        for ax in axes.flat:
            ax.axis('off')
        for ax, (label, pixels) in zip(axes.flat, panels):
            ax.imshow(pixels)
            ax.set_title(label, fontsize=9)

        fig.suptitle(title or f"{recipe.name or recipe.id}: {context.filename}", fontsize=11)
        fig.tight_layout()

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_file = output_path.with_suffix(f'.{self.output_format}')
        fig.savefig(output_file, dpi=self.dpi, bbox_inches='tight', format=self.output_format)
        plt.close(fig)

        logger.info("Step preview saved: %s (%d panels)", output_file, len(panels))
        return str(output_file)
