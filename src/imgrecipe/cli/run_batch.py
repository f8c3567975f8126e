"""Core batch execution logic for the ``imgrecipe-run`` command.

Argument parsing lives in ``main``; ``run_recipe_batch`` is the real
implementation, so scripts can stay thin wrappers.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from imgrecipe.core.context import RunContext
from imgrecipe.core.errors import ImageLoadError, KernelError, RecipeValidationError
from imgrecipe.io.loader import discover_inputs, load_image
from imgrecipe.pipeline.batch import BatchReport, BatchRunner, configure_logging
from imgrecipe.pipeline.engine import RecipeEngine
from imgrecipe.schemas.initialization import init_runtime_config
from imgrecipe.schemas.recipe import load_recipe
from imgrecipe.visualization.step_strip import StepPreviewPlotter

__all__ = ['run_recipe_batch', 'build_parser', 'main']

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgrecipe-run",
        description="Run an image recipe over a batch of images",
    )
    parser.add_argument("recipe", help="Path to recipe JSON document")
    parser.add_argument("inputs", nargs="+", help="Image files or directories")
    parser.add_argument("--config", help="Path to user config file (Python file with CONFIG dict)")
    parser.add_argument("--output-dir", dest="output_dir", help="Output directory")
    parser.add_argument("--workers", type=int, help="Images processed concurrently")
    parser.add_argument("--archive", help="Where to save the fallback ZIP archive")
    parser.add_argument("--preview-steps", dest="preview_steps",
                        help="Save a step-by-step preview of the first image to this PNG")
    parser.add_argument("--no-log", dest="no_log", action="store_true", help="Do not write the CSV batch log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run_recipe_batch(args: argparse.Namespace) -> BatchReport:
    """Execute a recipe batch from parsed arguments.

    1. Resolves configuration (Param < User < CLI) and output directories
    2. Configures logging
    3. Loads the recipe and discovers inputs
    4. Optionally renders a step preview of the first image
    5. Runs the batch and saves the fallback archive, if any

    Raises
    ------
    FileNotFoundError
        If the recipe, config or an input does not exist.
    RecipeValidationError
        If the recipe has invalid parameters.
    """
    config, output_dirs = init_runtime_config(args)
    configure_logging(config, output_dirs["logs"] if output_dirs else None)

    recipe = load_recipe(args.recipe)
    inputs = discover_inputs(args.inputs)

    print(f"\n{'='*60}")
    print("imgrecipe Batch Run")
    print('='*60)
    print(f"Recipe:  {recipe.name or recipe.id} ({len(recipe.steps)} steps)")
    print(f"Inputs:  {len(inputs)} image(s)")
    print(f"Workers: {config.batch.workers}")
    print(f"Output:  {config.output.base_dir or '(archive only)'}")
    print(f"Run ID:  {config.run_id}")
    print('='*60)

    if args.verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('='*60)

    runner = BatchRunner(recipe, config)

    if args.preview_steps and inputs:
        try:
            image = load_image(inputs[0])
            context = RunContext(image, inputs[0].name, collaborators=runner.collaborators)
            StepPreviewPlotter(RecipeEngine(runner.registry, config)).plot(
                image, recipe, context, args.preview_steps
            )
        except (ImageLoadError, KernelError) as e:
            logger.warning("Step preview skipped: %s", e)

    report = runner.run(inputs)

    if report.archive is not None:
        archive_path = Path(args.archive) if args.archive else (
            Path(config.output.base_dir or ".") / config.output.archive_name
        )
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        archive_path.write_bytes(report.archive)
        print(f"Archive: {archive_path}")

    print(f"Processed: {report.processed}  Failed: {report.failed}  Skipped: {report.skipped}")
    for message in report.messages:
        print(f"  ! {message}")
    print('='*60)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        report = run_recipe_batch(args)
    except (FileNotFoundError, RecipeValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 1 if report.all_failed else 0


if __name__ == "__main__":
    sys.exit(main())
