#!/usr/bin/env python3
"""imgrecipe batch runner.

Usage:
    python scripts/run_recipe_batch.py scripts/example_recipe.json photos/
    python scripts/run_recipe_batch.py scripts/example_recipe.json a.jpg b.jpg --output-dir out
    python scripts/run_recipe_batch.py scripts/example_recipe.json photos/ --config scripts/user_config.py --workers 4

Equivalent to the installed ``imgrecipe-run`` command.
"""

import sys

from imgrecipe.cli.run_batch import main


if __name__ == "__main__":
    sys.exit(main())
