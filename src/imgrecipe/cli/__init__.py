"""Command-line interface modules for imgrecipe batch runs.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from imgrecipe.cli.run_batch import run_recipe_batch, main

__all__ = ['run_recipe_batch', 'main']
