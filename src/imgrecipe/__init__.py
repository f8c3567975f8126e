"""`imgrecipe` - recipe-driven batch image processing.

Subpackages:
- schemas: Recipe documents and layered run configuration
- core: Raster buffer, registry, conditions, codec
- transforms: Built-in pixel kernels, export and aggregation steps
- pipeline: Execution engine, compositor, batch runner
- io: Image loading, metadata, detection, output routing, batch log
- visualization: Step-by-step preview strips
"""

__version__ = "0.1.0"
