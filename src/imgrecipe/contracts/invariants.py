"""Formal pipeline invariants.

Documents what each stage MUST guarantee. The assert_* helpers enforce
the REQUIRED stages at runtime.
"""

PIPELINE_INVARIANTS = {
    "execution_pass": [
        "One RasterBuffer per pass, reset to the source image's native size",
        "Steps run strictly in recipe order, one at a time",
        "A disabled step never touches the buffer but can still end a preview",
        "A step whose condition is false leaves the buffer byte-identical and never ends a preview",
        "An engine instance runs at most one pass at a time",
    ],

    "raster": [
        "pixels is a (H, W, 4) uint8 ndarray with H, W > 0",
    ],

    "results": [
        "Results are returned in step order",
        "Captures carry aggregation_id == the aggregation step's id",
        "A recipe with no export/aggregation steps and no stop index yields exactly one result",
    ],

    "captures": [
        "Frames for one aggregation id are in batch input order",
        "Captures from cancelled batches are discarded, never composited",
    ],

    "compositing": [
        "Runs only after every image's pass has finished",
        "Each aggregation step is composited independently",
        "Outputs are non-empty and written to the output root",
    ],
}

STAGE_REQUIREMENTS = {
    "execution_pass": "REQUIRED",
    "raster": "REQUIRED",
    "results": "REQUIRED",
    "captures": "OPTIONAL",     # Only when the recipe has aggregation steps
    "compositing": "OPTIONAL",  # Only when captures exist
}
