"""imgrecipe user configuration.

This is the user-facing configuration file. Modify settings here to customize
batch runs. Every other setting keeps its default from ParamConfig
(src/imgrecipe/schemas/param.py).

Usage:
    python scripts/run_recipe_batch.py scripts/example_recipe.json photos/ --config scripts/user_config.py
    imgrecipe-run scripts/example_recipe.json photos/ --config scripts/user_config.py --workers 4
"""

CONFIG = {
    # ========================================================================
    # OUTPUT
    # ========================================================================
    "OUTPUT_DIR": "./imgrecipe_output",    # None = everything goes to the ZIP archive
    "ARCHIVE_NAME": "processed_images.zip",
    "WRITE_LOG": True,                     # batch_log.csv with date, GPS, people

    # ========================================================================
    # BATCH
    # ========================================================================
    "WORKERS": 2,                          # Images processed concurrently
    "LOG_LEVEL": "INFO",

    # ========================================================================
    # ENCODING
    # ========================================================================
    "DEFAULT_FORMAT": "jpeg",              # Used when a recipe has no export step
    "DEFAULT_QUALITY": 95,
    "CAPTURE_QUALITY": 90,                 # Frames kept for contact sheets, GIFs, videos

    # ========================================================================
    # DETECTION & COMPOSITING
    # ========================================================================
    "FACE_DETECTOR": "haar",               # "haar" or "none"
    "KEYFRAME_INTERVAL": 30,

    # Nested sections override anything in ParamConfig:
    # "compositing": {"video_fourcc": "avc1", "gif_loop": 0},
    # "detection": {"min_neighbors": 6},
}
