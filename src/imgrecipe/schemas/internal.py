"""InternalConfig: Authoritative runtime configuration.

This is the only config schema runtime code sees. It is fully validated,
frozen, and holds an explicit value for every setting the engine, batch
runner and compositor read.
"""

from typing import Literal, Optional
from pydantic import ConfigDict, Field, field_validator
from imgrecipe.schemas.base import ImgRecipeBaseModel
from imgrecipe.schemas.param import ImageFormat, normalize_image_format


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalEncodingConfig(ImgRecipeBaseModel):
    """Runtime default encodings."""
    default_format: ImageFormat
    default_quality: int = Field(ge=1, le=100)
    capture_format: ImageFormat
    capture_quality: int = Field(ge=1, le=100)
    preview_format: ImageFormat
    preview_quality: int = Field(ge=1, le=100)

    @field_validator("default_format", "capture_format", "preview_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        return normalize_image_format(v)


class InternalBatchConfig(ImgRecipeBaseModel):
    """Runtime batch settings."""
    workers: int = Field(ge=1, le=64)
    failure_policy: Literal["skip_image", "fail_fast"]


class InternalCompositingConfig(ImgRecipeBaseModel):
    """Runtime compositing settings."""
    contact_sheet_quality: int = Field(ge=1, le=100)
    video_fourcc: str
    keyframe_interval: int = Field(ge=1)
    gif_loop: int = Field(ge=0)


class InternalDetectionConfig(ImgRecipeBaseModel):
    """Runtime face detector settings."""
    face_detector: Literal["haar", "none"]
    scale_factor: float
    min_neighbors: int
    min_size: int
    count_faces_in_metadata: bool


class InternalOutputConfig(ImgRecipeBaseModel):
    """Runtime output settings.

    ``base_dir`` None means every artifact goes to the in-memory archive.
    """
    base_dir: Optional[str]
    archive_name: str
    write_log: bool
    log_filename: str


class InternalRegistryConfig(ImgRecipeBaseModel):
    """Runtime registry policy."""
    duplicate_policy: Literal["reject", "replace"]


class InternalLoggingConfig(ImgRecipeBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(ImgRecipeBaseModel):
    """Authoritative runtime configuration.

    Runtime modules access fields directly::

        def __init__(self, config: InternalConfig):
            self.capture_quality = config.encoding.capture_quality  # NOT .get()

    No fallback defaults live in runtime code; resolution happens in
    ``resolve_config``.
    """

    encoding: InternalEncodingConfig
    batch: InternalBatchConfig
    compositing: InternalCompositingConfig
    detection: InternalDetectionConfig
    output: InternalOutputConfig
    registry: InternalRegistryConfig
    logging: InternalLoggingConfig
    run_id: Optional[str] = None

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,
    )
