"""ParamConfig: Expert defaults for imgrecipe runs.

Every run setting has its default here. Runtime code never reads
ParamConfig directly; it only receives the resolved InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from imgrecipe.schemas.base import ImgRecipeBaseModel


ImageFormat = Literal["jpeg", "png", "webp", "avif", "tiff"]


def normalize_image_format(value):
    """Map MIME types and common aliases onto an ImageFormat value."""
    if isinstance(value, str):
        value = value.lower().strip()
        if value.startswith("image/"):
            value = value[len("image/"):]
        if value in ("jpg", "jpe"):
            value = "jpeg"
        if value == "tif":
            value = "tiff"
    return value


# =============================================================================
# Nested Configuration Models
# =============================================================================

class EncodingConfig(ImgRecipeBaseModel):
    """Encodings used where a recipe does not choose one."""
    default_format: ImageFormat = "jpeg"
    default_quality: int = Field(95, ge=1, le=100, description="Synthesized final output quality")
    capture_format: ImageFormat = "jpeg"
    capture_quality: int = Field(90, ge=1, le=100, description="Aggregation capture quality")
    preview_format: ImageFormat = "jpeg"
    preview_quality: int = Field(95, ge=1, le=100)

    @field_validator("default_format", "capture_format", "preview_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        """Accept 'JPG', 'image/jpeg' and similar spellings."""
        return normalize_image_format(v)


class BatchConfig(ImgRecipeBaseModel):
    """Batch driver settings."""
    workers: int = Field(1, ge=1, le=64, description="Images processed concurrently")
    failure_policy: Literal["skip_image", "fail_fast"] = "skip_image"


class CompositingConfig(ImgRecipeBaseModel):
    """Aggregation output settings."""
    contact_sheet_quality: int = Field(90, ge=1, le=100)
    video_fourcc: str = Field("mp4v", min_length=4, max_length=4)
    keyframe_interval: int = Field(30, ge=1)
    gif_loop: int = Field(0, ge=0, description="0 loops forever")


class DetectionConfig(ImgRecipeBaseModel):
    """Face detector used by detection-driven kernels and metadata."""
    face_detector: Literal["haar", "none"] = "haar"
    scale_factor: float = Field(1.1, gt=1.0)
    min_neighbors: int = Field(5, ge=0)
    min_size: int = Field(24, ge=1, description="Smallest face side in pixels")
    count_faces_in_metadata: bool = True


class OutputConfig(ImgRecipeBaseModel):
    """Artifact routing and batch log settings."""
    base_dir: Optional[str] = None
    archive_name: str = "processed_images.zip"
    write_log: bool = True
    log_filename: str = "batch_log.csv"


class RegistryConfig(ImgRecipeBaseModel):
    """Transformation registry policy."""
    duplicate_policy: Literal["reject", "replace"] = "reject"


class LoggingConfig(ImgRecipeBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(ImgRecipeBaseModel):
    """Complete expert default configuration.

    Usage
    -----
        param = ParamConfig()
        internal = resolve_config(param, user_cfg, cli_cfg)
    """
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    compositing: CompositingConfig = Field(default_factory=CompositingConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
