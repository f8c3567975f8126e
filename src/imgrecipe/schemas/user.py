"""UserConfig: Forgiving, minimal user-facing configuration.

Accepts upper-case aliases (OUTPUT_DIR → output.base_dir, WORKERS →
batch.workers) as written in ``scripts/user_config.py`` and ignores keys
it does not know. Users only specify what they want to override.
"""

from typing import Any, Literal, Optional
from pydantic import Field, field_validator
from imgrecipe.schemas.base import ImgRecipeBaseModel


class UserEncodingConfig(ImgRecipeBaseModel):
    """User-facing encoding overrides."""
    default_format: Optional[str] = None
    default_quality: Optional[int] = None
    capture_format: Optional[str] = None
    capture_quality: Optional[int] = None
    preview_format: Optional[str] = None
    preview_quality: Optional[int] = None


class UserCompositingConfig(ImgRecipeBaseModel):
    """User-facing compositing overrides."""
    contact_sheet_quality: Optional[int] = None
    video_fourcc: Optional[str] = None
    keyframe_interval: Optional[int] = None
    gif_loop: Optional[int] = None


class UserDetectionConfig(ImgRecipeBaseModel):
    """User-facing detector overrides."""
    face_detector: Optional[str] = None
    scale_factor: Optional[float] = None
    min_neighbors: Optional[int] = None
    min_size: Optional[int] = None
    count_faces_in_metadata: Optional[bool] = None

    @field_validator("face_detector", mode="before")
    @classmethod
    def normalize_detector(cls, v):
        """Lowercase detector names; treat 'off'/'disabled' as 'none'."""
        if isinstance(v, str):
            v = v.lower().strip()
            if v in ("off", "disabled", "false"):
                return "none"
        return v


class UserOutputConfig(ImgRecipeBaseModel):
    """User-facing output overrides."""
    base_dir: Optional[str] = None
    archive_name: Optional[str] = None
    write_log: Optional[bool] = None
    log_filename: Optional[str] = None


class UserConfig(ImgRecipeBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(
            output_dir="/data/processed",
            workers=4,
            face_detector="none",
        )
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Flat aliases
    output_dir: Optional[str] = Field(None, alias="OUTPUT_DIR")
    archive_name: Optional[str] = Field(None, alias="ARCHIVE_NAME")
    workers: Optional[int] = Field(None, alias="WORKERS")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(
        None, alias="LOG_LEVEL"
    )
    write_log: Optional[bool] = Field(None, alias="WRITE_LOG")
    export_format: Optional[str] = Field(None, alias="DEFAULT_FORMAT")
    export_quality: Optional[int] = Field(None, alias="DEFAULT_QUALITY")
    capture_quality: Optional[int] = Field(None, alias="CAPTURE_QUALITY")
    face_detector: Optional[str] = Field(None, alias="FACE_DETECTOR")
    keyframe_interval: Optional[int] = Field(None, alias="KEYFRAME_INTERVAL")

    # Nested overrides (advanced users)
    encoding: Optional[UserEncodingConfig] = None
    compositing: Optional[UserCompositingConfig] = None
    detection: Optional[UserDetectionConfig] = None
    output: Optional[UserOutputConfig] = None
    registry: Optional[dict[str, Any]] = None

    model_config = ImgRecipeBaseModel.model_config.copy()
    # Forgiving input dictionaries: unknown keys are ignored
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept 'debug', ' Info ' and similar."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @field_validator("face_detector", "export_format", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Lowercase free-form names."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert user config to the nested InternalConfig structure.

        Nested sections are applied first, flat aliases override them.

        Returns
        -------
        dict
            Partial dictionary matching InternalConfig structure
        """
        overrides: dict = {}

        for section in ("encoding", "compositing", "detection", "output"):
            nested = getattr(self, section)
            if nested is not None:
                values = nested.model_dump(exclude_none=True)
                if values:
                    overrides[section] = values
        if self.registry:
            overrides["registry"] = dict(self.registry)

        def put(section: str, key: str, value) -> None:
            if value is not None:
                overrides.setdefault(section, {})[key] = value

        put("output", "base_dir", self.output_dir)
        put("output", "archive_name", self.archive_name)
        put("output", "write_log", self.write_log)
        put("batch", "workers", self.workers)
        put("logging", "level", self.log_level)
        put("encoding", "default_format", self.export_format)
        put("encoding", "default_quality", self.export_quality)
        put("encoding", "capture_quality", self.capture_quality)
        put("detection", "face_detector", self.face_detector)
        put("compositing", "keyframe_interval", self.keyframe_interval)

        return overrides
