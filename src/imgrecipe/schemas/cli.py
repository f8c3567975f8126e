"""CLIConfig: Command-line operational overrides.

Minimal configuration for settings that commonly change between runs:
output directory, worker count, verbosity.
"""

from typing import Literal, Optional
from pydantic import Field
from imgrecipe.schemas.base import ImgRecipeBaseModel


class CLIConfig(ImgRecipeBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(output_dir="/scratch/out", workers=4)
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    output_dir: Optional[str] = None
    workers: Optional[int] = Field(None, ge=1, le=64)
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    no_log: bool = False

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        output_overrides = {}
        if self.output_dir is not None:
            output_overrides["base_dir"] = str(self.output_dir)
        if self.no_log:
            output_overrides["write_log"] = False
        if output_overrides:
            overrides["output"] = output_overrides

        if self.workers is not None:
            overrides["batch"] = {"workers": self.workers}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
