"""UserConfig accepts forgiving input: upper-case aliases, odd casing, unknown keys."""

import pytest

from imgrecipe.schemas import ParamConfig, UserConfig, resolve_config

pytestmark = pytest.mark.unit


class TestUserConfigNormalization:

    def test_flat_aliases(self):
        user = UserConfig.model_validate({
            "OUTPUT_DIR": "/data/out",
            "ARCHIVE_NAME": "batch.zip",
            "WORKERS": 3,
            "WRITE_LOG": False,
            "CAPTURE_QUALITY": 70,
            "KEYFRAME_INTERVAL": 12,
        })
        config = resolve_config(ParamConfig(), user, None)

        assert config.output.base_dir == "/data/out"
        assert config.output.archive_name == "batch.zip"
        assert config.batch.workers == 3
        assert config.output.write_log is False
        assert config.encoding.capture_quality == 70
        assert config.compositing.keyframe_interval == 12

    def test_field_names_also_accepted(self):
        user = UserConfig(output_dir="/x", workers=2)
        assert user.output_dir == "/x"
        assert user.workers == 2

    def test_unknown_keys_ignored(self):
        user = UserConfig.model_validate({"THEME": "dark", "WORKERS": 2})
        assert user.workers == 2

    def test_log_level_uppercased(self):
        assert UserConfig(LOG_LEVEL=" info ").log_level == "INFO"

    @pytest.mark.parametrize("value", ["off", "Disabled", "NONE"])
    def test_face_detector_off_spellings(self, value):
        config = resolve_config(ParamConfig(), {"detection": {"face_detector": value}}, None)
        assert config.detection.face_detector == "none"

    def test_flat_alias_beats_nested_section(self):
        user = UserConfig.model_validate({
            "output": {"base_dir": "/nested", "log_filename": "log.csv"},
            "OUTPUT_DIR": "/flat",
        })
        config = resolve_config(ParamConfig(), user, None)

        assert config.output.base_dir == "/flat"
        assert config.output.log_filename == "log.csv"

    def test_registry_section(self):
        config = resolve_config(ParamConfig(), {"registry": {"duplicate_policy": "replace"}}, None)
        assert config.registry.duplicate_policy == "replace"
