"""Runtime initialization: user config files, run ids, persisted config."""

import argparse
import json
import re

import pytest

from imgrecipe.schemas.initialization import generate_run_id, init_runtime_config, load_user_config_dict

pytestmark = pytest.mark.unit


def _args(**kwargs):
    defaults = dict(config=None, output_dir=None, workers=None, verbose=False, no_log=False)
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class TestLoadUserConfigDict:

    def test_loads_config_dict(self, temp_dir):
        path = temp_dir / "user_config.py"
        path.write_text('CONFIG = {"WORKERS": 3, "OUTPUT_DIR": None}\n')

        assert load_user_config_dict(path) == {"WORKERS": 3, "OUTPUT_DIR": None}

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError, match="Config not found"):
            load_user_config_dict(temp_dir / "missing.py")

    def test_no_config_dict(self, temp_dir):
        path = temp_dir / "empty.py"
        path.write_text("SETTINGS = 1\n")

        with pytest.raises(ValueError, match="No CONFIG dict"):
            load_user_config_dict(path)


class TestInitRuntimeConfig:

    def test_run_id_format(self):
        assert re.fullmatch(r"\d{8}T\d{6}Z-[0-9a-f]{6}", generate_run_id())

    def test_archive_only_run(self):
        config, output_dirs = init_runtime_config(_args())

        assert output_dirs is None
        assert config.output.base_dir is None
        assert config.run_id is not None

    def test_output_dir_creates_layout_and_persists_config(self, temp_dir):
        config, output_dirs = init_runtime_config(_args(output_dir=str(temp_dir), workers=2, verbose=True))

        assert config.batch.workers == 2
        assert config.logging.level == "DEBUG"
        persisted = output_dirs["logs"] / f"runtime_config_{config.run_id}.json"
        assert persisted.exists()
        assert json.loads(persisted.read_text())["batch"]["workers"] == 2

    def test_user_config_file_applied(self, temp_dir):
        path = temp_dir / "user_config.py"
        path.write_text('CONFIG = {"CAPTURE_QUALITY": 60, "FACE_DETECTOR": "none"}\n')

        config, _ = init_runtime_config(_args(config=str(path)))

        assert config.encoding.capture_quality == 60
        assert config.detection.face_detector == "none"
