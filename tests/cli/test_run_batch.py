"""End-to-end tests for the imgrecipe-run command."""

import json

import pytest

from imgrecipe.cli import main
from imgrecipe.cli.run_batch import build_parser
from tests.helpers.fakes import make_recipe, make_solid, write_image

pytestmark = pytest.mark.integration


@pytest.fixture
def user_config(temp_dir):
    path = temp_dir / "user_config.py"
    path.write_text('CONFIG = {"FACE_DETECTOR": "none"}\n')
    return path


@pytest.fixture
def recipe_file(temp_dir):
    recipe = make_recipe(
        ("p", "filter-posterize", {"levels": 4}),
        ("e", "workflow-export", {"format": "image/png", "suffix": "_poster"}),
        ("sheet", "output-contact-sheet", {"columns": 2}),
    )
    path = temp_dir / "recipe.json"
    path.write_text(json.dumps(recipe.to_document()))
    return path


@pytest.fixture
def inputs(temp_dir):
    src = temp_dir / "src"
    write_image(src / "a.png", make_solid(30, 20, (10, 200, 90, 255)))
    write_image(src / "b.jpg", make_solid(30, 20, (250, 5, 5, 255)), fmt="JPEG")
    return src


def test_parser_defaults():
    args = build_parser().parse_args(["r.json", "in"])
    assert args.workers is None
    assert args.no_log is False
    assert args.inputs == ["in"]


def test_full_run(temp_dir, recipe_file, inputs, user_config, capsys):
    out = temp_dir / "out"
    code = main([str(recipe_file), str(inputs), "--output-dir", str(out),
                 "--config", str(user_config), "--workers", "2",
                 "--preview-steps", str(out / "previews" / "steps.png")])

    assert code == 0
    assert (out / "a_poster.png").exists()
    assert (out / "b_poster.png").exists()
    assert (out / "contact_sheet.jpg").exists()
    assert (out / "batch_log.csv").exists()
    assert (out / "previews" / "steps.png").exists()
    assert list((out / "logs").glob("imgrecipe_*.log"))
    assert list((out / "logs").glob("runtime_config_*.json"))
    assert "Processed: 2" in capsys.readouterr().out


def test_archive_only_run(temp_dir, recipe_file, inputs, user_config):
    archive = temp_dir / "bundle.zip"
    code = main([str(recipe_file), str(inputs), "--config", str(user_config),
                 "--archive", str(archive), "--no-log"])

    assert code == 0
    assert archive.exists()


def test_missing_recipe(temp_dir, inputs, user_config, capsys):
    code = main([str(temp_dir / "nope.json"), str(inputs), "--config", str(user_config)])
    assert code == 2
    assert "Recipe not found" in capsys.readouterr().err


def test_invalid_recipe(temp_dir, inputs, user_config):
    path = temp_dir / "bad.json"
    path.write_text(json.dumps(make_recipe(("p", "filter-posterize", {"levels": 1})).to_document()))
    assert main([str(path), str(inputs), "--config", str(user_config)]) == 2


def test_every_image_failing(temp_dir, recipe_file, user_config):
    bad = temp_dir / "bad.png"
    bad.write_bytes(b"nope")
    code = main([str(recipe_file), str(bad), "--config", str(user_config),
                 "--output-dir", str(temp_dir / "out")])
    assert code == 1
