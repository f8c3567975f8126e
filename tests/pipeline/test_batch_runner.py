"""Batch driver: isolation, ordering, cancellation, routing."""

import io
import zipfile

import pandas as pd
import pytest
from PIL import Image

from imgrecipe.core.errors import ImageLoadError, RecipeValidationError
from imgrecipe.core.registry import TransformationDefinition, TransformationRegistry
from imgrecipe.pipeline import BatchRunner
from imgrecipe.pipeline.status_tracker import ImageStatusTracker
from imgrecipe.core.codec import decode_image
from imgrecipe.schemas import ParamConfig, UserConfig, resolve_config
from imgrecipe.schemas.param import BatchConfig
from imgrecipe.transforms import register_builtin_transformations
from tests.helpers.fakes import make_recipe, make_solid, write_image

pytestmark = pytest.mark.integration


@pytest.fixture
def image_files(temp_dir):
    """Three inputs, the middle one corrupt."""
    src = temp_dir / "src"
    a = write_image(src / "a.png", make_solid(40, 30, (10, 20, 30, 255)))
    b = src / "b.png"
    b.write_bytes(b"definitely not a png")
    c = write_image(src / "c.png", make_solid(20, 20, (200, 100, 50, 255)))
    return [a, b, c]


def _in_memory(n):
    return [(f"img{i}.png", make_solid(16, 16, (i * 30, 0, 0, 255))) for i in range(n)]


class TestFailureIsolation:

    def test_bad_image_does_not_stop_batch(self, make_config, temp_dir, image_files):
        out = temp_dir / "out"
        config = make_config(output_dir=str(out))
        runner = BatchRunner(make_recipe(("e", "workflow-export")), config)

        report = runner.run(image_files)

        assert report.processed == 2
        assert report.failed == 1
        assert report.statuses == {0: "completed", 1: "failed", 2: "completed"}
        assert any(m.startswith("b.png") for m in report.messages)
        assert (out / "a_processed.jpg").exists()
        assert (out / "c_processed.jpg").exists()
        assert report.statistics["failed"] == 1
        assert not report.all_failed

    def test_all_failed(self, make_config, temp_dir):
        bad = temp_dir / "bad.png"
        bad.write_bytes(b"nope")
        report = BatchRunner(make_recipe(), make_config(output_dir=str(temp_dir))).run([bad])
        assert report.all_failed

    def test_fail_fast(self, temp_dir, image_files):
        param = ParamConfig(batch=BatchConfig(failure_policy="fail_fast"))
        config = resolve_config(param, UserConfig(FACE_DETECTOR="none", OUTPUT_DIR=str(temp_dir)), None)
        tracker = ImageStatusTracker()
        runner = BatchRunner(make_recipe(), config, tracker=tracker)

        with pytest.raises(ImageLoadError):
            runner.run(image_files)

        assert tracker.get_status(0)["status"] == "completed"
        assert tracker.get_status(1)["status"] == "failed"
        assert tracker.get_status(2)["status"] == "skipped"
        tracker.close()

    def test_invalid_recipe_rejected_up_front(self, make_config, temp_dir):
        runner = BatchRunner(make_recipe(("p", "filter-posterize", {"levels": 900})),
                             make_config(output_dir=str(temp_dir)))
        with pytest.raises(RecipeValidationError):
            runner.run(_in_memory(2))
        assert list(temp_dir.iterdir()) == []


class TestCaptures:

    def test_capture_order_with_workers(self, make_config, temp_dir):
        config = make_config(output_dir=str(temp_dir), workers=4)
        runner = BatchRunner(make_recipe(("gif", "output-gif")), config)

        report = runner.run(_in_memory(8))

        reds = [decode_image(data).pixels[0, 0, 0] for data in runner.captures.frames("gif")]
        assert [abs(int(r) - i * 30) <= 3 for i, r in enumerate(reds)] == [True] * 8
        assert report.processed == 8
        with Image.open(temp_dir / "animation.gif") as gif:
            assert gif.n_frames == 8

    def test_aggregates_written_to_root(self, make_config, temp_dir):
        recipe = make_recipe(
            ("o", "output-folder", {"folder": "web"}),
            ("e", "workflow-export"),
            ("sheet", "output-contact-sheet", {"columns": 2, "gap": 0}),
        )
        BatchRunner(recipe, make_config(output_dir=str(temp_dir))).run(_in_memory(3))

        assert (temp_dir / "web" / "img0_processed.jpg").exists()
        with Image.open(temp_dir / "contact_sheet.jpg") as sheet:
            assert sheet.size == (32, 32)

    def test_capture_only_recipe_writes_no_images(self, make_config, temp_dir):
        report = BatchRunner(make_recipe(("g", "output-gif")),
                             make_config(output_dir=str(temp_dir), write_log=False)).run(_in_memory(2))
        assert sorted(p.name for p in temp_dir.iterdir()) == ["animation.gif"]
        assert report.statistics["total_captures"] == 2


class TestCancellation:

    def test_cancel_before_run(self, make_config, temp_dir):
        runner = BatchRunner(make_recipe(("g", "output-gif")), make_config(output_dir=str(temp_dir)))
        runner.cancel()

        report = runner.run(_in_memory(3))

        assert report.cancelled
        assert report.skipped == 3
        assert not (temp_dir / "animation.gif").exists()

    def test_cancel_mid_batch_discards_captures(self, make_config, temp_dir):
        registry = TransformationRegistry()
        register_builtin_transformations(registry)
        holder = {}

        def cancel_batch(buffer, params, context):
            holder["runner"].cancel()

        registry.register(TransformationDefinition(id="test-cancel", name="Cancel", apply=cancel_batch))
        recipe = make_recipe(("c", "test-cancel"), ("g", "output-gif"))
        runner = BatchRunner(recipe, make_config(output_dir=str(temp_dir)), registry=registry)
        holder["runner"] = runner

        report = runner.run(_in_memory(3))

        assert report.processed == 1
        assert report.skipped == 2
        assert len(runner.captures) == 0
        assert not (temp_dir / "animation.gif").exists()


class TestRouting:

    def test_archive_when_no_output_dir(self, make_config):
        report = BatchRunner(make_recipe(("e", "workflow-export")), make_config()).run(_in_memory(2))

        assert all(a.startswith("zip:") for a in report.artifacts)
        with zipfile.ZipFile(io.BytesIO(report.archive)) as archive:
            assert sorted(archive.namelist()) == ["batch_log.csv", "img0_processed.jpg", "img1_processed.jpg"]

    def test_no_archive_when_everything_written(self, make_config, temp_dir):
        report = BatchRunner(make_recipe(), make_config(output_dir=str(temp_dir))).run(_in_memory(1))
        assert report.archive is None
        assert (temp_dir / "img0.jpg").exists()

    def test_batch_log(self, make_config, temp_dir, image_files):
        BatchRunner(make_recipe(), make_config(output_dir=str(temp_dir))).run(image_files)

        log = pd.read_csv(temp_dir / "batch_log.csv", dtype=str, keep_default_na=False)
        assert list(log.columns[:6]) == ["filename", "date", "width", "height", "gps", "people"]
        assert log["filename"].tolist() == ["a.png", "c.png"]
        assert log["width"].tolist() == ["40", "20"]

    def test_write_log_disabled(self, make_config, temp_dir):
        BatchRunner(make_recipe(), make_config(output_dir=str(temp_dir), write_log=False)).run(_in_memory(1))
        assert not (temp_dir / "batch_log.csv").exists()


class TestReuse:

    def test_second_run_starts_clean(self, make_config, temp_dir):
        recipe = make_recipe(("e", "workflow-export"), ("sheet", "output-contact-sheet", {"columns": 1, "gap": 0}))
        runner = BatchRunner(recipe, make_config(output_dir=str(temp_dir)))

        runner.run(_in_memory(3))
        report = runner.run(_in_memory(2))

        assert report.processed == 2
        assert report.statistics["total"] == 2
        assert runner.captures.indices("sheet") == [0, 1]
        with Image.open(temp_dir / "contact_sheet.jpg") as sheet:
            assert sheet.size == (16, 32)
        log = pd.read_csv(temp_dir / "batch_log.csv", dtype=str, keep_default_na=False)
        assert log["filename"].tolist() == ["img0.png", "img1.png"]

    def test_cancellation_covers_one_run(self, make_config, temp_dir):
        runner = BatchRunner(make_recipe(), make_config(output_dir=str(temp_dir)))
        runner.cancel()

        assert runner.run(_in_memory(2)).cancelled
        report = runner.run(_in_memory(2))
        assert not report.cancelled
        assert report.processed == 2

    def test_supplied_tracker_left_open(self, make_config, temp_dir):
        tracker = ImageStatusTracker()
        runner = BatchRunner(make_recipe(), make_config(output_dir=str(temp_dir)), tracker=tracker)

        runner.run(_in_memory(1))
        assert tracker.get_status(0)["status"] == "completed"
        tracker.close()


class TestLogOrder:

    def test_log_rows_follow_input_order_with_workers(self, make_config, temp_dir):
        # Largest image first, so later inputs tend to finish earlier
        sources = [(f"i{i}.png", make_solid(400 - 90 * i, 400 - 90 * i, (i * 40, 0, 0, 255)))
                   for i in range(4)]
        config = make_config(output_dir=str(temp_dir), workers=4)
        recipe = make_recipe(("s", "filter-sharpen", {"radius": 5}), ("e", "workflow-export"))

        BatchRunner(recipe, config).run(sources)

        log = pd.read_csv(temp_dir / "batch_log.csv", dtype=str, keep_default_na=False)
        assert log["filename"].tolist() == ["i0.png", "i1.png", "i2.png", "i3.png"]
        assert log["width"].tolist() == ["400", "310", "220", "130"]
