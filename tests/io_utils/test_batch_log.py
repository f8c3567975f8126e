"""CSV batch log rendering."""

import io
import math

import pandas as pd
import pytest

from imgrecipe.io.batch_log import PRIORITY_COLUMNS, BatchLog
from imgrecipe.io.output_router import OutputRouter

pytestmark = pytest.mark.unit


class TestBatchLog:

    def test_empty(self):
        assert BatchLog().to_csv() == ""

    def test_priority_columns_first(self):
        log = BatchLog()
        log.add_entry({"camera": "X100", "filename": "a.jpg", "width": 4, "height": 2})

        header = log.to_csv().split("\n")[0]
        assert header.split(",") == PRIORITY_COLUMNS + ["camera"]

    def test_extra_columns_in_first_seen_order(self):
        log = BatchLog()
        log.add_entry({"filename": "a.jpg", "iso": 100})
        log.add_entry({"filename": "b.jpg", "lens": "35mm", "iso": 200})
        assert log.columns()[len(PRIORITY_COLUMNS):] == ["iso", "lens"]

    def test_rows_joined_without_trailing_newline(self):
        log = BatchLog()
        log.add_entry({"filename": "a.jpg"})
        log.add_entry({"filename": "b.jpg"})

        text = log.to_csv()
        assert text.count("\n") == 2
        assert not text.endswith("\n")
        assert "\r" not in text

    def test_value_formatting(self):
        log = BatchLog()
        log.add_entry({
            "filename": "a.jpg",
            "width": 640.0,
            "gps": {"lat": 51.5, "lon": -0.12},
            "face_count": 2,
            "flash": True,
            "exposure": math.nan,
        })

        row = log.to_frame().iloc[0]
        assert row["width"] == "640"
        assert row["gps"] == "51.5, -0.12"
        assert row["people"] == "2"
        assert row["flash"] == "true"
        assert row["exposure"] == ""
        assert "face_count" not in log.columns()

    def test_quoting_round_trip(self):
        log = BatchLog()
        log.add_entry({"filename": 'odd, "name".jpg', "note": "line1\nline2"})

        text = log.to_csv()
        assert '"odd, ""name"".jpg"' in text

        parsed = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
        assert parsed.loc[0, "filename"] == 'odd, "name".jpg'
        assert parsed.loc[0, "note"] == "line1\nline2"

    def test_make_entry_keeps_final_size(self):
        entry = BatchLog.make_entry("a.jpg", 10, 20, {"width": 999, "date": "2024:01:01 10:00:00"})
        assert entry == {"filename": "a.jpg", "width": 10, "height": 20, "date": "2024:01:01 10:00:00"}

    def test_write_through_router(self, temp_dir):
        log = BatchLog("run.csv")
        assert log.write(OutputRouter(temp_dir)) is None

        log.add_entry({"filename": "a.jpg"})
        location = log.write(OutputRouter(temp_dir))
        assert location.endswith("run.csv")
        assert (temp_dir / "run.csv").read_text().startswith("filename,date")

    def test_clear(self):
        log = BatchLog()
        log.add_entry({"filename": "a.jpg"})
        log.clear()
        assert len(log) == 0

    def test_indexed_rows_in_index_order(self):
        log = BatchLog()
        log.add_entry({"filename": "c.jpg", "lens": "50mm"}, index=2)
        log.add_entry({"filename": "a.jpg"}, index=0)
        log.add_entry({"filename": "b.jpg", "iso": 100}, index=1)

        assert [row["filename"] for row in log.rows()] == ["a.jpg", "b.jpg", "c.jpg"]
        assert log.columns()[len(PRIORITY_COLUMNS):] == ["iso", "lens"]
