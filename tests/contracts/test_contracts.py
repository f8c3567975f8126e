"""Contract enforcement tests."""

import numpy as np
import pytest

from imgrecipe.contracts import (
    PIPELINE_INVARIANTS,
    STAGE_REQUIREMENTS,
    ContractViolation,
    assert_capture_order,
    assert_composite_output,
    assert_raster,
    require,
)
from imgrecipe.core.raster import RasterBuffer

pytestmark = pytest.mark.unit


class _Bogus:
    """Stands in for a buffer whose kernel broke the pixel array."""

    def __init__(self, pixels):
        self.pixels = pixels


class TestRequire:

    def test_passes_silently(self):
        require(True, "never raised")

    def test_raises_with_message(self):
        with pytest.raises(ContractViolation, match="boom"):
            require(False, "boom")


class TestRasterContract:

    def test_valid_buffer(self):
        assert_raster(RasterBuffer.blank(3, 2))

    @pytest.mark.parametrize("pixels", [
        np.zeros((4, 4, 3), dtype=np.uint8),
        np.zeros((4, 4, 4), dtype=np.float32),
        np.zeros((0, 4, 4), dtype=np.uint8),
        [[0, 0, 0, 0]],
    ])
    def test_invalid_pixels(self, pixels):
        with pytest.raises(ContractViolation, match="after step s1"):
            assert_raster(_Bogus(pixels), "step s1")


class TestCaptureContracts:

    def test_increasing_indices(self):
        assert_capture_order("sheet", [0, 2, 5])

    def test_single_and_empty(self):
        assert_capture_order("sheet", [])
        assert_capture_order("sheet", [3])

    def test_out_of_order(self):
        with pytest.raises(ContractViolation, match="out of input order"):
            assert_capture_order("sheet", [0, 3, 2])

    def test_duplicate_index(self):
        with pytest.raises(ContractViolation):
            assert_capture_order("sheet", [1, 1])

    def test_composite_output(self):
        assert_composite_output("gif", b"GIF89a")
        with pytest.raises(ContractViolation, match="produced no data"):
            assert_composite_output("gif", b"")
        with pytest.raises(ContractViolation):
            assert_composite_output("gif", None)


class TestInvariantTables:

    def test_every_stage_has_a_requirement_level(self):
        assert set(STAGE_REQUIREMENTS) == set(PIPELINE_INVARIANTS)
        assert set(STAGE_REQUIREMENTS.values()) <= {"REQUIRED", "OPTIONAL"}

    def test_stages_document_something(self):
        for stage, invariants in PIPELINE_INVARIANTS.items():
            assert invariants, stage
            assert all(isinstance(text, str) and text for text in invariants)
