import pytest

from imgrecipe.core.errors import KernelError
from imgrecipe.transforms.workflow import sanitize_subfolder
from tests.helpers.fakes import make_solid

pytestmark = pytest.mark.unit


def test_save_and_load_state(apply_kernel, make_context):
    buf = make_solid(4, 4, (10, 10, 10, 255))
    context = make_context(buf.copy())

    apply_kernel("workflow-save-state", buf, context=context, name="before")
    apply_kernel("filter-brightness", buf, context=context, amount=100)
    assert buf.pixels[0, 0, 0] == 20

    apply_kernel("workflow-load-state", buf, context=context, name="before")
    assert buf.pixels[0, 0, 0] == 10


def test_saved_state_is_a_snapshot(apply_kernel, make_context):
    buf = make_solid(4, 4, (10, 10, 10, 255))
    context = make_context(buf.copy())
    apply_kernel("workflow-save-state", buf, context=context)

    buf.pixels[...] = 0
    assert context.variables["default"].pixels[0, 0, 0] == 10


def test_load_unknown_state_is_noop(apply_kernel, gray_image):
    before = gray_image.copy()
    apply_kernel("workflow-load-state", gray_image, name="never-saved")
    assert gray_image.same_pixels(before)


def test_load_restores_dimensions(apply_kernel, make_context):
    buf = make_solid(10, 10)
    context = make_context(buf.copy())
    apply_kernel("workflow-save-state", buf, context=context, name="full")
    apply_kernel("geometry-crop", buf, context=context, width=3, height=3)
    apply_kernel("workflow-load-state", buf, context=context, name="full")
    assert buf.size == (10, 10)


def test_output_folder(apply_kernel, gray_image):
    context = apply_kernel("output-folder", gray_image, folder="/web/./large/")
    assert context.output_subfolder == "web/large"


def test_output_folder_blank_clears(apply_kernel, gray_image):
    context = apply_kernel("output-folder", gray_image, folder="  ")
    assert context.output_subfolder is None


@pytest.mark.parametrize("folder", ["../outside", "a/../../b", "..\\win"])
def test_output_folder_cannot_escape(folder):
    with pytest.raises(KernelError):
        sanitize_subfolder(folder)
