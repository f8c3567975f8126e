import pytest

from imgrecipe.core.context import Collaborators, RunContext


@pytest.fixture
def make_context():
    """RunContext factory; keyword args become collaborators."""
    def _make(image, filename="photo.png", metadata=None, **collaborators):
        return RunContext(
            original_image=image,
            filename=filename,
            metadata=metadata,
            collaborators=Collaborators(**collaborators),
        )
    return _make


@pytest.fixture
def apply_kernel(registry, make_context):
    """Run one registered kernel on a buffer, in place, and return the context."""
    def _apply(transformation_id, buffer, context=None, **params):
        definition = registry.get(transformation_id)
        context = context or make_context(buffer.copy())
        definition.apply(buffer, definition.resolve_params(params), context)
        return context
    return _apply
