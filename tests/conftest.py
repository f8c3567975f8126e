"""Root-level pytest fixtures for the imgrecipe test suite.

Provides shared configuration fixtures following the Pydantic-based
config layers, plus registry and raster fixtures. Tests should use these
fixtures instead of building raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from imgrecipe.core.registry import build_default_registry
from imgrecipe.pipeline.engine import RecipeEngine
from imgrecipe.schemas import ParamConfig, UserConfig, resolve_config
from tests.helpers.fakes import make_gradient, make_solid


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using make_config or custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides), no face detector.

    Face detection is switched off so tests never load a Haar cascade
    unless they ask for one.
    """
    return resolve_config(param_config, UserConfig(FACE_DETECTOR="none"), None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs. The
    face detector defaults to "none".

    Examples
    --------
    >>> def test_workers(make_config):
    ...     config = make_config(workers=4)
    ...     assert config.batch.workers == 4
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        user_overrides.setdefault("face_detector", "none")
        return resolve_config(param_config, UserConfig(**user_overrides), None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Registry and Raster Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def registry():
    """Frozen registry with every built-in transformation."""
    return build_default_registry()


@pytest.fixture
def gray_image():
    """100x100 opaque mid-gray (128) image."""
    return make_solid(100, 100, (128, 128, 128, 255))


@pytest.fixture
def gradient_image():
    """64x48 horizontal gray ramp, opaque."""
    return make_gradient(64, 48)


@pytest.fixture
def engine(registry, internal_config):
    """Engine over the built-in registry with default encodings."""
    return RecipeEngine(registry, internal_config)
