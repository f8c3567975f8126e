"""Transformation registry and recipe validation."""

import logging

import pytest

from imgrecipe.core.errors import DuplicateTransformationError, RecipeValidationError, RegistryFrozenError
from imgrecipe.core.registry import (
    AggregationKind,
    TransformationDefinition,
    TransformationKind,
    TransformationRegistry,
    validate_recipe,
)
from imgrecipe.schemas import ParameterDefinition
from tests.helpers.fakes import make_recipe

pytestmark = pytest.mark.unit


def _noop(buffer, params, context):
    pass


def _definition(tid="test-noop", name="Noop", **kwargs):
    kwargs.setdefault("apply", _noop)
    return TransformationDefinition(id=tid, name=name, **kwargs)


class TestRegistration:

    def test_register_and_get(self):
        registry = TransformationRegistry()
        definition = _definition()
        registry.register(definition)

        assert registry.get("test-noop") is definition
        assert "test-noop" in registry
        assert registry.get("missing") is None

    def test_duplicate_rejected_by_default(self):
        registry = TransformationRegistry()
        registry.register(_definition(name="First"))

        with pytest.raises(DuplicateTransformationError):
            registry.register(_definition(name="Second"))
        assert registry.get("test-noop").name == "First"

    def test_explicit_replace(self, caplog):
        registry = TransformationRegistry()
        registry.register(_definition(name="First"))

        with caplog.at_level(logging.WARNING):
            registry.register(_definition(name="Second"), replace=True)

        assert registry.get("test-noop").name == "Second"
        assert "Replacing" in caplog.text

    def test_replace_policy(self):
        registry = TransformationRegistry(duplicate_policy="replace")
        registry.register(_definition(name="First"))
        registry.register(_definition(name="Second"))
        assert registry.get("test-noop").name == "Second"

        with pytest.raises(DuplicateTransformationError):
            registry.register(_definition(name="Third"), replace=False)

    def test_frozen(self):
        registry = TransformationRegistry()
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(_definition())

    def test_ids_keep_registration_order(self):
        registry = TransformationRegistry()
        for tid in ("b", "a", "c"):
            registry.register(_definition(tid))
        assert registry.ids() == ["b", "a", "c"]
        assert len(registry) == 3


class TestDefinition:

    def test_kernel_needs_apply(self):
        with pytest.raises(ValueError, match="apply"):
            TransformationDefinition(id="k", name="K")

    def test_aggregation_needs_kind(self):
        with pytest.raises(ValueError, match="aggregation kind"):
            TransformationDefinition(id="a", name="A", kind=TransformationKind.AGGREGATION)

    def test_output_kinds(self):
        export = TransformationDefinition(id="e", name="E", kind=TransformationKind.EXPORT)
        sheet = TransformationDefinition(
            id="s", name="S", kind=TransformationKind.AGGREGATION,
            aggregation=AggregationKind.CONTACT_SHEET,
        )
        assert export.is_output and sheet.is_output
        assert not _definition().is_output

    def test_resolve_params_fills_defaults(self):
        definition = _definition(params=[
            ParameterDefinition(name="amount", label="Amount", type="number", default_value=3, min=0, max=10),
        ])
        assert definition.resolve_params(None).amount == 3
        assert definition.default_params() == {"amount": 3}


class TestBuiltinRegistry:

    def test_frozen_and_populated(self, registry):
        assert registry.frozen
        for tid in ("filter-sharpen", "filter-vignette", "filter-pixelate", "filter-duotone",
                    "filter-posterize", "filter-edge-detection", "workflow-export",
                    "output-contact-sheet", "output-gif", "output-video"):
            assert tid in registry, tid

    def test_is_output_step(self, registry):
        assert registry.is_output_step("workflow-export")
        assert registry.is_output_step("output-gif")
        assert not registry.is_output_step("filter-sharpen")
        assert not registry.is_output_step("no-such-step")

    def test_aggregation_kinds(self, registry):
        assert registry.get("output-contact-sheet").aggregation == AggregationKind.CONTACT_SHEET
        assert registry.get("output-gif").aggregation == AggregationKind.ANIMATION
        assert registry.get("output-video").aggregation == AggregationKind.VIDEO


class TestValidateRecipe:

    def test_valid_recipe(self, registry):
        recipe = make_recipe(("a", "filter-posterize", {"levels": 4}), ("b", "workflow-export"))
        resolved = validate_recipe(recipe, registry)

        assert resolved["a"].levels == 4
        assert resolved["b"].format == "image/jpeg"

    def test_all_problems_collected(self, registry):
        recipe = make_recipe(
            ("a", "filter-posterize", {"levels": 1}),
            ("b", "filter-pixelate", {"size": 500}),
            ("c", "filter-sharpen"),
        )
        with pytest.raises(RecipeValidationError) as info:
            validate_recipe(recipe, registry)

        assert set(info.value.problems) == {"a", "b"}
        assert "levels" in info.value.problems["a"]

    def test_unknown_id_warned_not_raised(self, registry, caplog):
        recipe = make_recipe(("a", "filter-does-not-exist"), ("b", "filter-sharpen"))

        with caplog.at_level(logging.WARNING):
            resolved = validate_recipe(recipe, registry)

        assert list(resolved) == ["b"]
        assert "filter-does-not-exist" in caplog.text
