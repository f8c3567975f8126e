"""Typed parameter models generated from ParameterDefinitions."""

import pytest
from pydantic import ValidationError

from imgrecipe.schemas import ParameterDefinition, SelectOption, build_params_model

pytestmark = pytest.mark.unit


@pytest.fixture
def model():
    return build_params_model("filter-example", [
        ParameterDefinition(name="amount", label="Amount", type="range", default_value=50, min=0, max=100),
        ParameterDefinition(name="invert", label="Invert", type="boolean", default_value=True),
        ParameterDefinition(name="mode", label="Mode", type="select", default_value="a",
                            options=[SelectOption(label="A", value="a"), SelectOption(label="B", value="b")]),
        ParameterDefinition(name="tint", label="Tint", type="color", default_value="#ff0000"),
        ParameterDefinition(name="suffix", label="Suffix", type="text", default_value="_x"),
    ])


class TestBuildParamsModel:

    def test_class_name(self, model):
        assert model.__name__ == "FilterExampleParams"

    def test_defaults_filled(self, model):
        params = model.model_validate({})
        assert params.amount == 50
        assert params.invert is True
        assert params.mode == "a"
        assert params.tint == "#ff0000"
        assert params.suffix == "_x"

    def test_zero_is_kept(self, model):
        """An explicit 0 is a value, not a request for the default."""
        assert model.model_validate({"amount": 0}).amount == 0

    def test_out_of_range_rejected(self, model):
        with pytest.raises(ValidationError):
            model.model_validate({"amount": 101})

    def test_unknown_key_rejected(self, model):
        with pytest.raises(ValidationError):
            model.model_validate({"amout": 3})

    def test_select_value_checked(self, model):
        with pytest.raises(ValidationError):
            model.model_validate({"mode": "c"})

    def test_color_pattern(self, model):
        with pytest.raises(ValidationError):
            model.model_validate({"tint": "red"})

    def test_camel_case_keys_accepted(self):
        model = build_params_model("output-gif", [
            ParameterDefinition(name="seconds_per_slide", label="Seconds", type="number",
                                default_value=0.5, min=0.1, max=10),
        ])
        assert model.model_validate({"secondsPerSlide": 2}).seconds_per_slide == 2
        assert model.model_validate({"seconds_per_slide": 3}).seconds_per_slide == 3
        with pytest.raises(ValidationError):
            model.model_validate({"secondsPerSlide": 20})

    def test_numeric_strings_coerced(self, model):
        assert model.model_validate({"amount": "12.5"}).amount == 12.5

    def test_frozen(self, model):
        params = model.model_validate({})
        with pytest.raises(ValidationError):
            params.amount = 3


class TestParameterDefinition:

    def test_select_requires_options(self):
        with pytest.raises(ValidationError, match="requires options"):
            ParameterDefinition(name="mode", label="Mode", type="select", default_value="a")

    def test_min_above_max(self):
        with pytest.raises(ValidationError, match="min"):
            ParameterDefinition(name="x", label="X", type="number", min=5, max=1)

    def test_snake_case_names(self):
        with pytest.raises(ValidationError):
            ParameterDefinition(name="blurAmount", label="Blur", type="number")
