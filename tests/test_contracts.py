"""
Test Schema Contracts
=====================

Conformance, first-failure paths, strict kinds, bounds, immutability and
compatibility between contracts.
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dataclasses import FrozenInstanceError

import pytest

from core.contracts import FieldSpec, define, incompatibilities, is_compatible, validate
from core.errors import ContractViolation, PipelineDefinitionError

CITY = define({"city": "string"}, name="CityInput")

FORECAST = define({
    "date": "string",
    "maxTemp": "number",
    "minTemp": "number",
    "precipitationChance": FieldSpec("number", ge=0, le=100),
    "condition": "string",
    "location": "string",
}, name="Forecast")

SAMPLE_FORECAST = {
    "date": "2026-10-19T09:00:00+00:00",
    "maxTemp": 24.1,
    "minTemp": 12,
    "precipitationChance": 40,
    "condition": "Partly cloudy",
    "location": "Osaka",
}


def test_validate_returns_conforming_value():
    assert validate(FORECAST, SAMPLE_FORECAST) is SAMPLE_FORECAST


def test_extra_fields_are_ignored():
    value = {"city": "Osaka", "country": "JP", "zoom": 3}
    assert CITY.validate(value) == value


def test_missing_field_is_rejected_with_its_path():
    with pytest.raises(ContractViolation) as exc:
        CITY.validate({"town": "Osaka"})
    assert exc.value.path == "city"
    assert "city" in exc.value.message


def test_first_failing_field_is_reported():
    contract = define({"a": "string", "b": "number"})
    with pytest.raises(ContractViolation) as exc:
        contract.validate({})
    assert exc.value.path == "a"


def test_nested_path_is_dotted():
    contract = define({"location": {"name": "string", "lat": "number"}})
    with pytest.raises(ContractViolation) as exc:
        contract.validate({"location": {"name": "Kyoto", "lat": "north"}})
    assert exc.value.path == "location.lat"


def test_non_mapping_root_is_rejected():
    with pytest.raises(ContractViolation) as exc:
        CITY.validate("tokyo")
    assert exc.value.path == ""


def test_number_kind_is_strict():
    contract = define({"n": "number"})
    assert contract.conforms({"n": 12})
    assert contract.conforms({"n": 12.5})
    assert not contract.conforms({"n": "12"})
    assert not contract.conforms({"n": True})
    assert not contract.conforms({"n": float("nan")})
    assert not contract.conforms({"n": float("inf")})
    assert not contract.conforms({"n": float("-inf")})


def test_string_and_boolean_kinds_are_strict():
    assert not CITY.conforms({"city": 1})
    flag = define({"enabled": "boolean"})
    assert flag.conforms({"enabled": False})
    assert not flag.conforms({"enabled": "false"})
    assert not flag.conforms({"enabled": 0})


def test_non_finite_forecast_is_rejected():
    with pytest.raises(ContractViolation) as exc:
        FORECAST.validate(dict(SAMPLE_FORECAST, maxTemp=float("nan")))
    assert exc.value.path == "maxTemp"


def test_numeric_bounds():
    too_wet = dict(SAMPLE_FORECAST, precipitationChance=101)
    with pytest.raises(ContractViolation) as exc:
        FORECAST.validate(too_wet)
    assert exc.value.path == "precipitationChance"
    assert FORECAST.conforms(dict(SAMPLE_FORECAST, precipitationChance=0))
    assert FORECAST.conforms(dict(SAMPLE_FORECAST, precipitationChance=100))


def test_unusual_field_names_validate():
    contract = define({"model_config": "string", "_private": "number"})
    assert contract.conforms({"model_config": "x", "_private": 1})
    assert not contract.conforms({"model_config": "x"})


def test_define_rejects_malformed_shapes():
    with pytest.raises(PipelineDefinitionError):
        define({"city": "text"})
    with pytest.raises(PipelineDefinitionError):
        define({"city": 42})
    with pytest.raises(PipelineDefinitionError):
        define({"city": FieldSpec("string", ge=0)})
    with pytest.raises(PipelineDefinitionError):
        define(["city"])


def test_contracts_are_immutable():
    with pytest.raises(FrozenInstanceError):
        CITY.name = "Other"
    with pytest.raises(TypeError):
        CITY.fields["country"] = FieldSpec("string")


def test_contract_can_nest_another_contract():
    wrapped = define({"forecast": FORECAST})
    assert wrapped.conforms({"forecast": SAMPLE_FORECAST})
    with pytest.raises(ContractViolation) as exc:
        wrapped.validate({"forecast": {"date": "today"}})
    assert exc.value.path == "forecast.maxTemp"


def test_compatibility_requires_every_downstream_field():
    status = define({"status": "string"})
    problems = incompatibilities(status, FORECAST)
    assert not is_compatible(status, FORECAST)
    assert any("date" in p for p in problems)


def test_compatibility_allows_upstream_extras():
    assert is_compatible(FORECAST, define({"location": "string", "maxTemp": "number"}))


def test_compatibility_checks_kinds_and_bounds():
    assert not is_compatible(define({"maxTemp": "string"}), define({"maxTemp": "number"}))
    unbounded = define({"p": "number"})
    bounded = define({"p": FieldSpec("number", ge=0, le=100)})
    assert is_compatible(bounded, unbounded)
    assert not is_compatible(unbounded, bounded)


def test_describe_uses_real_field_names():
    schema = FORECAST.describe()
    assert set(schema["required"]) == set(SAMPLE_FORECAST)
    assert schema["properties"]["precipitationChance"]["maximum"] == 100
