"""
Schema Contracts
================

Declarative, immutable descriptions of the shape a value must have when it
crosses a step boundary.

A shape is a mapping of field name to kind:

    >>> FORECAST = define({
    ...     "location": "string",
    ...     "maxTemp": "number",
    ...     "precipitationChance": FieldSpec("number", ge=0, le=100),
    ...     "coordinates": {"latitude": "number", "longitude": "number"},
    ... })
    >>> validate(FORECAST, payload)

Every listed field is required; extra fields are ignored. Validation is done
by a pydantic model generated once per contract with strict field types, so
"12" is not a number and 1 is not a string. NaN and infinity are
rejected as numbers.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, Strict, ValidationError, create_model

from core.errors import ContractViolation, PipelineDefinitionError

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
OBJECT = "object"

_PRIMITIVES = {
    STRING: Annotated[str, Strict()],
    NUMBER: Annotated[float, Strict(), AllowInfNan(False)],
    BOOLEAN: Annotated[bool, Strict()],
}


@dataclass(frozen=True)
class FieldSpec:
    """
    Annotated field kind.

    Args:
        kind: "string", "number", "boolean" or "object"
        description: Human readable description (exposed by describe())
        ge: Inclusive lower bound, numbers only
        le: Inclusive upper bound, numbers only
        fields: Nested field specs, objects only
    """
    kind: str
    description: str = ""
    ge: Optional[float] = None
    le: Optional[float] = None
    fields: Optional[Mapping[str, "FieldSpec"]] = None


ShapeValue = Union[str, FieldSpec, Mapping[str, Any], "Contract"]


def _normalize_field(name: str, value: Any) -> FieldSpec:
    if isinstance(value, Contract):
        return FieldSpec(OBJECT, fields=value.fields)
    if isinstance(value, FieldSpec):
        if value.kind == OBJECT:
            return FieldSpec(
                OBJECT,
                description=value.description,
                fields=_normalize_shape(value.fields or {}),
            )
        if value.kind not in _PRIMITIVES:
            raise PipelineDefinitionError(f"Field '{name}' has unknown kind '{value.kind}'")
        if (value.ge is not None or value.le is not None) and value.kind != NUMBER:
            raise PipelineDefinitionError(f"Field '{name}': bounds are only valid on numbers")
        return value
    if isinstance(value, Mapping):
        return FieldSpec(OBJECT, fields=_normalize_shape(value))
    if isinstance(value, str):
        if value not in _PRIMITIVES:
            raise PipelineDefinitionError(f"Field '{name}' has unknown kind '{value}'")
        return FieldSpec(value)
    raise PipelineDefinitionError(
        f"Field '{name}' must be a kind name, FieldSpec, nested mapping or Contract, "
        f"got {type(value).__name__}"
    )


def _normalize_shape(shape: Mapping[str, Any]) -> Mapping[str, FieldSpec]:
    if not isinstance(shape, Mapping):
        raise PipelineDefinitionError(f"Shape must be a mapping, got {type(shape).__name__}")
    fields = {}
    for name, value in shape.items():
        if not isinstance(name, str) or not name:
            raise PipelineDefinitionError(f"Field names must be non-empty strings, got {name!r}")
        fields[name] = _normalize_field(name, value)
    return MappingProxyType(fields)


def _build_model(model_name: str, fields: Mapping[str, FieldSpec]) -> Type[BaseModel]:
    # Fields are declared under positional names with the real key as alias so
    # that keys like "model_config" or "_private" validate like any other.
    definitions: Dict[str, Any] = {}
    for index, (key, spec) in enumerate(fields.items()):
        if spec.kind == OBJECT:
            annotation = _build_model(f"{model_name}_{key}", spec.fields or {})
        else:
            annotation = _PRIMITIVES[spec.kind]
        definitions[f"field_{index}"] = (
            annotation,
            Field(..., alias=key, description=spec.description or None, ge=spec.ge, le=spec.le),
        )
    return create_model(
        model_name,
        __config__=ConfigDict(extra="ignore", frozen=True),
        **definitions,
    )


def _error_path(loc) -> str:
    return ".".join(str(part) for part in loc)


@dataclass(frozen=True)
class Contract:
    """
    Immutable schema contract.

    Use ``define()`` to build one from a shape; instances are never mutated
    after construction and can be shared freely between steps and pipelines.
    """
    name: str
    fields: Mapping[str, FieldSpec]
    _model: Type[BaseModel] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_model", _build_model(self.name, self.fields))

    def validate(self, value: Any) -> Any:
        """
        Check ``value`` against this contract.

        Returns:
            The value itself, unchanged

        Raises:
            ContractViolation: naming the first missing or mismatched field path
        """
        try:
            self._model.model_validate(value)
        except ValidationError as e:
            first = e.errors()[0]
            path = _error_path(first["loc"])
            where = path or "<root>"
            raise ContractViolation(
                f"{self.name}: '{where}' {first['msg'].lower()}",
                path=path,
            ) from None
        return value

    def conforms(self, value: Any) -> bool:
        try:
            self.validate(value)
        except ContractViolation:
            return False
        return True

    def describe(self) -> Dict[str, Any]:
        """JSON schema of the contract, keyed by the real field names."""
        return self._model.model_json_schema(by_alias=True)


def define(shape: Mapping[str, ShapeValue], name: str = "Contract") -> Contract:
    """Build an immutable contract from a declarative shape."""
    return Contract(name=name, fields=_normalize_shape(shape))


def validate(contract: Contract, value: Any) -> Any:
    """Module-level alias of ``Contract.validate``."""
    return contract.validate(value)


def _field_incompatibilities(
    produced: Mapping[str, FieldSpec],
    required: Mapping[str, FieldSpec],
    prefix: str = "",
) -> List[str]:
    problems = []
    for key, want in required.items():
        path = f"{prefix}{key}"
        have = produced.get(key)
        if have is None:
            problems.append(f"'{path}' is required but not produced")
            continue
        if have.kind != want.kind:
            problems.append(f"'{path}' is produced as {have.kind} but required as {want.kind}")
            continue
        if want.kind == OBJECT:
            problems.extend(_field_incompatibilities(have.fields or {}, want.fields or {}, f"{path}."))
        elif want.kind == NUMBER:
            if want.ge is not None and (have.ge is None or have.ge < want.ge):
                problems.append(f"'{path}' may be below the required minimum {want.ge}")
            if want.le is not None and (have.le is None or have.le > want.le):
                problems.append(f"'{path}' may exceed the required maximum {want.le}")
    return problems


def incompatibilities(upstream: Contract, downstream: Contract) -> List[str]:
    """
    List the reasons values produced under ``upstream`` might fail ``downstream``.

    Upstream may declare more fields than downstream needs; every field
    downstream requires must be produced with the same kind and bounds at
    least as tight.
    """
    return _field_incompatibilities(upstream.fields, downstream.fields)


def is_compatible(upstream: Contract, downstream: Contract) -> bool:
    return not incompatibilities(upstream, downstream)
