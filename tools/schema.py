"""
Schema Generator
----------------
Builds a pydantic validator from an operation's parameter list.

Rules:
- Required parameters must be present; optional ones may be omitted
- Values are checked against their declared type, without coercion
- Keys not declared by the operation pass through unchecked
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Mapping, Sequence, Tuple, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictStr, Strict
from pydantic import ValidationError, create_model

from catalog.models import ParamType, ParameterDescriptor
from core.errors import ValidationDetail, validation_details_from_pydantic


def _check_number(value: Any) -> Any:
    # bool is an int subclass but not a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Input should be a valid number")
    return value


Number = Annotated[Any, AfterValidator(_check_number)]


class _PassThroughModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


def annotation_for(param_type: ParamType) -> Any:
    """Python annotation enforcing one declared parameter type."""
    if param_type is ParamType.STRING:
        return StrictStr
    if param_type is ParamType.NUMBER:
        return Number
    if param_type is ParamType.BOOLEAN:
        return StrictBool
    if param_type is ParamType.ARRAY:
        return Annotated[List[Any], Strict()]
    if param_type is ParamType.OBJECT:
        return Annotated[Dict[str, Any], Strict()]
    if param_type is ParamType.ANY:
        return Any
    raise ValueError(f"Unhandled parameter type: {param_type}")


def json_schema_for(param: ParameterDescriptor) -> Dict[str, Any]:
    """JSON Schema fragment for one parameter."""
    if param.type is ParamType.ARRAY:
        schema: Dict[str, Any] = {"type": "array", "items": {}}
    elif param.type is ParamType.OBJECT:
        schema = {"type": "object", "additionalProperties": True}
    elif param.type is ParamType.ANY:
        schema = {}
    else:
        schema = {"type": param.type.value}

    if param.description:
        schema["description"] = param.description
    if param.has_example:
        schema["examples"] = [param.example]
    return schema


@dataclass
class ValidationResult:
    """Outcome of validating one parameter object."""
    valid: bool
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[ValidationDetail] = field(default_factory=list)


class ParameterValidator:
    """
    Validates raw tool arguments.

    Wraps a generated pydantic model. Field names that would clash with
    BaseModel attributes are stored under an alias.
    """

    def __init__(self, parameters: Sequence[ParameterDescriptor], model: Type[BaseModel]):
        self.parameters: Tuple[ParameterDescriptor, ...] = tuple(parameters)
        self.model = model

    def validate(self, params: Any) -> ValidationResult:
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            return ValidationResult(False, errors=[ValidationDetail(
                field="parameters",
                message=f"Expected an object, received {type(params).__name__}",
                code="type_error",
            )])

        try:
            instance = self.model.model_validate(dict(params))
        except ValidationError as e:
            return ValidationResult(False, errors=validation_details_from_pydantic(e))

        dumped = instance.model_dump(by_alias=True)
        values = {key: dumped[key] for key in params if key in dumped}
        return ValidationResult(True, values=values)

    def json_schema(self) -> Dict[str, Any]:
        """Input schema advertised to protocol clients."""
        properties = {}
        required = []
        for param in self.parameters:
            properties[param.name] = json_schema_for(param)
            if param.required:
                required.append(param.name)

        schema: Dict[str, Any] = {
            "type": "object",
            "properties": properties,
            "additionalProperties": True,
        }
        if required:
            schema["required"] = required
        return schema

    @property
    def required_names(self) -> List[str]:
        return [p.name for p in self.parameters if p.required]


def _field_name(name: str, index: int) -> str:
    if name.isidentifier() and not name.startswith("_") and not hasattr(BaseModel, name):
        return name
    return f"param_{index}"


def build_validator(
    parameters: Sequence[ParameterDescriptor],
    model_name: str = "ToolParameters",
) -> ParameterValidator:
    """Build a validator for a list of parameter descriptors."""
    fields: Dict[str, Any] = {}
    for index, param in enumerate(parameters):
        annotation = annotation_for(param.type)
        alias = param.name if _field_name(param.name, index) != param.name else None

        if param.required:
            fields[_field_name(param.name, index)] = (
                annotation, Field(..., alias=alias, description=param.description or None)
            )
        else:
            # default is not validated; an explicit null still is
            fields[_field_name(param.name, index)] = (
                annotation, Field(None, alias=alias, description=param.description or None)
            )

    model = create_model(model_name, __base__=_PassThroughModel, **fields)
    return ParameterValidator(parameters, model)
