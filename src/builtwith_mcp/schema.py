"""
Declarative input schemas for tools and prompts.

An InputSchema is written once per tool/prompt and serves two purposes:
it builds the pydantic model that validates incoming arguments, and it
renders the JSON schema / prompt argument list shown to clients.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError, create_model

ParamType = Literal["string", "boolean", "number", "integer"]

_PYTHON_TYPES: Dict[str, Any] = {
    "string": StrictStr,
    "boolean": StrictBool,
    "number": Union[StrictInt, StrictFloat],
    "integer": StrictInt,
}


class InputValidationError(ValueError):
    """Raised when arguments do not satisfy an InputSchema."""

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid input: {summary}")


@dataclass(frozen=True)
class ParamSpec:
    """One named parameter of a tool or prompt."""
    name: str
    type: ParamType = "string"
    required: bool = True
    description: Optional[str] = None

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        return schema


def param(name: str, type: ParamType = "string", description: Optional[str] = None) -> ParamSpec:
    """Required parameter."""
    return ParamSpec(name=name, type=type, required=True, description=description)


def optional(name: str, type: ParamType = "string", description: Optional[str] = None) -> ParamSpec:
    """Optional parameter; omitted values validate to None."""
    return ParamSpec(name=name, type=type, required=False, description=description)


class InputSchema:
    """Ordered set of ParamSpecs with a lazily built pydantic validator."""

    def __init__(self, *params: ParamSpec, model_name: str = "ToolInput"):
        names = [p.name for p in params]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate parameter names in schema: {names}")
        self.params: Tuple[ParamSpec, ...] = tuple(params)
        self._model_name = model_name
        self._model: Optional[Type[BaseModel]] = None

    @property
    def model(self) -> Type[BaseModel]:
        if self._model is None:
            fields: Dict[str, Any] = {}
            for p in self.params:
                python_type = _PYTHON_TYPES[p.type]
                if p.required:
                    fields[p.name] = (python_type, ...)
                else:
                    fields[p.name] = (Optional[python_type], None)
            self._model = create_model(
                self._model_name,
                __config__=ConfigDict(extra="ignore"),
                **fields,
            )
        return self._model

    def validate(self, raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate raw arguments.

        Returns:
            Dict with every declared parameter; absent optionals are None.

        Raises:
            InputValidationError: If arguments are missing or mistyped
        """
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise InputValidationError([{"field": "(root)", "message": "Arguments must be an object"}])
        try:
            validated = self.model.model_validate(raw)
        except ValidationError as e:
            raise InputValidationError([
                {
                    "field": ".".join(str(loc) for loc in err["loc"]) or "(root)",
                    "message": err["msg"],
                }
                for err in e.errors()
            ])
        return validated.model_dump()

    def to_json_schema(self) -> Dict[str, Any]:
        """JSON schema advertised in the tool catalog."""
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {p.name: p.to_json_schema() for p in self.params},
        }
        required = [p.name for p in self.params if p.required]
        if required:
            schema["required"] = required
        return schema

    def to_prompt_arguments(self) -> List[Dict[str, Any]]:
        """Argument list advertised in the prompt catalog."""
        return [
            {"name": p.name, "description": p.description, "required": p.required}
            for p in self.params
        ]

    def __repr__(self) -> str:
        return f"InputSchema({', '.join(p.name for p in self.params)})"
