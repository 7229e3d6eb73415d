"""
Wire format handed to the execution engine.

Field names here are a stable contract; the engine deserializes them as-is.
"""

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field, model_validator

from .models import ValueType


class ParameterDefinition(BaseModel):
    model_config = {"extra": "forbid"}

    parameter_name: str = Field(..., min_length=1)
    json_pointer: str = Field(..., description="Location path, e.g. /body/user_id or /headers/X-Api-Key")
    location: Literal["path", "query", "header", "body"]
    example_value: str = Field(..., description="Compact JSON text of the example value.")
    value_type: ValueType
    # only for object/array examples
    example_structure: Optional[Any] = None


class BackendSchema(BaseModel):
    model_config = {"extra": "forbid"}

    original_curl: str
    method: str
    base_url: str
    url_template: str
    original_headers: list[tuple[str, str]] = Field(default_factory=list)
    original_body: Optional[str] = None
    parameters: list[ParameterDefinition] = Field(default_factory=list)
    parameter_names: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_parameter_names(self) -> "BackendSchema":
        names = [p.parameter_name for p in self.parameters]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate parameter names: {names}")
        if self.parameter_names != names:
            raise ValueError("parameter_names must list the parameters in order")
        return self

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dict; absent optional keys are omitted rather than null."""
        d = self.model_dump(mode="json")
        if d["original_body"] is None:
            del d["original_body"]
        for p in d["parameters"]:
            if p["example_structure"] is None:
                del p["example_structure"]
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "BackendSchema":
        """
        Rehydrate a schema produced by to_dict().
        Raises pydantic.ValidationError on malformed input.
        """
        return cls.model_validate(dict(d))
