"""Pydantic models describing a single callable API."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


class ApiParameter(BaseModel):
    """A single input of an API call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: Literal["path", "query", "body"] = "query"
    required: bool = False
    value_schema: dict[str, Any] = Field(default_factory=dict, alias="schema")

    @model_validator(mode="before")
    @classmethod
    def _path_parameters_are_required(cls, data: Any) -> Any:
        # A path template cannot be rendered without its placeholders.
        if isinstance(data, dict) and data.get("location") == "path":
            data = {**data, "required": True}
        return data


class ApiDefinition(BaseModel):
    """An API endpoint as fetched from the catalog. Never mutated by the compiler."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"] = "GET"
    path: str
    summary: str = ""
    parameters: list[ApiParameter] = []
    responses: dict[int, dict[str, Any]] = {}

    @model_validator(mode="before")
    @classmethod
    def _normalize_method(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("method"), str):
            data = {**data, "method": data["method"].upper()}
        return data

    @model_validator(mode="after")
    def _check_parameters(self) -> ApiDefinition:
        names = [p.name for p in self.parameters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"API '{self.id}' declares parameters more than once: {duplicates}")

        placeholders = set(self.path_placeholders())
        path_params = {p.name for p in self.parameters if p.location == "path"}
        if placeholders - path_params:
            raise ValueError(
                f"API '{self.id}' path placeholders without a path parameter: "
                f"{sorted(placeholders - path_params)}"
            )
        if path_params - placeholders:
            raise ValueError(
                f"API '{self.id}' path parameters missing from '{self.path}': "
                f"{sorted(path_params - placeholders)}"
            )
        return self

    def path_placeholders(self) -> list[str]:
        return _PLACEHOLDER.findall(self.path)

    def parameter(self, name: str) -> ApiParameter | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def success_status(self) -> int | None:
        """Lowest declared 2xx status code, or None."""
        codes = sorted(code for code in self.responses if 200 <= code < 300)
        return codes[0] if codes else None

    def success_schema(self) -> dict[str, Any] | None:
        status = self.success_status()
        if status is None:
            return None
        return self.responses[status]
