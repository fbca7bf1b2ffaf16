"""The compiled tool value."""

from __future__ import annotations

import types
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# call(method, path, query, body) -> (status_code, payload)
HttpCall = Callable[[str, str, dict, Any], tuple[int, Any]]


class GeneratedTool(BaseModel):
    """A self-contained, schema-typed executable unit.

    ``steps`` is the plan's static descriptor and ``source`` the generated
    module that interprets it. The only effectful dependency, the HTTP call,
    is passed in at invocation time.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    graph_id: str
    name: str
    description: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]
    steps: list[dict[str, Any]]
    source: str

    def load(self) -> Callable[[dict[str, Any], HttpCall], dict[str, Any]]:
        """Execute the source into a fresh module and return its ``run`` function.

        Every call creates a new namespace, so two loaded tools never share state.
        """
        module = types.ModuleType(f"toolforge_tool_{self.name}")
        code = compile(self.source, f"<tool {self.name}>", "exec")
        exec(code, module.__dict__)
        return module.run

    def invoke(self, tool_input: dict[str, Any], call: HttpCall) -> dict[str, Any]:
        """Run in-process. Returns ``{"status": "ok", "output": ...}`` or a step failure."""
        return self.load()(tool_input, call)

    def call_sequence(self) -> list[tuple[str, str]]:
        return [(step["method"], step["path"]) for step in self.steps]
