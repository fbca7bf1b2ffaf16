"""Tool contract inference from an execution plan."""

from __future__ import annotations

import copy
from typing import Any

from .errors import NO_SUCCESS_RESPONSE, SchemaError
from .planner import ExecutionPlan


def infer(plan: ExecutionPlan) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return ``(input_schema, output_schema)`` for the tool compiled from ``plan``.

    The input schema lists the first call's parameters that are not fixed by a
    static override; the output schema is the last call's lowest 2xx response.
    """
    first = plan.steps[0]
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in first.api.parameters:
        if param.name in first.overrides:
            continue
        properties[param.name] = copy.deepcopy(param.value_schema)
        if param.required:
            required.append(param.name)

    input_schema: dict[str, Any] = {"type": "object", "properties": properties, "required": required}

    last = plan.steps[-1]
    output_schema = last.api.success_schema()
    if output_schema is None:
        raise SchemaError(
            NO_SUCCESS_RESPONSE,
            f"API '{last.api.id}' declares no 2xx response",
            node_id=last.node_id,
        )
    return input_schema, copy.deepcopy(output_schema)
