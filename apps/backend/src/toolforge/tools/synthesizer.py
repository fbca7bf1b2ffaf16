"""Tool synthesizer: execution plan + inferred schemas -> GeneratedTool."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..workflow.planner import ExecutionPlan, PlanStep
from .template import TOOL_HEADER, TOOL_RUNTIME
from .tool import GeneratedTool
from .validator import validate_tool_source

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")


class ToolSourceError(ValueError):
    """Raised when rendered source fails static validation."""


def synthesize(
    plan: ExecutionPlan,
    input_schema: dict[str, Any],
    output_schema: dict[str, Any],
    name: str | None = None,
    description: str | None = None,
) -> GeneratedTool:
    """Render the plan into a self-contained tool module."""
    steps = [_describe_step(step) for step in plan.steps]
    tool_name = to_tool_name(name or plan.graph_id)
    summary = " -> ".join(f"{s['method']} {s['path']}" for s in steps)
    tool_description = description or f"Calls {summary}"

    source = render_source(plan.graph_id, tool_name, tool_description, input_schema, steps)
    tool = GeneratedTool(
        graph_id=plan.graph_id,
        name=tool_name,
        description=tool_description,
        input_schema=input_schema,
        output_schema=output_schema,
        steps=steps,
        source=source,
    )
    logger.info("Synthesized tool %s (%d step(s))", tool_name, len(steps))
    return tool


def retitle(tool: GeneratedTool, name: str, description: str) -> GeneratedTool:
    """Return a copy of ``tool`` with new metadata and re-rendered source. Steps are untouched."""
    if not is_valid_tool_name(name):
        raise ValueError(f"Invalid tool name: {name!r}")
    source = render_source(tool.graph_id, name, description, tool.input_schema, tool.steps)
    return tool.model_copy(update={"name": name, "description": description, "source": source})


def render_source(
    graph_id: str,
    name: str,
    description: str,
    input_schema: dict[str, Any],
    steps: list[dict[str, Any]],
) -> str:
    summary = " -> ".join(f"{s['method']} {s['path']}" for s in steps)
    header = TOOL_HEADER.format(
        graph_id=graph_id,
        name=name,
        summary=summary.replace("\\", "/").replace('"', "'"),
        description=description,
        input_fields=list(input_schema.get("properties", {})),
        required_inputs=list(input_schema.get("required", [])),
        steps_json=json.dumps(steps, sort_keys=True, separators=(",", ":")),
    )
    source = header + TOOL_RUNTIME

    errors = validate_tool_source(source)
    if errors:
        raise ToolSourceError("Generated source failed validation: " + "; ".join(errors))
    return source


def to_tool_name(raw: str) -> str:
    name = re.sub(r"[^0-9a-zA-Z]+", "_", raw).strip("_").lower()
    if not name:
        return "tool"
    if name[0].isdigit():
        name = f"tool_{name}"
    return name


def is_valid_tool_name(name: str) -> bool:
    return bool(_NAME_PATTERN.match(name))


def _describe_step(step: PlanStep) -> dict[str, Any]:
    mapping = None
    if step.mapping is not None:
        mapping = {
            "source": step.mapping.source,
            "target": step.mapping.target,
            "source_expr": step.mapping.source_expr,
            "target_expr": step.mapping.target_expr,
        }
    return {
        "node_id": step.node_id,
        "api": step.api.id,
        "method": step.api.method,
        "path": step.api.path,
        "parameters": [{"name": p.name, "location": p.location} for p in step.api.parameters],
        "overrides": step.overrides,
        "mapping": mapping,
    }
