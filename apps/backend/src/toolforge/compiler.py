"""Compilation pipeline: validate -> plan -> infer -> synthesize."""

from __future__ import annotations

import logging

from .catalog import Catalog
from .config import get_settings
from .tools import GeneratedTool, synthesize
from .workflow.inference import infer
from .workflow.planner import plan
from .workflow.schema import WorkflowGraph
from .workflow.validator import validate

logger = logging.getLogger(__name__)


def compile_tool(graph: WorkflowGraph, catalog: Catalog, lookup_workers: int | None = None) -> GeneratedTool:
    """Compile ``graph`` into a GeneratedTool.

    Raises GraphError, PlanError or SchemaError; none of them are retried.
    Synchronous and side-effect free apart from catalog lookups.
    """
    if lookup_workers is None:
        lookup_workers = get_settings().catalog_lookup_workers

    order = validate(graph)
    execution_plan = plan(order, graph, catalog, max_workers=lookup_workers)
    input_schema, output_schema = infer(execution_plan)
    tool = synthesize(
        execution_plan,
        input_schema,
        output_schema,
        name=graph.name or graph.id,
        description=graph.description,
    )
    logger.info("Compiled graph %s into tool %s", graph.id, tool.name)
    return tool
