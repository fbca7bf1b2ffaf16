"""Execution planner: linearized graph + catalog -> resolved, statically checked call sequence."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from pydantic import BaseModel

from ..catalog import ApiDefinition, Catalog
from .errors import (
    INVALID_MAPPING_PATH,
    MISSING_PARAMETER,
    NO_SUCCESS_RESPONSE,
    TYPE_MISMATCH,
    UNKNOWN_API,
    UNKNOWN_PARAMETER,
    PlanError,
    SchemaError,
)
from .paths import (
    PathSyntaxError,
    SchemaPathError,
    Segment,
    parse_path,
    resolve_schema,
    types_compatible,
)
from .schema import DataMapping, WorkflowGraph, WorkflowNode

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_WORKERS = 8


class ResolvedMapping(BaseModel):
    """A data mapping whose paths were checked against declared schemas."""

    source: list[Segment]
    target: list[Segment]
    source_expr: str
    target_expr: str


class PlanStep(BaseModel):
    node_id: str
    api: ApiDefinition
    overrides: dict[str, Any] = {}
    mapping: Optional[ResolvedMapping] = None


class ExecutionPlan(BaseModel):
    """Ordered calls a tool will perform. Recomputed on every compilation."""

    graph_id: str
    steps: list[PlanStep]


def plan(
    order: list[str],
    graph: WorkflowGraph,
    catalog: Catalog,
    max_workers: int = DEFAULT_LOOKUP_WORKERS,
) -> ExecutionPlan:
    """Resolve every node in ``order`` and validate the mapping on its incoming edge."""
    nodes = [graph.node(node_id) for node_id in order]
    definitions = _fetch_definitions(nodes, catalog, max_workers)

    steps: list[PlanStep] = []
    for index, node in enumerate(nodes):
        api = definitions[node.api]
        _check_overrides(node, api)

        mapping: ResolvedMapping | None = None
        if index > 0:
            incoming = graph.incoming(node.id)
            edge_mapping = incoming[0].mapping if incoming else None
            if edge_mapping is not None:
                mapping = _resolve_mapping(edge_mapping, steps[-1], node, api)
            _check_satisfied(node, api, mapping)

        steps.append(PlanStep(node_id=node.id, api=api, overrides=dict(node.overrides), mapping=mapping))

    logger.debug("Planned %d step(s) for graph %s", len(steps), graph.id)
    return ExecutionPlan(graph_id=graph.id, steps=steps)


def _fetch_definitions(
    nodes: list[WorkflowNode], catalog: Catalog, max_workers: int
) -> dict[str, ApiDefinition]:
    """Look up each distinct API id concurrently; report the first missing one in path order."""
    api_ids = list(dict.fromkeys(node.api for node in nodes))
    workers = max(1, min(max_workers, len(api_ids)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="catalog") as pool:
        results = list(pool.map(catalog.get, api_ids))

    found = dict(zip(api_ids, results))
    for node in nodes:
        if found[node.api] is None:
            raise PlanError(
                UNKNOWN_API,
                f"Node '{node.id}' references unknown API '{node.api}'",
                node_id=node.id,
            )
    return {api_id: definition for api_id, definition in found.items() if definition is not None}


def _check_overrides(node: WorkflowNode, api: ApiDefinition) -> None:
    for name in node.overrides:
        if api.parameter(name) is None:
            raise PlanError(
                UNKNOWN_PARAMETER,
                f"Node '{node.id}' overrides '{name}', which API '{api.id}' does not declare",
                node_id=node.id,
                path=name,
            )


def _resolve_mapping(
    mapping: DataMapping,
    previous: PlanStep,
    node: WorkflowNode,
    api: ApiDefinition,
) -> ResolvedMapping:
    source = _parse(mapping.source, node)
    target = _parse(mapping.target, node)

    response_schema = previous.api.success_schema()
    if response_schema is None:
        raise SchemaError(
            NO_SUCCESS_RESPONSE,
            f"API '{previous.api.id}' declares no 2xx response to map from",
            node_id=previous.node_id,
        )
    try:
        source_schema = resolve_schema(response_schema, source)
    except SchemaPathError as e:
        raise PlanError(
            INVALID_MAPPING_PATH,
            f"Source path '{mapping.source}' on '{previous.node_id}' response: {e}",
            node_id=node.id,
            path=mapping.source,
        ) from e

    target_schema = _resolve_target(target, mapping.target, node, api)

    if not types_compatible(source_schema, target_schema):
        raise PlanError(
            TYPE_MISMATCH,
            f"Cannot map '{mapping.source}' ({_describe(source_schema)}) "
            f"to '{mapping.target}' ({_describe(target_schema)})",
            node_id=node.id,
            path=mapping.target,
        )

    return ResolvedMapping(
        source=source,
        target=target,
        source_expr=mapping.source,
        target_expr=mapping.target,
    )


def _resolve_target(
    target: list[Segment], expression: str, node: WorkflowNode, api: ApiDefinition
) -> dict[str, Any]:
    head = target[0]
    param = api.parameter(head) if isinstance(head, str) else None
    if param is None:
        raise PlanError(
            INVALID_MAPPING_PATH,
            f"Target path '{expression}': '{head}' is not a parameter of API '{api.id}'",
            node_id=node.id,
            path=expression,
        )
    try:
        return resolve_schema(param.value_schema, target[1:])
    except SchemaPathError as e:
        raise PlanError(
            INVALID_MAPPING_PATH,
            f"Target path '{expression}' on parameter '{head}': {e}",
            node_id=node.id,
            path=expression,
        ) from e


def _check_satisfied(node: WorkflowNode, api: ApiDefinition, mapping: ResolvedMapping | None) -> None:
    """Only the first call sees the tool's input; later calls need overrides or a mapping."""
    mapped = mapping.target[0] if mapping else None
    for param in api.parameters:
        if param.required and param.name not in node.overrides and param.name != mapped:
            raise PlanError(
                MISSING_PARAMETER,
                f"Required parameter '{param.name}' of node '{node.id}' has no override or mapping",
                node_id=node.id,
                path=param.name,
            )


def _parse(expression: str, node: WorkflowNode) -> list[Segment]:
    try:
        return parse_path(expression)
    except PathSyntaxError as e:
        raise PlanError(INVALID_MAPPING_PATH, str(e), node_id=node.id, path=expression) from e


def _describe(schema: dict[str, Any]) -> str:
    declared = schema.get("type")
    if declared is None:
        return "untyped"
    text = declared if isinstance(declared, str) else "|".join(declared)
    return f"{text}, nullable" if schema.get("nullable") else text
