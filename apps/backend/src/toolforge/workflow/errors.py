"""Compilation error taxonomy."""

from __future__ import annotations

from typing import Any

# GraphError kinds
MULTIPLE_START_NODES = "MultipleStartNodes"
MULTIPLE_END_NODES = "MultipleEndNodes"
NO_START_NODE = "NoStartNode"
NO_END_NODE = "NoEndNode"
DISCONNECTED_NODE = "DisconnectedNode"
CYCLE_DETECTED = "CycleDetected"
BRANCHING_NODE = "BranchingNode"

# PlanError kinds
UNKNOWN_API = "UnknownApi"
UNKNOWN_PARAMETER = "UnknownParameter"
INVALID_MAPPING_PATH = "InvalidMappingPath"
TYPE_MISMATCH = "TypeMismatch"
MISSING_PARAMETER = "MissingParameter"

# SchemaError kinds
NO_SUCCESS_RESPONSE = "NoSuccessResponse"


class CompileError(Exception):
    """Base for every error that makes a graph uncompilable.

    Compile errors are never retried: the caller must supply a corrected graph.
    """

    def __init__(
        self,
        kind: str,
        message: str,
        node_id: str | None = None,
        path: str | None = None,
        node_ids: list[str] | None = None,
    ):
        self.kind = kind
        self.node_id = node_id
        self.path = path
        self.node_ids = node_ids or ([node_id] if node_id else [])
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.node_id is not None:
            payload["nodeId"] = self.node_id
        if len(self.node_ids) > 1:
            payload["nodeIds"] = self.node_ids
        if self.path is not None:
            payload["path"] = self.path
        return payload


class GraphError(CompileError):
    """The workflow graph is not a single start-to-end path."""


class PlanError(CompileError):
    """A node's API or data mapping cannot be resolved statically."""


class SchemaError(CompileError):
    """The tool's input/output contract cannot be inferred."""
