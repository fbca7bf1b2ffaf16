"""API models for ToolForge."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .catalog import ApiDefinition
from .tools import GeneratedTool
from .verifier import StubResponse, VerificationResult
from .workflow.schema import WorkflowGraph


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompileRequest(_WireModel):
    """Request to compile a workflow graph into a tool."""

    graph: WorkflowGraph
    api_definitions: dict[str, ApiDefinition] = Field(
        ..., description="API definitions keyed by id, used as the catalog for this compilation"
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_definition_ids(cls, data: Any) -> Any:
        # The map key doubles as the definition id when the payload omits it.
        if isinstance(data, dict):
            key = "apiDefinitions" if "apiDefinitions" in data else "api_definitions"
            definitions = data.get(key)
            if isinstance(definitions, dict):
                filled = {
                    api_id: {"id": api_id, **d} if isinstance(d, dict) else d
                    for api_id, d in definitions.items()
                }
                data = {**data, key: filled}
        return data


class CompileResponse(_WireModel):
    tool: GeneratedTool


class CompileErrorResponse(_WireModel):
    error: dict[str, Any] = Field(..., description="kind, message and the offending nodeId/path")


class VerifyInput(_WireModel):
    """A single verification input. ``expected`` is compared for equality when present."""

    input: dict[str, Any] = {}
    expected: Any = None


class VerifyRequest(_WireModel):
    """Request to verify a compiled tool in isolated sandboxes."""

    tool: GeneratedTool
    test_inputs: list[VerifyInput] = Field(..., min_length=1)
    stubs: list[StubResponse] = Field(
        default_factory=list,
        description="Canned upstream responses; ignored when base_url is set",
    )
    base_url: Optional[str] = Field(None, description="Live API base URL instead of stubs")
    timeout_seconds: Optional[float] = Field(None, gt=0)


class VerifyResponse(_WireModel):
    results: list[VerificationResult]
    summary: dict[str, Any]
    report: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str = "ToolForge"
