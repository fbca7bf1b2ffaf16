import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .agents import enhance_tool
from .catalog import CatalogError, FallbackCatalog, HttpCatalog, InMemoryCatalog
from .compiler import compile_tool
from .config import Settings, get_settings
from .models import (
    CompileErrorResponse,
    CompileRequest,
    CompileResponse,
    HealthResponse,
    VerifyRequest,
    VerifyResponse,
)
from .tools import GeneratedTool, ToolSourceError
from .verifier import SandboxVerifier, VerificationCase, VerificationReport
from .workflow.errors import CompileError

load_dotenv()

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ToolForge API",
    description="Compile API workflow graphs into typed tools and verify them in a sandbox",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@app.post(
    "/api/tools/compile",
    responses={422: {"model": CompileErrorResponse}, 502: {"model": CompileErrorResponse}},
)
async def compile_endpoint(request: CompileRequest):
    """Compile a workflow graph into a tool, or return a structured compile error."""
    settings = get_settings()
    try:
        tool = await run_in_threadpool(_compile, request, settings)
    except CompileError as e:
        logger.info("Compilation of %s failed: %s", request.graph.id, e)
        return _error_response(422, e.to_dict())
    except ToolSourceError as e:
        logger.warning("Generated source for %s failed validation: %s", request.graph.id, e)
        return _error_response(422, {"kind": "InvalidToolSource", "message": str(e)})
    except CatalogError as e:
        logger.warning("Catalog lookup for %s failed: %s", request.graph.id, e)
        return _error_response(502, {"kind": "CatalogUnavailable", "message": str(e)})

    if settings.enhancer_enabled:
        tool = await enhance_tool(tool, max_turns=settings.enhancer_max_turns)

    return CompileResponse(tool=tool).model_dump(mode="json", by_alias=True)


def _compile(request: CompileRequest, settings: Settings) -> GeneratedTool:
    """Blocking: catalog lookups fan out over a thread pool."""
    catalog = InMemoryCatalog(request.api_definitions)
    if not settings.catalog_base_url:
        return compile_tool(request.graph, catalog, lookup_workers=settings.catalog_lookup_workers)

    # Ids missing from the request are looked up in the remote catalog.
    with HttpCatalog.from_settings(settings) as remote:
        return compile_tool(
            request.graph,
            FallbackCatalog(catalog, remote),
            lookup_workers=settings.catalog_lookup_workers,
        )


def _error_response(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=CompileErrorResponse(error=error).model_dump(by_alias=True),
    )


@app.post("/api/tools/verify")
async def verify_endpoint(request: VerifyRequest):
    """Run every test input against the tool in its own sandbox."""
    verifier = SandboxVerifier.from_settings(get_settings())
    cases = [
        VerificationCase(input=item.input, expected=item.expected)
        if "expected" in item.model_fields_set
        else VerificationCase(input=item.input)
        for item in request.test_inputs
    ]
    results = await verifier.verify(
        request.tool,
        cases,
        stubs=request.stubs,
        base_url=request.base_url,
        timeout=request.timeout_seconds,
    )
    report = VerificationReport(tool_name=request.tool.name, results=results)
    response = VerifyResponse(results=results, summary=report.summary(), report=report.to_markdown())
    return response.model_dump(mode="json", by_alias=True)
