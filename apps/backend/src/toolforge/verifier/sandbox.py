"""Sandboxed verification of generated tools.

Each test input runs in its own isolated context: a private temp workspace
plus a child Python process in a fresh session. Per input the context moves
through provisioning -> running -> outcome -> torn_down; teardown runs on
every exit path, including timeouts, crashes and cancellation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import signal
import sys
import tempfile
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..tools import GeneratedTool, validate_tool_source
from ..tools.synthesizer import ToolSourceError, render_source
from . import runner
from .stubs import StubResponse

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

VerificationStatus = Literal["passed", "failed", "step_failed", "timed_out", "crashed", "error"]

MAX_CAPTURED_STDERR = 2_000

_SAFE_ENV_KEYS = {
    "PATH",
    "HOME",
    "LANG",
    "TMPDIR",
    "SYSTEMROOT",
}

_SAFE_ENV_PREFIXES = ("LC_",)


class VerificationCase(BaseModel):
    """One test input with an optional expected output or predicate."""

    input: dict[str, Any] = {}
    expected: Any = None
    predicate: Optional[Callable[[Any], bool]] = Field(default=None, exclude=True)

    @property
    def has_expected(self) -> bool:
        return "expected" in self.model_fields_set


class VerificationResult(BaseModel):
    """Outcome of one test input. Never persisted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: VerificationStatus
    elapsed_ms: float
    output: Any = None
    error: Optional[dict[str, Any]] = None


@dataclass
class SandboxContext:
    workspace: Path
    process: Optional[asyncio.subprocess.Process] = None
    phase: str = "provisioning"


def _safe_env() -> dict[str, str]:
    """Build an environment dict using a strict allowlist."""
    out: dict[str, str] = {}
    for k, v in os.environ.items():
        if k in _SAFE_ENV_KEYS or any(k.startswith(p) for p in _SAFE_ENV_PREFIXES):
            out[k] = v
    out["PYTHONDONTWRITEBYTECODE"] = "1"
    return out


async def _kill_process_group(process: Optional[asyncio.subprocess.Process]) -> None:
    if process is None or process.returncode is not None:
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Exited between the returncode check and the kill.
        pass
    await process.wait()


@asynccontextmanager
async def isolated_context(
    tool: GeneratedTool,
    context_payload: dict[str, Any],
    root: Optional[Path] = None,
) -> AsyncIterator[SandboxContext]:
    """Provision a private workspace for one run and always tear it down."""
    workspace = Path(tempfile.mkdtemp(prefix="toolforge-sandbox-", dir=root))
    context = SandboxContext(workspace=workspace)
    try:
        (workspace / "tool.py").write_text(tool.source)
        shutil.copy2(runner.__file__, workspace / "runner.py")
        (workspace / "context.json").write_text(json.dumps(context_payload, default=str))
        yield context
    finally:
        await _kill_process_group(context.process)
        shutil.rmtree(workspace, ignore_errors=True)
        logger.debug("sandbox %s: %s -> torn_down", workspace.name, context.phase)
        context.phase = "torn_down"


class SandboxVerifier:
    """Runs a GeneratedTool against test inputs, one isolated process per input."""

    def __init__(
        self,
        timeout: float = 10.0,
        concurrency: int = 4,
        python: Optional[str] = None,
        workspace_root: Optional[Path] = None,
    ):
        self.timeout = timeout
        self.concurrency = max(1, concurrency)
        self.python = python or sys.executable
        self.workspace_root = workspace_root

    @classmethod
    def from_settings(cls, settings: Settings) -> SandboxVerifier:
        root = Path(settings.sandbox_workspace_root) if settings.sandbox_workspace_root else None
        return cls(
            timeout=settings.verify_timeout_seconds,
            concurrency=settings.verify_concurrency,
            python=settings.sandbox_python,
            workspace_root=root,
        )

    async def verify(
        self,
        tool: GeneratedTool,
        cases: list[VerificationCase],
        stubs: Optional[list[StubResponse]] = None,
        base_url: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> list[VerificationResult]:
        """Verify every case independently; results come back in input order."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _guarded(case: VerificationCase) -> VerificationResult:
            async with semaphore:
                try:
                    return await self.verify_one(tool, case, stubs, base_url, headers, timeout)
                except Exception as e:
                    logger.exception("Verification of tool %s failed unexpectedly", tool.name)
                    return VerificationResult(
                        status="error",
                        elapsed_ms=0.0,
                        error={"kind": "VerifierError", "message": f"{type(e).__name__}: {e}"},
                    )

        return list(await asyncio.gather(*(_guarded(case) for case in cases)))

    async def verify_one(
        self,
        tool: GeneratedTool,
        case: VerificationCase,
        stubs: Optional[list[StubResponse]] = None,
        base_url: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> VerificationResult:
        errors = _source_errors(tool)
        if errors:
            return VerificationResult(
                status="crashed",
                elapsed_ms=0.0,
                error={"kind": "InvalidToolSource", "message": "; ".join(errors)},
            )

        payload = {
            "input": case.input,
            "stubs": [stub.to_context() for stub in stubs or []],
            "base_url": base_url,
            "headers": headers or {},
        }
        limit = timeout if timeout is not None else self.timeout

        try:
            async with isolated_context(tool, payload, self.workspace_root) as context:
                return await self._run(context, case, limit)
        except OSError as e:
            logger.warning("Sandbox provisioning for tool %s failed: %s", tool.name, e)
            return VerificationResult(
                status="error",
                elapsed_ms=0.0,
                error={"kind": "SandboxError", "message": str(e)},
            )

    async def _run(self, context: SandboxContext, case: VerificationCase, limit: float) -> VerificationResult:
        workspace = context.workspace
        logger.debug("sandbox %s: provisioning -> running", workspace.name)
        context.phase = "running"
        started = time.monotonic()
        context.process = await asyncio.create_subprocess_exec(
            self.python,
            str(workspace / "runner.py"),
            str(workspace),
            cwd=str(workspace),
            env=_safe_env(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        try:
            _, stderr = await asyncio.wait_for(context.process.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            elapsed = (time.monotonic() - started) * 1000
            context.phase = "timed_out"
            logger.debug("sandbox %s: running -> timed_out after %.0fms", workspace.name, elapsed)
            return VerificationResult(
                status="timed_out",
                elapsed_ms=elapsed,
                error={"kind": "TimedOut", "message": f"Exceeded {limit}s wall-clock limit"},
            )

        elapsed = (time.monotonic() - started) * 1000
        result = self._outcome(workspace, context.process.returncode, stderr, case, elapsed)
        logger.debug("sandbox %s: running -> %s", workspace.name, result.status)
        context.phase = result.status
        return result

    def _outcome(
        self,
        workspace: Path,
        returncode: Optional[int],
        stderr: bytes,
        case: VerificationCase,
        elapsed: float,
    ) -> VerificationResult:
        result_file = workspace / "result.json"
        try:
            outcome = json.loads(result_file.read_text())
        except (OSError, ValueError):
            tail = stderr.decode(errors="replace")[-MAX_CAPTURED_STDERR:]
            logger.warning("Sandboxed tool exited with %s and no result", returncode)
            return VerificationResult(
                status="crashed",
                elapsed_ms=elapsed,
                error={"kind": "AbnormalExit", "message": f"exit code {returncode}", "stderr": tail},
            )

        problem = _outcome_problem(outcome)
        if problem:
            logger.warning("Sandboxed tool produced a malformed outcome: %s", problem)
            return VerificationResult(
                status="crashed",
                elapsed_ms=elapsed,
                error={"kind": "MalformedOutcome", "message": problem},
            )

        status = outcome["status"]
        if status == "step_failed":
            return VerificationResult(
                status="step_failed",
                elapsed_ms=elapsed,
                error={
                    "kind": "StepFailed",
                    "stepIndex": outcome["step_index"],
                    "statusCode": outcome["status_code"],
                    "nodeId": outcome.get("node_id"),
                    "detail": outcome.get("detail"),
                },
            )
        if status == "crashed":
            error = outcome["error"]
            logger.warning("Sandboxed tool crashed: %s", error.get("message"))
            return VerificationResult(status="crashed", elapsed_ms=elapsed, error=error)

        return _judge(case, outcome["output"], elapsed)


def _source_errors(tool: GeneratedTool) -> list[str]:
    """Static checks, then a re-render from ``steps``: only the tool the steps describe may run."""
    errors = validate_tool_source(tool.source)
    if errors:
        return errors
    try:
        expected = render_source(tool.graph_id, tool.name, tool.description, tool.input_schema, tool.steps)
    except (ToolSourceError, KeyError, TypeError) as e:
        return [f"Steps cannot be rendered: {type(e).__name__}: {e}"]
    if expected != tool.source:
        return ["Source does not match the source rendered from the tool's steps"]
    return []


def _outcome_problem(outcome: Any) -> Optional[str]:
    """Describe what is wrong with a runner outcome, or None if it is well formed."""
    if not isinstance(outcome, dict):
        return f"expected an object, got {type(outcome).__name__}"
    status = outcome.get("status")
    if status == "ok":
        return None if "output" in outcome else "'ok' outcome without 'output'"
    if status == "step_failed":
        for key in ("step_index", "status_code"):
            if not isinstance(outcome.get(key), int):
                return f"'step_failed' outcome without an integer '{key}'"
        return None
    if status == "crashed":
        if isinstance(outcome.get("error"), dict):
            return None
        return "'crashed' outcome without an error object"
    return f"unknown status {status!r}"


def _judge(case: VerificationCase, output: Any, elapsed: float) -> VerificationResult:
    """Compare captured output against the case's predicate or expected value."""
    if case.predicate is not None:
        try:
            accepted = bool(case.predicate(output))
        except Exception as e:
            return VerificationResult(
                status="failed",
                elapsed_ms=elapsed,
                output=output,
                error={"kind": "PredicateError", "message": f"{type(e).__name__}: {e}"},
            )
        if not accepted:
            return VerificationResult(
                status="failed",
                elapsed_ms=elapsed,
                output=output,
                error={"kind": "PredicateRejected", "message": "Output rejected by predicate"},
            )

    if case.has_expected and output != case.expected:
        return VerificationResult(
            status="failed",
            elapsed_ms=elapsed,
            output=output,
            error={"kind": "OutputMismatch", "expected": case.expected},
        )
    return VerificationResult(status="passed", elapsed_ms=elapsed, output=output)
