"""Sandbox entry point: ``python runner.py <workspace>``.

Copied into every isolated workspace and executed in a child process, so it
must stay standalone: standard library plus httpx, no toolforge imports.

The workspace holds ``tool.py`` (generated source) and ``context.json``
(input, stubs, base_url, headers). The outcome is written to ``result.json``.
"""

from __future__ import annotations

import importlib.util
import json
import sys
import time
import traceback
from pathlib import Path

import httpx

STUB_BASE_URL = "http://sandbox.invalid"
DEFAULT_HTTP_TIMEOUT = 30.0


def stub_transport(stubs: list[dict]) -> httpx.MockTransport:
    """Serve canned responses; anything unmatched is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        for stub in stubs:
            if stub["method"].upper() != request.method or stub["path"] != request.url.path:
                continue
            query = stub.get("query")
            if query is not None and httpx.QueryParams(query) != request.url.params:
                continue
            if stub.get("delay_seconds"):
                time.sleep(stub["delay_seconds"])
            return httpx.Response(stub.get("status_code", 200), json=stub.get("body"))
        return httpx.Response(
            404, json={"error": f"no stub for {request.method} {request.url.path}"}
        )

    return httpx.MockTransport(handler)


def make_call(client: httpx.Client):
    """Adapt an httpx client to the ``call(method, path, query, body)`` capability."""

    def call(method, path, query, body):
        kwargs = {"params": query or None}
        if body is not None:
            kwargs["json"] = body
        response = client.request(method, path, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = response.text or None
        return response.status_code, payload

    return call


def build_client(context: dict) -> httpx.Client:
    timeout = context.get("http_timeout") or DEFAULT_HTTP_TIMEOUT
    headers = context.get("headers") or {}
    if context.get("base_url"):
        return httpx.Client(base_url=context["base_url"], headers=headers, timeout=timeout)
    return httpx.Client(
        base_url=STUB_BASE_URL,
        headers=headers,
        transport=stub_transport(context.get("stubs") or []),
        timeout=timeout,
    )


def load_tool(path: Path):
    spec = importlib.util.spec_from_file_location("toolforge_sandboxed_tool", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load tool module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def main(argv: list[str]) -> int:
    workspace = Path(argv[1])
    context = json.loads((workspace / "context.json").read_text())

    try:
        module = load_tool(workspace / "tool.py")
        with build_client(context) as client:
            result = module.run(context.get("input") or {}, make_call(client))
        exit_code = 0
    except Exception as e:
        result = {
            "status": "crashed",
            "error": {
                "kind": type(e).__name__,
                "message": str(e),
                "traceback": traceback.format_exc(limit=8),
            },
        }
        exit_code = 1

    (workspace / "result.json").write_text(json.dumps(result, default=str))
    return exit_code


if __name__ == "__main__":
    sys.exit(main(sys.argv))
