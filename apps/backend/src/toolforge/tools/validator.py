"""Static validation for generated tool source.

No code execution happens here: the source is only parsed and inspected.
Execution is the sandboxed verifier's job.
"""

from __future__ import annotations

import ast

ALLOWED_IMPORTS = {"copy", "json", "urllib.parse"}
REQUIRED_ASSIGNMENTS = ("NAME", "STEPS", "INPUT_FIELDS", "REQUIRED_INPUTS")
FORBIDDEN_NAMES = {
    "__import__",
    "breakpoint",
    "compile",
    "delattr",
    "eval",
    "exec",
    "getattr",
    "globals",
    "input",
    "locals",
    "open",
    "setattr",
    "vars",
}


def validate_tool_source(source: str) -> list[str]:
    """Return a list of error strings. An empty list means the source is valid."""
    errors: list[str] = []

    try:
        tree = ast.parse(source)
    except SyntaxError as e:
        return [f"SyntaxError at line {e.lineno}: {e.msg}"]
    except ValueError as e:
        # NUL bytes raise ValueError instead of SyntaxError on some interpreters.
        return [f"SyntaxError: {e}"]

    run_nodes = [
        n for n in tree.body if isinstance(n, ast.FunctionDef) and n.name == "run"
    ]
    if not run_nodes:
        errors.append("Module-level function 'run' not found")
    else:
        args = [a.arg for a in run_nodes[0].args.args]
        if len(args) != 2:
            errors.append(f"'run' must take (tool_input, call), found ({', '.join(args)})")

    assigned = {
        t.id
        for n in tree.body
        if isinstance(n, ast.Assign)
        for t in n.targets
        if isinstance(t, ast.Name)
    }
    for name in REQUIRED_ASSIGNMENTS:
        if name not in assigned:
            errors.append(f"Module constant '{name}' not found")

    for n in ast.walk(tree):
        if isinstance(n, ast.Name) and n.id in FORBIDDEN_NAMES:
            errors.append(f"Use of '{n.id}' is not allowed in generated tools (line {n.lineno})")
            continue
        if isinstance(n, ast.Attribute) and n.attr.startswith("__"):
            errors.append(f"Dunder attribute '{n.attr}' is not allowed in generated tools (line {n.lineno})")
            continue

        if isinstance(n, ast.Import):
            modules = [alias.name for alias in n.names]
        elif isinstance(n, ast.ImportFrom):
            modules = [n.module or ""]
        else:
            continue
        for module in modules:
            if module not in ALLOWED_IMPORTS:
                errors.append(f"Import of '{module}' is not allowed in generated tools")

    return errors
