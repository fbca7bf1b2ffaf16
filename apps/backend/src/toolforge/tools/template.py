"""Source templates for generated tool modules.

The rendered module depends on the standard library only. Its single entry
point is ``run(tool_input, call)`` where ``call(method, path, query, body)``
returns ``(status_code, payload)``.
"""

TOOL_HEADER = """\
# Generated by toolforge from workflow {graph_id!r}. Do not edit.
\"\"\"{name}: {summary}\"\"\"

import copy
import json
from urllib.parse import quote

NAME = {name!r}
DESCRIPTION = {description!r}
INPUT_FIELDS = {input_fields!r}
REQUIRED_INPUTS = {required_inputs!r}
STEPS = json.loads({steps_json!r})
"""

TOOL_RUNTIME = '''

def _extract(value, path, expression):
    current = value
    for seg in path:
        if isinstance(seg, int):
            if not isinstance(current, list) or seg >= len(current):
                raise LookupError("mapping source %r: index [%d] is not present in the response" % (expression, seg))
        elif not isinstance(current, dict) or seg not in current:
            raise LookupError("mapping source %r: field %r is not present in the response" % (expression, seg))
        current = current[seg]
    return current


def _slot(container, seg, default):
    if isinstance(seg, int):
        while len(container) <= seg:
            container.append(None)
        if not isinstance(container[seg], (dict, list)):
            container[seg] = default
    elif not isinstance(container.get(seg), (dict, list)):
        container[seg] = default
    return container[seg]


def _inject(values, path, value):
    container = values
    for seg, following in zip(path, path[1:]):
        container = _slot(container, seg, [] if isinstance(following, int) else {})
    last = path[-1]
    if isinstance(last, int):
        while len(container) <= last:
            container.append(None)
    container[last] = value


def _build_request(step, values):
    path = step["path"]
    query = {}
    body = {}
    for param in step["parameters"]:
        name = param["name"]
        if name not in values:
            continue
        value = values[name]
        if param["location"] == "path":
            path = path.replace("{" + name + "}", quote(str(value), safe=""))
        elif param["location"] == "query":
            query[name] = value
        else:
            body[name] = value
    return step["method"], path, query, body or None


def run(tool_input, call):
    """Perform every call in order and return a discriminated result dict."""
    tool_input = tool_input or {}
    missing = [name for name in REQUIRED_INPUTS if name not in tool_input]
    if missing:
        raise ValueError("missing required input field(s): %s" % ", ".join(missing))

    previous = None
    for index, step in enumerate(STEPS):
        values = copy.deepcopy(step["overrides"])
        if index == 0:
            for name in INPUT_FIELDS:
                if name in tool_input:
                    values[name] = copy.deepcopy(tool_input[name])
        elif step["mapping"] is not None:
            mapping = step["mapping"]
            extracted = _extract(previous, mapping["source"], mapping["source_expr"])
            _inject(values, mapping["target"], copy.deepcopy(extracted))

        method, path, query, body = _build_request(step, values)
        status_code, payload = call(method, path, query, body)
        if not 200 <= status_code < 300:
            return {
                "status": "step_failed",
                "step_index": index,
                "node_id": step["node_id"],
                "status_code": status_code,
                "detail": payload,
            }
        previous = payload

    return {"status": "ok", "output": previous}
'''
