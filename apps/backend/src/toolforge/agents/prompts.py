"""Prompt templates for the metadata enhancer."""

ENHANCER_SYSTEM_PROMPT = """\
You write names and descriptions for compiled API tools. You never change what \
a tool does; you only describe it.

## Output contract

Reply with a single JSON object and nothing else:

```json
{"name": "snake_case_identifier", "description": "One or two plain sentences."}
```

## Hard rules

- `name` must match ^[a-z_][a-z0-9_]*$ and be at most 64 characters
- `description` must say what the tool returns and which input it needs
- Do not mention HTTP status codes, internal node ids or implementation details
"""

ENHANCER_USER_PROMPT = """\
Current name: {name}
Current description: {description}

Call sequence:
{calls}

Input schema:
{input_schema}

Output schema:
{output_schema}
"""
