"""Optional LLM post-pass that rewrites a tool's name and description.

Non-authoritative: any failure or suspicious reply keeps the original tool,
and the call sequence is compared before and after so the pass can never
alter what the tool does.
"""

from __future__ import annotations

import json
import logging
import re

from ..tools import GeneratedTool, retitle
from ..tools.synthesizer import is_valid_tool_name
from .base import run_agent
from .prompts import ENHANCER_SYSTEM_PROMPT, ENHANCER_USER_PROMPT

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 500

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


async def enhance_tool(tool: GeneratedTool, max_turns: int = 1) -> GeneratedTool:
    """Return ``tool`` with LLM-written metadata, or ``tool`` itself if rejected."""
    prompt = ENHANCER_USER_PROMPT.format(
        name=tool.name,
        description=tool.description,
        calls="\n".join(f"- {method} {path}" for method, path in tool.call_sequence()),
        input_schema=json.dumps(tool.input_schema, indent=2),
        output_schema=json.dumps(tool.output_schema, indent=2),
    )

    text_parts: list[str] = []
    async for message in run_agent(prompt=prompt, system_prompt=ENHANCER_SYSTEM_PROMPT, max_turns=max_turns):
        if message["type"] == "text":
            text_parts.append(message["content"])
        elif message["type"] == "error":
            logger.warning("Enhancer failed for %s: %s", tool.name, message["content"])
            return tool

    metadata = _parse_metadata("".join(text_parts))
    if metadata is None:
        logger.warning("Enhancer reply for %s was not usable; keeping original metadata", tool.name)
        return tool

    name, description = metadata
    enhanced = retitle(tool, name, description)
    if enhanced.call_sequence() != tool.call_sequence() or enhanced.steps != tool.steps:
        logger.warning("Enhancer would alter the call sequence of %s; rejected", tool.name)
        return tool

    logger.info("Enhanced tool metadata: %s -> %s", tool.name, name)
    return enhanced


def _parse_metadata(reply: str) -> tuple[str, str] | None:
    match = _JSON_OBJECT.search(reply)
    if match is None:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    name = data.get("name")
    description = data.get("description")
    if not isinstance(name, str) or not isinstance(description, str):
        return None
    name = name.strip()
    description = description.strip()
    if not is_valid_tool_name(name) or len(name) > MAX_NAME_LENGTH:
        return None
    if not description or len(description) > MAX_DESCRIPTION_LENGTH:
        return None
    return name, description
