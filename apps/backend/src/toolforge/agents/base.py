"""Thin wrapper around the Claude Agent SDK for ToolForge's optional prose pass."""

from typing import Any, AsyncGenerator, Optional

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    TextBlock,
    query,
)

from ..config import get_settings


async def run_agent(
    prompt: str,
    system_prompt: str,
    max_turns: int = 1,
    model: Optional[str] = None,
) -> AsyncGenerator[dict[str, Any], None]:
    """Run a tool-less agent and yield messages as they arrive.

    Yields dicts with:
      - type: "text" | "result" | "error"
      - content: the relevant payload
    """
    settings = get_settings()

    options = ClaudeAgentOptions(
        model=model or settings.default_model,
        system_prompt=system_prompt,
        allowed_tools=[],
        max_turns=max_turns,
    )

    try:
        async for message in query(prompt=prompt, options=options):
            if isinstance(message, AssistantMessage):
                for block in message.content:
                    if isinstance(block, TextBlock):
                        yield {"type": "text", "content": block.text}
            elif isinstance(message, ResultMessage):
                yield {
                    "type": "result",
                    "content": {
                        "subtype": message.subtype,
                        "cost_usd": message.total_cost_usd,
                        "session_id": message.session_id,
                    },
                }
    except Exception as e:
        yield {"type": "error", "content": str(e)}
