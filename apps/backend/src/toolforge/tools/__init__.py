from .synthesizer import ToolSourceError, retitle, synthesize
from .tool import GeneratedTool, HttpCall
from .validator import validate_tool_source

__all__ = [
    "GeneratedTool",
    "HttpCall",
    "ToolSourceError",
    "retitle",
    "synthesize",
    "validate_tool_source",
]
