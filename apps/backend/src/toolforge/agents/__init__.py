"""ToolForge AI agents module (optional, never required for correctness)."""

from .enhancer import enhance_tool

__all__ = ["enhance_tool"]
