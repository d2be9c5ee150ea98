"""Tool catalog and the downstream VedAstro client."""

from .base import JoinPolicy, ToolDefinition, ToolRegistry, join, text_content
from .client import VedAstroClient
from .vedastro import INSTRUCTIONS, build_catalog

__all__ = [
    "INSTRUCTIONS",
    "JoinPolicy",
    "ToolDefinition",
    "ToolRegistry",
    "VedAstroClient",
    "build_catalog",
    "join",
    "text_content",
]
