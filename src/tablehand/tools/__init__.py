"""Tool catalogue advertised to the reasoning engine."""

from tablehand.tools.catalogue import TOOL_CATALOGUE, Capability, ToolCatalogue, ToolSpec

__all__ = ["TOOL_CATALOGUE", "Capability", "ToolCatalogue", "ToolSpec"]
