"""Tool registry — register, look-up, and export dbscope tools."""

from __future__ import annotations

from contracts.tool_sdk import BaseTool


class ToolRegistry:
    """In-memory registry of available tools."""

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """Register a tool instance.  Overwrites if name already exists."""
        name = tool.definition().name
        self._tools[name] = tool

    def get(self, name: str) -> BaseTool:
        """Return a registered tool by name, or raise ``KeyError``."""
        return self._tools[name]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> list[str]:
        """Return sorted list of registered tool names."""
        return sorted(self._tools)

    def get_openai_definitions(self) -> list[dict]:
        """Export all tools in OpenAI function-calling format."""
        defs: list[dict] = []
        for name in sorted(self._tools):
            defn = self._tools[name].definition()
            defs.append(
                {
                    "type": "function",
                    "function": {
                        "name": defn.name,
                        "description": defn.description,
                        "parameters": defn.input_schema,
                    },
                }
            )
        return defs


def create_default_registry() -> ToolRegistry:
    """Create a registry pre-loaded with all built-in tools."""
    from runtime.tools.explain import DbExplainTool
    from runtime.tools.export_batch import DbExportBatchTool
    from runtime.tools.query import DbQueryTool
    from runtime.tools.sample import DbSampleTool
    from runtime.tools.tables import DbTablesTool

    registry = ToolRegistry()
    registry.register(DbQueryTool())
    registry.register(DbExplainTool())
    registry.register(DbTablesTool())
    registry.register(DbSampleTool())
    registry.register(DbExportBatchTool())
    return registry
