"""Tests for the tool registry."""

import pytest

from agent_bridge.tools.base import BaseTool
from agent_bridge.tools.registry import ToolRegistry


class EchoTool(BaseTool):
    description = "Echo the text back"
    parameters = {"type": "object", "properties": {"text": {"type": "string"}}}

    def __init__(self, name="echo"):
        self.name = name

    def execute(self, args):
        return args.get("text", "")


class AsyncEchoTool(EchoTool):
    async def execute(self, args):
        return f"async:{args.get('text', '')}"


class FailingTool(EchoTool):
    def execute(self, args):
        raise RuntimeError("disk on fire")


class TestToolRegistry:
    """Registration, enablement and schemas."""

    def test_schemas_follow_registration_order_and_enablement(self):
        """Register t1, t2, t3 and disable t2: schemas are [t1, t3]."""
        registry = ToolRegistry()
        for name in ("t1", "t2", "t3"):
            registry.register(EchoTool(name))
        registry.disable("t2")

        assert [s.name for s in registry.get_enabled_schemas()] == ["t1", "t3"]
        assert registry.tool_names == ["t1", "t2", "t3"]

    def test_register_is_idempotent(self):
        registry = ToolRegistry()
        registry.register(EchoTool("t1"))
        registry.register(EchoTool("t1"))

        assert registry.tool_names == ["t1"]
        assert len(registry.get_enabled_schemas()) == 1

    def test_register_disabled(self):
        registry = ToolRegistry()
        registry.register(EchoTool("danger"), enabled=False)

        assert registry.has_tool("danger")
        assert not registry.is_enabled("danger")
        registry.enable("danger")
        assert registry.is_enabled("danger")

    def test_unregister_and_unknown_names_are_noops(self):
        registry = ToolRegistry()
        registry.unregister("ghost")
        registry.enable("ghost")
        registry.disable("ghost")

        assert not registry.has_tool("ghost")
        assert not registry.is_enabled("ghost")

    def test_schema_derived_from_class_attributes(self):
        schema = EchoTool().get_schema()
        assert schema.name == "echo"
        assert schema.description == "Echo the text back"
        assert schema.parameters["properties"]["text"] == {"type": "string"}


class TestToolRegistryExecute:
    """execute() always returns a string."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        assert await ToolRegistry().execute("ghost", {}) == "Tool not found: ghost"

    @pytest.mark.asyncio
    async def test_disabled_tool(self):
        registry = ToolRegistry()
        registry.register(EchoTool(), enabled=False)
        assert await registry.execute("echo", {"text": "x"}) == "Tool not available: echo"

    @pytest.mark.asyncio
    async def test_failing_tool(self):
        registry = ToolRegistry()
        registry.register(FailingTool("boom"))
        assert await registry.execute("boom", {}) == "Error executing boom: disk on fire"

    @pytest.mark.asyncio
    async def test_sync_and_async_executors(self):
        registry = ToolRegistry()
        registry.register(EchoTool())
        registry.register(AsyncEchoTool("aecho"))

        assert await registry.execute("echo", {"text": "hi"}) == "hi"
        assert await registry.execute("aecho", {"text": "hi"}) == "async:hi"
