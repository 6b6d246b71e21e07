"""
Tool Generator Tests
--------------------
Tests for bulk generation, filtering, statistics and export.
"""

import asyncio
import pytest
from pathlib import Path
import json
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ToolRegistryError, UnknownEndpointError
from tools.generator import GenerationOptions, ToolGenerator
from tools.registry import ToolRegistry
from conftest import StubTransport


class TestSelection:
    """Tests for controller and endpoint filters."""

    def test_default_generates_everything(self, catalog):
        """No options: one tool per catalog entry."""
        generator = ToolGenerator(catalog)

        tools = generator.generate()

        assert len(tools) == 43
        assert len(generator.registry) == 43

    def test_controller_filter(self, catalog):
        """Only requested controllers are generated."""
        generator = ToolGenerator(catalog)

        tools = generator.generate(GenerationOptions(controllers=["webhook", "information"]))

        assert [t.name for t in tools] == [
            "evolution_set_webhook", "evolution_get_webhook", "evolution_get_information",
        ]

    def test_include_then_exclude(self, catalog):
        """Include narrows the set; exclude removes from it."""
        generator = ToolGenerator(catalog)

        tools = generator.generate(GenerationOptions(
            include_endpoints=["send-text", "send-media", "fetch-instances"],
            exclude_endpoints=["send-media"],
        ))

        assert {t.name for t in tools} == {"evolution_send_text", "evolution_fetch_instances"}

    def test_exclude_only(self, catalog):
        """Exclude works without include."""
        generator = ToolGenerator(catalog)

        tools = generator.generate(GenerationOptions(controllers=["webhook"], exclude_endpoints=["get-webhook"]))

        assert [t.name for t in tools] == ["evolution_set_webhook"]

    def test_unknown_controller(self, catalog):
        """Unknown controllers select nothing."""
        generator = ToolGenerator(catalog)

        assert generator.generate(GenerationOptions(controllers=["billing"])) == []

    def test_prefix(self, catalog):
        """The name prefix is applied to every tool."""
        generator = ToolGenerator(catalog)

        tools = generator.generate(GenerationOptions(controllers=["webhook"], name_prefix="wa_"))

        assert all(t.name.startswith("wa_evolution_") for t in tools)


class TestRegistration:
    """Tests for interaction with the registry."""

    def test_generate_twice_fails(self, catalog):
        """Generation does not clear; duplicates surface."""
        generator = ToolGenerator(catalog)
        generator.generate(GenerationOptions(controllers=["message"]))

        with pytest.raises(ToolRegistryError):
            generator.generate(GenerationOptions(controllers=["message"]))

        assert len(generator.registry) == 10

    def test_regenerate_clears(self, catalog):
        """regenerate() starts from an empty registry."""
        generator = ToolGenerator(catalog)
        generator.generate()

        tools = generator.regenerate(GenerationOptions(controllers=["chat"]))

        assert len(tools) == 7
        assert len(generator.registry) == 7

    def test_generate_for_controller_and_endpoint(self, catalog):
        """Single controller and single endpoint helpers."""
        generator = ToolGenerator(catalog)

        generator.generate_for_controller("group")
        tool = generator.generate_for_endpoint("send-text")

        assert len(generator.registry) == 10
        assert tool.name == "evolution_send_text"
        with pytest.raises(UnknownEndpointError):
            generator.generate_for_endpoint("nope")

    def test_end_to_end_send_text(self, catalog):
        """Generate one tool and call it against a stub transport."""
        transport = StubTransport(result={"success": True, "data": {"messageId": "m1"}})
        generator = ToolGenerator(catalog)

        generator.generate(GenerationOptions(
            controllers=["message"], include_endpoints=["send-text"], transport=transport,
        ))
        outcome = asyncio.run(generator.registry.require("evolution_send_text").handler(
            {"instance": "i1", "number": "5511999999999", "text": "hi"}
        ))

        assert generator.registry.names() == ["evolution_send_text"]
        assert outcome.success
        assert outcome.data["messageId"] == "m1"

    def test_search_send(self, catalog):
        """Search returns exactly the tools mentioning "send"."""
        generator = ToolGenerator(catalog)
        generator.generate()

        found = {t.name for t in generator.registry.search("send")}
        expected = {
            t.name for t in generator.registry
            if "send" in t.name.lower() or "send" in t.description.lower()
        }

        assert found == expected
        assert "evolution_send_text" in found
        assert "evolution_fetch_instances" not in found

    def test_shared_registry(self, catalog):
        """An injected registry receives the tools."""
        registry = ToolRegistry()
        ToolGenerator(catalog, registry).generate(GenerationOptions(controllers=["profile"]))

        assert len(registry) == 8


class TestStatsAndExport:
    """Tests for stats, validation and export."""

    def test_stats(self, catalog):
        """Stats compare endpoints and tools per controller."""
        generator = ToolGenerator(catalog)
        generator.generate(GenerationOptions(controllers=["message"]))

        stats = generator.stats()

        assert stats["available_endpoints"] == 43
        assert stats["registered_tools"] == 10
        assert stats["by_controller"]["message"] == {"endpoints": 10, "tools": 10}
        assert stats["by_controller"]["chat"] == {"endpoints": 7, "tools": 0}

    def test_generation_is_deterministic(self, catalog):
        """Same catalog and options give identical stats."""
        options = GenerationOptions(controllers=["chat", "group"], exclude_endpoints=["leave-group"])
        first = ToolGenerator(catalog)
        second = ToolGenerator(catalog)

        first.generate(options)
        second.generate(options)

        assert first.stats() == second.stats()
        assert first.registry.names() == second.registry.names()

    def test_validate_clean(self, catalog):
        """Generated tools have no problems."""
        generator = ToolGenerator(catalog)
        generator.generate()

        assert generator.validate() == []

    def test_export_config(self, catalog):
        """Export is JSON-serialisable and complete."""
        generator = ToolGenerator(catalog)
        generator.generate(GenerationOptions(controllers=["information"]))

        exported = json.loads(json.dumps(generator.export_config()))

        assert exported["validation"] == {"valid": True, "errors": []}
        assert exported["generation"]["registered_tools"] == 1
        assert exported["tools"][0]["name"] == "evolution_get_information"
        assert exported["endpoints"]["total"] == 43


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
