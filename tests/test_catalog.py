"""
Endpoint Catalog Tests
----------------------
Tests for loading and querying the bundled Evolution API catalog.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog import EndpointCatalog, HttpMethod, ParamLocation, ParamType, parse_endpoint
from core.errors import ConfigurationLoadError, UnknownEndpointError


class TestCatalogLoading:
    """Tests for the bundled catalog file."""

    def test_endpoint_count(self, catalog):
        """All 43 operations are present."""
        assert len(catalog) == 43

    def test_controller_counts(self, catalog):
        """Operations are grouped by controller."""
        assert catalog.stats()["by_controller"] == {
            "instance": 6,
            "message": 10,
            "chat": 7,
            "group": 9,
            "profile": 8,
            "webhook": 2,
            "information": 1,
        }

    def test_catalog_is_consistent(self, catalog):
        """Every placeholder has a matching path parameter."""
        assert catalog.validate() == []

    def test_instance_parameter_injected(self, catalog):
        """Instance-scoped operations get a required `instance` path parameter."""
        for endpoint in catalog.instance_required():
            param = endpoint.parameter("instance")
            assert param is not None, endpoint.name
            assert param.location == ParamLocation.PATH
            assert param.required

    def test_global_endpoints(self, catalog):
        """Global operations take no instance."""
        info = catalog.require("get-information")

        assert not info.requires_instance
        assert info.parameters == ()
        assert info.method == HttpMethod.GET

    def test_send_text(self, catalog):
        """send-text declares instance, number, text and an optional delay."""
        endpoint = catalog.require("send-text")

        assert endpoint.path == "/message/sendText/{instance}"
        assert endpoint.method == HttpMethod.POST
        assert [p.name for p in endpoint.parameters] == ["instance", "number", "text", "delay"]
        assert endpoint.parameter("delay").type == ParamType.NUMBER
        assert not endpoint.parameter("delay").required

    def test_missing_file(self, tmp_path):
        """A missing catalog file is a configuration error."""
        with pytest.raises(ConfigurationLoadError):
            EndpointCatalog.load(tmp_path / "nope.yaml")

    def test_custom_catalog(self, tmp_path):
        """Catalogs can be loaded from another file."""
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "endpoints:\n"
            "  - name: ping\n"
            "    controller: information\n"
            "    method: get\n"
            "    path: /ping\n"
            "    description: Ping\n"
            "    requires_instance: false\n"
        )

        custom = EndpointCatalog.load(path)

        assert custom.require("ping").method == HttpMethod.GET


class TestCatalogQueries:
    """Tests for lookups."""

    def test_unknown_endpoint(self, catalog):
        """Unknown names return None or raise on require()."""
        assert catalog.get("nope") is None
        with pytest.raises(UnknownEndpointError):
            catalog.require("nope")

    def test_controllers_in_order(self, catalog):
        """Controllers are listed in first-seen order."""
        assert catalog.controllers() == [
            "instance", "message", "chat", "group", "profile", "webhook", "information",
        ]

    def test_search(self, catalog):
        """Search matches name, description and path."""
        names = {e.name for e in catalog.search("webhook")}

        assert {"set-webhook", "get-webhook"} <= names

    def test_stats_totals(self, catalog):
        """Instance and global counts add up."""
        stats = catalog.stats()

        assert stats["requires_instance"] + stats["global"] == stats["total"]
        assert stats["global"] == 3


class TestParseEndpoint:
    """Tests for building descriptors from raw entries."""

    def test_unknown_type_becomes_any(self):
        """Undeclared or unknown types map to ANY."""
        endpoint = parse_endpoint({
            "name": "x", "controller": "chat", "method": "POST",
            "path": "/x/{instance}", "description": "X",
            "parameters": [{"name": "blob", "type": "binary"}, {"name": "count", "type": "integer"}],
        })

        assert endpoint.parameter("blob").type == ParamType.ANY
        assert endpoint.parameter("count").type == ParamType.NUMBER
        assert endpoint.parameters[0].name == "instance"

    def test_dangling_placeholder_reported(self):
        """A placeholder without a path parameter is a violation."""
        endpoint = parse_endpoint({
            "name": "x", "controller": "group", "method": "GET",
            "path": "/group/{groupJid}", "description": "X", "requires_instance": False,
        })

        assert EndpointCatalog([endpoint]).validate() == [
            "Endpoint x has placeholder {groupJid} without a path parameter"
        ]

    def test_duplicate_names_rejected(self):
        """Endpoint names are unique."""
        entry = {"name": "x", "controller": "chat", "method": "GET", "path": "/x", "description": "X"}
        with pytest.raises(ValueError):
            EndpointCatalog([parse_endpoint(entry), parse_endpoint(entry)])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
