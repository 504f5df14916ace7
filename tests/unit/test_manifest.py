"""
Tests for plugin.json and marketplace.json parsing.
"""

import json

import pytest

from pluginscope.core.manifest import parse_marketplace_manifest, parse_plugin_manifest
from pluginscope.lib.errors import (
    ErrorCode,
    InvalidFieldError,
    MalformedJsonError,
    MissingFieldError,
)


def _json(data) -> bytes:
    return json.dumps(data).encode()


class TestParsePluginManifest:
    """Tests for plugin.json."""

    def test_minimal(self):
        manifest = parse_plugin_manifest("plugin.json", _json({"name": "x", "description": "d"}))
        assert manifest.name == "x"
        assert manifest.description == "d"
        assert manifest.version is None
        assert manifest.skills is None
        assert manifest.hooks == []
        assert manifest.mcp_servers == {}

    def test_missing_description(self):
        with pytest.raises(MissingFieldError) as exc_info:
            parse_plugin_manifest("plugin.json", _json({"name": "x"}))
        assert exc_info.value.field == "description"
        assert exc_info.value.code == ErrorCode.MISSING_FIELD
        assert exc_info.value.path == "plugin.json"

    def test_empty_description_allowed(self):
        assert parse_plugin_manifest("p.json", '{"name": "x", "description": ""}').description == ""

    def test_blank_name_rejected(self):
        with pytest.raises(MissingFieldError) as exc_info:
            parse_plugin_manifest("p.json", _json({"name": "  ", "description": ""}))
        assert exc_info.value.field == "name"

    def test_non_string_name_rejected(self):
        with pytest.raises(MissingFieldError):
            parse_plugin_manifest("p.json", _json({"name": 3, "description": ""}))

    def test_malformed_json(self):
        with pytest.raises(MalformedJsonError):
            parse_plugin_manifest("p.json", b'{"name": ')

    def test_non_object_root(self):
        with pytest.raises(MalformedJsonError):
            parse_plugin_manifest("p.json", b'["name"]')

    def test_invalid_utf8(self):
        with pytest.raises(MalformedJsonError):
            parse_plugin_manifest("p.json", b'{"name": "\xff"}')

    def test_bom_tolerated(self):
        content = b"\xef\xbb\xbf" + _json({"name": "x", "description": ""})
        assert parse_plugin_manifest("p.json", content).name == "x"

    def test_full_manifest(self):
        manifest = parse_plugin_manifest(
            "p.json",
            _json({
                "name": "full",
                "description": "Everything",
                "version": "2.1.0",
                "author": {"name": "Ada", "email": "ada@example.com"},
                "skills": "./skills",
                "commands": ["./commands/a.md", "./commands/b.md"],
                "agents": ["./agents"],
                "hooks": "./hooks/extra.json",
                "mcpServers": {"db": {"command": "db-server", "args": ["--port", 5432]}},
                "homepage": "https://example.com",
            }),
        )
        assert manifest.version == "2.1.0"
        assert manifest.author == "Ada"
        assert manifest.skills == ["./skills"]
        assert manifest.commands == ["./commands/a.md", "./commands/b.md"]
        assert manifest.hook_files == ["./hooks/extra.json"]
        assert manifest.mcp_servers["db"].args == ["--port", "5432"]
        assert manifest.extra == {"homepage": "https://example.com"}

    def test_numeric_version(self):
        manifest = parse_plugin_manifest("p.json", _json({"name": "x", "description": "", "version": 2}))
        assert manifest.version == "2"

    def test_inline_hooks(self):
        manifest = parse_plugin_manifest(
            "p.json",
            _json({
                "name": "x",
                "description": "",
                "hooks": {"PostToolUse": [{"matcher": "Write", "hooks": [{"type": "command", "command": "fmt"}]}]},
            }),
        )
        assert len(manifest.hooks) == 1
        assert manifest.hooks[0].event == "PostToolUse"
        assert manifest.hooks[0].matcher == "Write"
        assert manifest.hook_files is None

    def test_invalid_inline_hooks(self):
        with pytest.raises(InvalidFieldError):
            parse_plugin_manifest("p.json", _json({"name": "x", "description": "", "hooks": 5}))

    def test_mcp_server_files(self):
        manifest = parse_plugin_manifest(
            "p.json", _json({"name": "x", "description": "", "mcpServers": "./.mcp.json"})
        )
        assert manifest.mcp_servers == {}
        assert manifest.mcp_server_files == ["./.mcp.json"]

    def test_bad_component_field_ignored(self, caplog):
        manifest = parse_plugin_manifest("p.json", _json({"name": "x", "description": "", "skills": 7}))
        assert manifest.skills is None
        assert "skills" in caplog.text

    def test_serializes_with_aliases(self):
        manifest = parse_plugin_manifest("p.json", _json({"name": "x", "description": ""}))
        dumped = manifest.model_dump(by_alias=True)
        assert "mcpServers" in dumped
        assert "hookFiles" in dumped


class TestParseMarketplaceManifest:
    """Tests for marketplace.json."""

    def test_entries(self):
        manifest = parse_marketplace_manifest(
            "marketplace.json",
            _json({
                "name": "market",
                "owner": {"name": "acme"},
                "plugins": [
                    {"name": "a", "source": "./plugins/a", "description": "A"},
                    "./plugins/b",
                    {"name": "remote", "source": {"source": "github", "repo": "other/repo"}},
                    {"name": "url", "source": "https://example.com/p.git"},
                ],
            }),
        )
        assert manifest.name == "market"
        assert [p.source for p in manifest.plugins][:2] == ["./plugins/a", "./plugins/b"]
        assert [p.is_local for p in manifest.plugins] == [True, True, False, False]
        assert manifest.extra == {"owner": {"name": "acme"}}

    def test_name_optional(self):
        assert parse_marketplace_manifest("m.json", _json({"plugins": []})).name is None

    def test_missing_plugins(self):
        with pytest.raises(MissingFieldError) as exc_info:
            parse_marketplace_manifest("m.json", _json({"name": "market"}))
        assert exc_info.value.field == "plugins"

    def test_plugins_not_a_list(self):
        with pytest.raises(MissingFieldError):
            parse_marketplace_manifest("m.json", _json({"plugins": {"a": "./a"}}))

    def test_unusable_entries_skipped(self, caplog):
        manifest = parse_marketplace_manifest(
            "m.json", _json({"plugins": [42, {"name": "nosource"}, {"source": "./ok"}]})
        )
        assert [p.source for p in manifest.plugins] == ["./ok"]
        assert "plugins[0]" in caplog.text
        assert "plugins[1]" in caplog.text
