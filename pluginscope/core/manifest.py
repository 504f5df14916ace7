"""
plugin.json / marketplace.json parsing.

Only ``name`` and ``description`` are required in a plugin manifest and only
``plugins`` in a marketplace manifest. Everything else is optional; fields of
an unexpected type are dropped with a warning and unknown fields are kept in
``extra`` so newer manifests still parse.
"""

import logging
from typing import Any, Optional

from pluginscope.core.descriptors import (
    Content,
    hooks_from_data,
    load_json_object,
    mcp_servers_from_data,
)
from pluginscope.lib.errors import MissingFieldError
from pluginscope.models.plugin import (
    HookConfig,
    MarketplaceEntry,
    MarketplaceManifest,
    McpServerConfig,
    PluginManifest,
)

logger = logging.getLogger(__name__)

PLUGIN_FIELDS = {
    "name", "description", "version", "author",
    "skills", "commands", "agents", "hooks", "mcpServers",
}
MARKETPLACE_FIELDS = {"name", "plugins"}


def _required_string(data: dict[str, Any], field: str, path: str, allow_empty: bool = False) -> str:
    value = data.get(field)
    if not isinstance(value, str) or (not allow_empty and not value.strip()):
        raise MissingFieldError(field, path)
    return value


def _path_list(data: dict[str, Any], field: str, path: str) -> Optional[list[str]]:
    """Read a field holding one path or a list of paths. None when absent."""
    if field not in data:
        return None
    value = data[field]
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        paths = [v for v in value if isinstance(v, str)]
        if len(paths) != len(value):
            logger.warning(f"{path}: ignoring non-string entries in '{field}'")
        return paths
    logger.warning(f"{path}: ignoring '{field}', expected a path or list of paths")
    return None


def _author(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("name"), str):
        return value["name"]
    return None


def _version(value: Any, path: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logger.warning(f"{path}: ignoring non-string 'version'")
    return None


def _split_hooks(value: Any, path: str) -> tuple[list[HookConfig], Optional[list[str]]]:
    """Separate inline hook definitions from references to hook files."""
    if value is None:
        return [], None
    if isinstance(value, str):
        return [], [value]
    if isinstance(value, list):
        files = [v for v in value if isinstance(v, str)]
        inline = [v for v in value if not isinstance(v, str)]
        return hooks_from_data(inline, path) if inline else [], files or None
    return hooks_from_data(value, path), None


def _split_mcp_servers(value: Any, path: str) -> tuple[dict[str, McpServerConfig], Optional[list[str]]]:
    """Separate inline MCP server definitions from references to config files."""
    if value is None:
        return {}, None
    if isinstance(value, str):
        return {}, [value]
    if isinstance(value, list):
        files = [v for v in value if isinstance(v, str)]
        if len(files) != len(value):
            logger.warning(f"{path}: ignoring non-string entries in 'mcpServers'")
        return {}, files
    return mcp_servers_from_data(value, path), None


def parse_plugin_manifest(path: str, content: Content) -> PluginManifest:
    """Parse plugin.json content.

    Raises:
        MalformedJsonError: If the content is not a JSON object
        MissingFieldError: If ``name`` or ``description`` is absent or not a string
    """
    data = load_json_object(path, content)

    name = _required_string(data, "name", path)
    description = _required_string(data, "description", path, allow_empty=True)
    hooks, hook_files = _split_hooks(data.get("hooks"), path)
    mcp_servers, mcp_server_files = _split_mcp_servers(data.get("mcpServers"), path)

    return PluginManifest(
        name=name,
        description=description,
        version=_version(data.get("version"), path),
        author=_author(data.get("author")),
        skills=_path_list(data, "skills", path),
        commands=_path_list(data, "commands", path),
        agents=_path_list(data, "agents", path),
        hooks=hooks,
        hook_files=hook_files,
        mcp_servers=mcp_servers,
        mcp_server_files=mcp_server_files,
        extra={k: v for k, v in data.items() if k not in PLUGIN_FIELDS},
    )


def _marketplace_entry(item: Any, index: int, path: str) -> Optional[MarketplaceEntry]:
    if isinstance(item, str) and item.strip():
        return MarketplaceEntry(source=item)
    if not isinstance(item, dict):
        logger.warning(f"{path}: plugins[{index}] is neither a path nor an object, skipping")
        return None

    source = item.get("source")
    if not (isinstance(source, str) and source.strip()) and not isinstance(source, dict):
        logger.warning(f"{path}: plugins[{index}] has no usable 'source', skipping")
        return None

    name = item.get("name")
    description = item.get("description")
    return MarketplaceEntry(
        source=source,
        name=name if isinstance(name, str) else None,
        description=description if isinstance(description, str) else None,
    )


def parse_marketplace_manifest(path: str, content: Content) -> MarketplaceManifest:
    """Parse marketplace.json content.

    Raises:
        MalformedJsonError: If the content is not a JSON object
        MissingFieldError: If ``plugins`` is absent or not a list
    """
    data = load_json_object(path, content)

    plugins = data.get("plugins")
    if not isinstance(plugins, list):
        raise MissingFieldError("plugins", path)

    entries = [_marketplace_entry(item, i, path) for i, item in enumerate(plugins)]
    name = data.get("name")

    return MarketplaceManifest(
        name=name if isinstance(name, str) else None,
        plugins=[e for e in entries if e is not None],
        extra={k: v for k, v in data.items() if k not in MARKETPLACE_FIELDS},
    )
