"""
Plugin models.

Plugins follow the Claude Code plugin format:
  {root}/.claude-plugin/plugin.json       - manifest (or {root}/plugin.json)
  {root}/.claude-plugin/marketplace.json  - multi-plugin registry
  {root}/skills/                          - skill files (SKILL.md)
  {root}/commands/                        - slash commands
  {root}/agents/                          - agent definitions
  {root}/hooks/hooks.json                 - hook bindings
  {root}/.mcp.json                        - MCP server configs

Everything here is immutable once built.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from pluginscope.models.github import GitHubRef


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# ---------------------------------------------------------------------------
# Component descriptors
# ---------------------------------------------------------------------------


class MarkdownDescriptor(_Frozen):
    name: str
    description: str = ""
    source_path: str = Field(alias="sourcePath")
    body: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)


class SkillDescriptor(MarkdownDescriptor):
    """An instructional capability (skills/<name>/SKILL.md)."""


class CommandDescriptor(MarkdownDescriptor):
    """A slash command (commands/<name>.md)."""


class AgentDescriptor(MarkdownDescriptor):
    """A sub-agent definition (agents/<name>.md)."""


class HookConfig(_Frozen):
    """A command bound to an agent lifecycle event."""

    event: str
    command: str
    matcher: Optional[str] = None
    timeout: Optional[int] = None


class McpServerConfig(_Frozen):
    """An MCP tool-provider process (or remote endpoint) definition."""

    name: str
    command: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    url: Optional[str] = None


# ---------------------------------------------------------------------------
# Manifests
# ---------------------------------------------------------------------------


class PluginManifest(_Frozen):
    """Typed contents of plugin.json.

    Component lists are None when the manifest does not declare them, so the
    caller can fall back to conventional locations.
    """

    name: str
    description: str
    version: Optional[str] = None
    author: Optional[str] = None
    skills: Optional[list[str]] = None
    commands: Optional[list[str]] = None
    agents: Optional[list[str]] = None
    hooks: list[HookConfig] = Field(default_factory=list)
    hook_files: Optional[list[str]] = Field(default=None, alias="hookFiles")
    mcp_servers: dict[str, McpServerConfig] = Field(default_factory=dict, alias="mcpServers")
    mcp_server_files: Optional[list[str]] = Field(default=None, alias="mcpServerFiles")
    extra: dict[str, Any] = Field(default_factory=dict)


class MarketplaceEntry(_Frozen):
    """One plugin listed by a marketplace.

    ``source`` is a repository-relative path for local plugins, or the raw
    source object for plugins hosted elsewhere.
    """

    source: Union[str, dict[str, Any]]
    name: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return isinstance(self.source, str) and "://" not in self.source


class MarketplaceManifest(_Frozen):
    """Typed contents of marketplace.json."""

    name: Optional[str] = None
    plugins: list[MarketplaceEntry] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Discovery output
# ---------------------------------------------------------------------------


class PluginDescriptor(_Frozen):
    """A discovered plugin with all of its parsed components."""

    name: str
    description: str = ""
    version: Optional[str] = None
    path: Optional[str] = None  # Plugin root in the repo; None = repo root
    skills: list[SkillDescriptor] = Field(default_factory=list)
    commands: list[CommandDescriptor] = Field(default_factory=list)
    agents: list[AgentDescriptor] = Field(default_factory=list)
    hooks: list[HookConfig] = Field(default_factory=list)
    mcp_servers: dict[str, McpServerConfig] = Field(default_factory=dict, alias="mcpServers")


class Marketplace(_Frozen):
    """Plugins aggregated from one marketplace source."""

    plugins: list[PluginDescriptor] = Field(default_factory=list)
    source_ref: GitHubRef = Field(alias="sourceRef")
    name: Optional[str] = None


class WarningKind(str, Enum):
    MISSING_FILE = "missing_file"
    INVALID_FILE = "invalid_file"
    DUPLICATE_NAME = "duplicate_name"
    SKIPPED_SOURCE = "skipped_source"
    OUTSIDE_ROOT = "outside_root"


class DiscoveryWarning(_Frozen):
    """A non-fatal problem encountered while assembling plugins."""

    kind: WarningKind
    path: str
    message: str
    plugin: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"[{self.plugin}] " if self.plugin else ""
        return f"{prefix}{self.path}: {self.message}"


class DiscoveryResult(_Frozen):
    """Result of discovering one source, with grouped and flat access."""

    source_ref: GitHubRef = Field(alias="sourceRef")
    plugins: list[PluginDescriptor] = Field(default_factory=list)
    marketplace: Optional[Marketplace] = None
    warnings: list[DiscoveryWarning] = Field(default_factory=list)

    @property
    def all_skills(self) -> list[SkillDescriptor]:
        return [s for p in self.plugins for s in p.skills]

    @property
    def all_commands(self) -> list[CommandDescriptor]:
        return [c for p in self.plugins for c in p.commands]

    @property
    def all_agents(self) -> list[AgentDescriptor]:
        return [a for p in self.plugins for a in p.agents]

    @property
    def all_mcp_servers(self) -> dict[str, McpServerConfig]:
        servers: dict[str, McpServerConfig] = {}
        for plugin in self.plugins:
            servers.update(plugin.mcp_servers)
        return servers
