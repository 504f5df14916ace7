"""
Pydantic models for pluginscope.
"""

from pluginscope.models.github import GitHubRef
from pluginscope.models.plugin import (
    AgentDescriptor,
    CommandDescriptor,
    DiscoveryResult,
    DiscoveryWarning,
    HookConfig,
    Marketplace,
    MarketplaceEntry,
    MarketplaceManifest,
    McpServerConfig,
    PluginDescriptor,
    PluginManifest,
    SkillDescriptor,
    WarningKind,
)

__all__ = [
    # Source
    "GitHubRef",
    # Components
    "SkillDescriptor",
    "CommandDescriptor",
    "AgentDescriptor",
    "HookConfig",
    "McpServerConfig",
    # Manifests
    "PluginManifest",
    "MarketplaceEntry",
    "MarketplaceManifest",
    # Discovery
    "PluginDescriptor",
    "Marketplace",
    "WarningKind",
    "DiscoveryWarning",
    "DiscoveryResult",
]
