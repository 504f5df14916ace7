"""
pluginscope - discover agent plugins published in GitHub repositories.
"""

from pluginscope.core.discovery import discover_plugins
from pluginscope.core.fetcher import ArchiveFetcher
from pluginscope.core.reference import parse_reference
from pluginscope.lib.errors import (
    DiscoveryError,
    ErrorCode,
    FetchError,
    ParseError,
    PluginScopeError,
)
from pluginscope.models import DiscoveryResult, GitHubRef, Marketplace, PluginDescriptor

__version__ = "0.1.0"

__all__ = [
    "discover_plugins",
    "parse_reference",
    "ArchiveFetcher",
    "GitHubRef",
    "DiscoveryResult",
    "Marketplace",
    "PluginDescriptor",
    "ErrorCode",
    "PluginScopeError",
    "ParseError",
    "FetchError",
    "DiscoveryError",
]
