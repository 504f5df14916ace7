"""
Discovery pipeline: reference parsing, archive fetching, manifest and
descriptor parsing.
"""

from pluginscope.core.discovery import discover_in_tree, discover_plugins
from pluginscope.core.fetcher import ArchiveFetcher, extract_archive
from pluginscope.core.reference import parse_reference
from pluginscope.core.transport import HttpxTransport, InMemoryArchiveCache, TransportError
from pluginscope.core.tree import VirtualFileTree

__all__ = [
    "discover_plugins",
    "discover_in_tree",
    "ArchiveFetcher",
    "extract_archive",
    "parse_reference",
    "HttpxTransport",
    "InMemoryArchiveCache",
    "TransportError",
    "VirtualFileTree",
]
