"""
Plugin discovery over a fetched repository snapshot.

Detection order:
1. marketplace.json (.claude-plugin/ or bare, at the root or one level down)
2. plugin.json manifests (root, one level down, or plugins/<name>/)
3. Optional component heuristic: a root with two or more of skills/,
   commands/, agents/ becomes one synthetic plugin

Referenced files that are missing or unparseable do not fail discovery; they
are skipped and reported as DiscoveryWarning entries on the result.
"""

import logging
import posixpath
from collections.abc import Callable
from typing import Optional, TypeVar, Union

from pluginscope.config import Settings, get_settings
from pluginscope.core.descriptors import (
    parse_agent_descriptor,
    parse_command_descriptor,
    parse_hooks_config,
    parse_mcp_config,
    parse_skill_descriptor,
)
from pluginscope.core.fetcher import ArchiveFetcher
from pluginscope.core.manifest import parse_marketplace_manifest, parse_plugin_manifest
from pluginscope.core.reference import parse_reference
from pluginscope.core.tree import VirtualFileTree, is_outside_root, join_path
from pluginscope.lib.errors import NoManifestFoundError, ParseError
from pluginscope.models.github import GitHubRef
from pluginscope.models.plugin import (
    DiscoveryResult,
    DiscoveryWarning,
    HookConfig,
    Marketplace,
    MarkdownDescriptor,
    McpServerConfig,
    PluginDescriptor,
    PluginManifest,
    WarningKind,
)

logger = logging.getLogger(__name__)

MANIFEST_DIR = ".claude-plugin"
MARKETPLACE_NAMES = (f"{MANIFEST_DIR}/marketplace.json", "marketplace.json")
PLUGIN_MANIFEST_NAMES = (f"{MANIFEST_DIR}/plugin.json", "plugin.json")
MULTI_PLUGIN_DIRS = ("plugins",)

CONVENTIONAL_HOOK_FILES = ("hooks/hooks.json", f"{MANIFEST_DIR}/hooks.json")
CONVENTIONAL_MCP_FILES = (".mcp.json", f"{MANIFEST_DIR}/.mcp.json")
COMPONENT_DIRS = ("skills", "commands", "agents")

D = TypeVar("D", bound=MarkdownDescriptor)


def _manifest_root(manifest_path: str, names: tuple[str, ...]) -> Optional[str]:
    """Return the plugin/marketplace root for a manifest path, or None if it isn't one."""
    for name in names:
        if manifest_path == name:
            return ""
        if manifest_path.endswith("/" + name):
            return manifest_path[: -len(name) - 1]
    return None


def _is_allowed_root(root: str) -> bool:
    """Manifests count at the root, one level down, or in plugins/<name>/."""
    depth = root.count("/") + 1 if root else 0
    if depth <= 1:
        return True
    head, _, rest = root.partition("/")
    return depth == 2 and head in MULTI_PLUGIN_DIRS and "/" not in rest


def find_manifests(tree: VirtualFileTree, names: tuple[str, ...]) -> list[str]:
    """Manifest paths in tree order, one per root (.claude-plugin/ wins over bare)."""
    found: dict[str, str] = {}
    for path in tree:
        root = _manifest_root(path, names)
        if root is None or not _is_allowed_root(root):
            continue
        current = found.get(root)
        if current is None or (MANIFEST_DIR in path and MANIFEST_DIR not in current):
            found[root] = path
    return list(found.values())


def _plugin_root_for_manifest(manifest_path: str) -> str:
    root = posixpath.dirname(manifest_path)
    if posixpath.basename(root) == MANIFEST_DIR:
        root = posixpath.dirname(root)
    return root


class _PluginBuilder:
    """Assembles PluginDescriptors from one tree, collecting warnings."""

    def __init__(self, tree: VirtualFileTree):
        self.tree = tree
        self.warnings: list[DiscoveryWarning] = []

    def warn(self, kind: WarningKind, path: str, message: str, plugin: Optional[str] = None) -> None:
        warning = DiscoveryWarning(kind=kind, path=path, message=message, plugin=plugin)
        logger.warning(str(warning))
        self.warnings.append(warning)

    # -- component resolution ------------------------------------------------

    def _declared_target(self, root: str, entry: str, plugin: Optional[str]) -> Optional[str]:
        """Resolve a declared path against the plugin root; None if it leaves the tree."""
        target = join_path(root, entry)
        if is_outside_root(target):
            self.warn(WarningKind.OUTSIDE_ROOT, entry, "declared path points outside the repository", plugin)
            return None
        return target

    def _markdown_under(self, base: str, kind: str) -> list[str]:
        """Component files below a directory, in tree order."""
        paths = []
        for path in self.tree.files_under(base):
            if not path.endswith(".md"):
                continue
            relative = path[len(base) + 1:] if base else path
            if kind == "skills":
                # <name>/SKILL.md (any depth) or a single-file <name>.md
                if posixpath.basename(relative) == "SKILL.md" or "/" not in relative:
                    paths.append(path)
            else:
                paths.append(path)
        return paths

    def _declared_markdown(self, root: str, kind: str, declared: list[str], plugin: str) -> list[str]:
        paths = []
        for entry in declared:
            target = self._declared_target(root, entry, plugin)
            if target is None:
                continue
            if target in self.tree:
                paths.append(target)
            elif self.tree.is_dir(target):
                matches = self._markdown_under(target, kind)
                if not matches:
                    self.warn(WarningKind.MISSING_FILE, target, f"declared directory holds no {kind}", plugin)
                paths.extend(matches)
            else:
                self.warn(WarningKind.MISSING_FILE, target, f"declared {kind[:-1]} not found", plugin)
        return paths

    def _parse_markdown(
        self,
        paths: list[str],
        parser: Callable[[str, bytes], D],
        plugin: str,
    ) -> list[D]:
        results: list[D] = []
        seen: set[str] = set()
        for path in paths:
            try:
                descriptor = parser(path, self.tree[path])
            except ParseError as e:
                self.warn(WarningKind.INVALID_FILE, path, e.message, plugin)
                continue
            if descriptor.name in seen:
                self.warn(WarningKind.DUPLICATE_NAME, path, f"duplicate name '{descriptor.name}'", plugin)
                continue
            seen.add(descriptor.name)
            results.append(descriptor)
        return results

    def _markdown_components(
        self,
        root: str,
        kind: str,
        declared: Optional[list[str]],
        parser: Callable[[str, bytes], D],
        plugin: str,
    ) -> list[D]:
        if declared is None:
            paths = self._markdown_under(join_path(root, kind), kind)
        else:
            paths = self._declared_markdown(root, kind, declared, plugin)
        return self._parse_markdown(list(dict.fromkeys(paths)), parser, plugin)

    def _config_files(self, root: str, declared: Optional[list[str]], defaults: tuple[str, ...], plugin: str) -> list[str]:
        if declared is None:
            return [p for p in (join_path(root, d) for d in defaults) if p in self.tree]
        paths = []
        for entry in declared:
            target = self._declared_target(root, entry, plugin)
            if target is None:
                continue
            if target in self.tree:
                paths.append(target)
            else:
                self.warn(WarningKind.MISSING_FILE, target, "declared config file not found", plugin)
        return paths

    def _hooks(self, root: str, manifest: Optional[PluginManifest], plugin: str) -> list[HookConfig]:
        declared = manifest.hook_files if manifest else None
        hooks: list[HookConfig] = []
        for path in self._config_files(root, declared, CONVENTIONAL_HOOK_FILES, plugin):
            try:
                hooks.extend(parse_hooks_config(path, self.tree[path]))
            except ParseError as e:
                self.warn(WarningKind.INVALID_FILE, path, e.message, plugin)
        if manifest:
            hooks.extend(manifest.hooks)
        return hooks

    def _mcp_servers(self, root: str, manifest: Optional[PluginManifest], plugin: str) -> dict[str, McpServerConfig]:
        declared = manifest.mcp_server_files if manifest else None
        servers: dict[str, McpServerConfig] = {}
        for path in self._config_files(root, declared, CONVENTIONAL_MCP_FILES, plugin):
            try:
                servers.update(parse_mcp_config(path, self.tree[path]))
            except ParseError as e:
                self.warn(WarningKind.INVALID_FILE, path, e.message, plugin)
        # Inline manifest servers override file-based ones
        if manifest:
            servers.update(manifest.mcp_servers)
        return servers

    # -- assembly ------------------------------------------------------------

    def build(
        self,
        root: str,
        name: str,
        description: str = "",
        manifest: Optional[PluginManifest] = None,
    ) -> PluginDescriptor:
        plugin = PluginDescriptor(
            name=name,
            description=description,
            version=manifest.version if manifest else None,
            path=root or None,
            skills=self._markdown_components(
                root, "skills", manifest.skills if manifest else None, parse_skill_descriptor, name
            ),
            commands=self._markdown_components(
                root, "commands", manifest.commands if manifest else None, parse_command_descriptor, name
            ),
            agents=self._markdown_components(
                root, "agents", manifest.agents if manifest else None, parse_agent_descriptor, name
            ),
            hooks=self._hooks(root, manifest, name),
            mcp_servers=self._mcp_servers(root, manifest, name),
        )
        logger.debug(
            f"Assembled plugin '{plugin.name}': {len(plugin.skills)} skills, "
            f"{len(plugin.commands)} commands, {len(plugin.agents)} agents, "
            f"{len(plugin.hooks)} hooks, {len(plugin.mcp_servers)} MCP servers"
        )
        return plugin

    def build_from_manifest(self, manifest_path: str) -> PluginDescriptor:
        """Parse a plugin manifest and assemble its plugin. ParseError propagates."""
        manifest = parse_plugin_manifest(manifest_path, self.tree[manifest_path])
        root = _plugin_root_for_manifest(manifest_path)
        return self.build(root, manifest.name, manifest.description, manifest)

    def try_build_from_manifest(self, manifest_path: str) -> Optional[PluginDescriptor]:
        try:
            return self.build_from_manifest(manifest_path)
        except ParseError as e:
            self.warn(WarningKind.INVALID_FILE, manifest_path, e.message)
            return None

    def resolve_marketplace_source(self, marketplace_root: str, source: str) -> Optional[str]:
        """Map a marketplace entry source to a plugin manifest path in the tree."""
        target = join_path(marketplace_root, source)
        if target in self.tree and target.endswith(".json"):
            return target
        for name in PLUGIN_MANIFEST_NAMES:
            candidate = join_path(target, name)
            if candidate in self.tree:
                return candidate
        return None


def _discover_marketplace(
    builder: _PluginBuilder, marketplace_path: str, source_ref: GitHubRef
) -> Marketplace:
    manifest = parse_marketplace_manifest(marketplace_path, builder.tree[marketplace_path])
    marketplace_root = _plugin_root_for_manifest(marketplace_path)

    plugins: list[PluginDescriptor] = []
    for entry in manifest.plugins:
        label = entry.name or str(entry.source)
        if not entry.is_local:
            builder.warn(
                WarningKind.SKIPPED_SOURCE,
                marketplace_path,
                f"plugin '{label}' is hosted outside this repository, not fetched",
            )
            continue

        if is_outside_root(join_path(marketplace_root, entry.source)):
            builder.warn(
                WarningKind.OUTSIDE_ROOT,
                entry.source,
                f"plugin '{label}' points outside the repository",
            )
            continue

        manifest_path = builder.resolve_marketplace_source(marketplace_root, entry.source)
        if manifest_path is None:
            builder.warn(
                WarningKind.MISSING_FILE,
                join_path(marketplace_root, entry.source),
                f"plugin manifest for '{label}' not found",
            )
            continue

        plugin = builder.try_build_from_manifest(manifest_path)
        if plugin is not None:
            plugins.append(plugin)

    return Marketplace(plugins=plugins, source_ref=source_ref, name=manifest.name)


def _has_component_dirs(tree: VirtualFileTree) -> bool:
    return sum(1 for d in COMPONENT_DIRS if tree.is_dir(d)) >= 2


def discover_in_tree(
    tree: VirtualFileTree,
    source_ref: GitHubRef,
    allow_manifestless: bool = False,
) -> DiscoveryResult:
    """Discover plugins in an already fetched tree.

    Raises:
        ParseError: If the marketplace manifest, or the only plugin manifest, is invalid
        NoManifestFoundError: If the tree holds no manifest (and the heuristic is off or fails)
    """
    builder = _PluginBuilder(tree)

    marketplaces = find_manifests(tree, MARKETPLACE_NAMES)
    if marketplaces:
        if len(marketplaces) > 1:
            logger.info(f"Multiple marketplaces in {source_ref}, using {marketplaces[0]}")
        marketplace = _discover_marketplace(builder, marketplaces[0], source_ref)
        return DiscoveryResult(
            source_ref=source_ref,
            plugins=marketplace.plugins,
            marketplace=marketplace,
            warnings=builder.warnings,
        )

    manifests = find_manifests(tree, PLUGIN_MANIFEST_NAMES)
    if len(manifests) == 1:
        plugins = [builder.build_from_manifest(manifests[0])]
    elif manifests:
        plugins = [p for p in map(builder.try_build_from_manifest, manifests) if p is not None]
    elif allow_manifestless and _has_component_dirs(tree):
        logger.info(f"No manifest in {source_ref}, synthesizing plugin from component directories")
        plugins = [builder.build("", source_ref.subpath.rsplit("/", 1)[-1] if source_ref.subpath else source_ref.repo)]
    else:
        raise NoManifestFoundError(f"No plugin.json or marketplace.json in {source_ref}")

    return DiscoveryResult(source_ref=source_ref, plugins=plugins, warnings=builder.warnings)


def discover_plugins(
    source: Union[GitHubRef, str],
    fetcher: Optional[ArchiveFetcher] = None,
    settings: Optional[Settings] = None,
) -> DiscoveryResult:
    """Discover all plugins published by a GitHub source.

    Args:
        source: A GitHubRef or a reference string such as "github:owner/repo@v1"
        fetcher: Archive fetcher to use (defaults to one built from settings)
        settings: Settings override

    Returns:
        DiscoveryResult with the plugins, the marketplace (if any) and warnings

    Raises:
        ParseError: If the reference or a root manifest cannot be parsed
        FetchError: If the snapshot cannot be retrieved or unpacked
        NoManifestFoundError: If the repository contains no manifest
    """
    settings = settings or (fetcher.settings if fetcher else get_settings())
    source_ref = parse_reference(source) if isinstance(source, str) else source

    if fetcher is None:
        with ArchiveFetcher(settings=settings) as owned:
            tree = owned.fetch(source_ref)
    else:
        tree = fetcher.fetch(source_ref)

    result = discover_in_tree(tree, source_ref, allow_manifestless=settings.allow_manifestless)

    logger.info(
        f"Discovered {len(result.plugins)} plugins in {source_ref}"
        + (f" ({len(result.warnings)} warnings)" if result.warnings else "")
    )
    return result
