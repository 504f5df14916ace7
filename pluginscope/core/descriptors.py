"""
Parsers for individual plugin component files.

Markdown components (skills, commands, agents) carry an optional frontmatter
block of flat ``key: value`` pairs:

    ---
    name: code-review
    description: Reviews a diff for problems
    allowed-tools: Read, Grep
    ---

    # Instructions...

Hook and MCP configs are JSON documents.
"""

import json
import logging
from pathlib import PurePosixPath
from typing import Any, Optional, TypeVar, Union

from pluginscope.lib.errors import (
    InvalidEncodingError,
    InvalidFieldError,
    MalformedFrontmatterLineError,
    MalformedJsonError,
    MissingFieldError,
    UnterminatedFrontmatterError,
)
from pluginscope.models.plugin import (
    AgentDescriptor,
    CommandDescriptor,
    HookConfig,
    MarkdownDescriptor,
    McpServerConfig,
    SkillDescriptor,
)

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"

# File names fixed by convention; the skill is named after its directory
CONVENTIONAL_FILE_NAMES = {"skill.md", "index.md"}

Content = Union[bytes, str]
D = TypeVar("D", bound=MarkdownDescriptor)


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------


def decode_text(path: str, content: Content) -> str:
    """Decode file bytes as UTF-8, dropping a leading BOM."""
    if isinstance(content, str):
        return content.lstrip("\ufeff")
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidEncodingError(f"not valid UTF-8: {e}", path) from e


def load_json(path: str, content: Content) -> Any:
    """Decode a JSON document."""
    try:
        text = decode_text(path, content)
    except InvalidEncodingError as e:
        raise MalformedJsonError(e.message, path) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedJsonError(f"invalid JSON: {e}", path) from e


def load_json_object(path: str, content: Content) -> dict[str, Any]:
    """Decode a JSON document whose root must be an object."""
    data = load_json(path, content)
    if not isinstance(data, dict):
        raise MalformedJsonError(f"expected a JSON object, got {type(data).__name__}", path)
    return data


# ---------------------------------------------------------------------------
# Markdown with frontmatter
# ---------------------------------------------------------------------------


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def split_frontmatter(path: str, content: Content) -> tuple[dict[str, str], str]:
    """Split a markdown document into (frontmatter, body).

    A document that does not open with a ``---`` line has no frontmatter and
    its whole text is the body.

    Raises:
        UnterminatedFrontmatterError: If the opening delimiter is never closed
        MalformedFrontmatterLineError: If a non-blank line is not ``key: value``
    """
    text = decode_text(path, content)
    lines = text.splitlines(keepends=True)

    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return {}, text

    close = next(
        (i for i in range(1, len(lines)) if lines[i].rstrip() == FRONTMATTER_DELIMITER),
        None,
    )
    if close is None:
        raise UnterminatedFrontmatterError(path)

    frontmatter: dict[str, str] = {}
    for line_number, line in enumerate(lines[1:close], start=2):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if ":" not in stripped:
            raise MalformedFrontmatterLineError(line_number, path)
        key, value = stripped.split(":", 1)
        key = key.strip()
        if not key:
            raise MalformedFrontmatterLineError(line_number, path)
        frontmatter[key] = _unquote(value.strip())

    return frontmatter, "".join(lines[close + 1:])


def default_name(path: str) -> str:
    """Name used when frontmatter has none: the file's base name."""
    p = PurePosixPath(path)
    if p.name.lower() in CONVENTIONAL_FILE_NAMES and p.parent.name:
        return p.parent.name
    return p.stem


def _parse_markdown_descriptor(model: type[D], path: str, content: Content) -> D:
    frontmatter, body = split_frontmatter(path, content)
    name = frontmatter.pop("name", "") or default_name(path)
    description = frontmatter.pop("description", "")
    return model(
        name=name,
        description=description,
        source_path=path,
        body=body,
        metadata=frontmatter,
    )


def parse_skill_descriptor(path: str, content: Content) -> SkillDescriptor:
    """Parse a skill file (SKILL.md)."""
    return _parse_markdown_descriptor(SkillDescriptor, path, content)


def parse_command_descriptor(path: str, content: Content) -> CommandDescriptor:
    """Parse a slash-command file."""
    return _parse_markdown_descriptor(CommandDescriptor, path, content)


def parse_agent_descriptor(path: str, content: Content) -> AgentDescriptor:
    """Parse an agent definition file."""
    return _parse_markdown_descriptor(AgentDescriptor, path, content)


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _hook_from_entry(entry: Any, path: Optional[str]) -> HookConfig:
    if not isinstance(entry, dict):
        raise InvalidFieldError("hooks", "expected hook objects", path)
    event = entry.get("event")
    if not isinstance(event, str) or not event:
        raise MissingFieldError("event", path)
    command = entry.get("command")
    if not isinstance(command, str) or not command:
        raise MissingFieldError("command", path)
    matcher = entry.get("matcher")
    return HookConfig(
        event=event,
        command=command,
        matcher=matcher if isinstance(matcher, str) else None,
        timeout=_optional_int(entry.get("timeout")),
    )


def _hooks_from_event_map(events: dict[str, Any], path: Optional[str]) -> list[HookConfig]:
    """Flatten {Event: [{matcher, hooks: [...]}]} into HookConfig entries."""
    hooks: list[HookConfig] = []
    for event, groups in events.items():
        if not isinstance(groups, list):
            raise InvalidFieldError(event, "expected a list of hook groups", path)
        for group in groups:
            if not isinstance(group, dict) or not isinstance(group.get("hooks"), list):
                raise InvalidFieldError(event, "hook group needs a 'hooks' list", path)
            matcher = group.get("matcher")
            matcher = matcher if isinstance(matcher, str) else None
            for action in group["hooks"]:
                if isinstance(action, str):
                    hooks.append(HookConfig(event=event, command=action, matcher=matcher))
                    continue
                if not isinstance(action, dict):
                    raise InvalidFieldError(event, "hook action must be a string or object", path)
                command = action.get("command")
                if not isinstance(command, str) or not command:
                    if action.get("type", "command") != "command":
                        logger.debug(f"Skipping non-command hook ({action.get('type')}) in {path}")
                        continue
                    raise MissingFieldError("command", path)
                hooks.append(
                    HookConfig(
                        event=event,
                        command=command,
                        matcher=matcher,
                        timeout=_optional_int(action.get("timeout")),
                    )
                )
    return hooks


def hooks_from_data(data: Any, path: Optional[str] = None) -> list[HookConfig]:
    """Build HookConfig entries from decoded JSON.

    Accepts a list of {event, command, matcher?} objects, an event mapping in
    the Claude Code hooks.json layout, or either wrapped in {"hooks": ...}.
    """
    if isinstance(data, dict) and "hooks" in data:
        data = data["hooks"]
    if isinstance(data, list):
        return [_hook_from_entry(entry, path) for entry in data]
    if isinstance(data, dict):
        return _hooks_from_event_map(data, path)
    raise InvalidFieldError("hooks", "expected a list or an event mapping", path)


def parse_hooks_config(path: str, content: Content) -> list[HookConfig]:
    """Parse a hooks JSON file."""
    return hooks_from_data(load_json(path, content), path)


# ---------------------------------------------------------------------------
# MCP servers
# ---------------------------------------------------------------------------


def _mcp_server(name: str, config: Any, path: Optional[str]) -> McpServerConfig:
    if not isinstance(config, dict):
        raise InvalidFieldError(name, "server config must be an object", path)

    command = config.get("command")
    url = config.get("url")
    if not isinstance(command, str) or not command:
        if not isinstance(url, str) or not url:
            raise MissingFieldError("command", path)
        command = ""

    args = config.get("args", [])
    if not isinstance(args, list):
        raise InvalidFieldError("args", f"server '{name}': must be a list", path)
    env = config.get("env", {})
    if not isinstance(env, dict):
        raise InvalidFieldError("env", f"server '{name}': must be an object", path)

    return McpServerConfig(
        name=name,
        command=command,
        args=[str(a) for a in args],
        env={str(k): str(v) for k, v in env.items()},
        url=url if isinstance(url, str) and url else None,
    )


def mcp_servers_from_data(data: Any, path: Optional[str] = None) -> dict[str, McpServerConfig]:
    """Build MCP server configs from decoded JSON ({"mcpServers": {...}} or a bare mapping)."""
    if isinstance(data, dict) and isinstance(data.get("mcpServers"), dict):
        data = data["mcpServers"]
    if not isinstance(data, dict):
        raise InvalidFieldError("mcpServers", "expected a mapping of server name to config", path)
    return {name: _mcp_server(name, config, path) for name, config in data.items()}


def parse_mcp_config(path: str, content: Content) -> dict[str, McpServerConfig]:
    """Parse an MCP config file (.mcp.json)."""
    return mcp_servers_from_data(load_json(path, content), path)
