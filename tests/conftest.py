"""
Pytest configuration and fixtures.
"""

import io
import json
import os
import tarfile
import tempfile
import zipfile
from typing import Optional, Union

import pytest

from pluginscope.config import Settings
from pluginscope.core.transport import TransportError

# Keep tests away from any real user config
os.environ["PLUGINSCOPE_CONFIG"] = os.path.join(tempfile.mkdtemp(prefix="pluginscope-test-"), "config.yaml")
os.environ["PLUGINSCOPE_LOG_LEVEL"] = "WARNING"

WRAPPER = "repo-main"

FileContent = Union[str, bytes, dict, list]


def _encode(content: FileContent) -> bytes:
    if isinstance(content, (dict, list)):
        return json.dumps(content).encode()
    if isinstance(content, str):
        return content.encode()
    return content


def make_tarball(files: dict[str, FileContent], wrapper: Optional[str] = WRAPPER) -> bytes:
    """Build a gzipped tarball the way codeload lays one out."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        if wrapper:
            info = tarfile.TarInfo(wrapper)
            info.type = tarfile.DIRTYPE
            archive.addfile(info)
        for path, content in files.items():
            data = _encode(content)
            info = tarfile.TarInfo(f"{wrapper}/{path}" if wrapper else path)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def make_zipball(files: dict[str, FileContent], wrapper: Optional[str] = WRAPPER) -> bytes:
    """Build a zip archive with the same layout as make_tarball."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        if wrapper:
            archive.writestr(f"{wrapper}/", b"")
        for path, content in files.items():
            archive.writestr(f"{wrapper}/{path}" if wrapper else path, _encode(content))
    return buffer.getvalue()


class FakeTransport:
    """Transport serving canned bytes and recording every requested URL."""

    def __init__(self, data: bytes = b"", status_code: Optional[int] = None):
        self.data = data
        self.status_code = status_code
        self.urls: list[str] = []

    def get_bytes(self, url: str) -> bytes:
        self.urls.append(url)
        if self.status_code is not None:
            raise TransportError(f"GET {url} returned HTTP {self.status_code}", status_code=self.status_code)
        return self.data


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment's token and config file."""
    return Settings(github_token="test-token", archive_base_url="https://archive.test")


@pytest.fixture
def marketplace_files() -> dict[str, FileContent]:
    """A marketplace repo with two plugins; alpha declares a skill that is absent."""
    return {
        ".claude-plugin/marketplace.json": {
            "name": "demo-marketplace",
            "plugins": [
                {"name": "alpha", "source": "./plugins/alpha"},
                {"name": "beta", "source": "./plugins/beta"},
            ],
        },
        "plugins/alpha/.claude-plugin/plugin.json": {
            "name": "alpha",
            "description": "First plugin",
            "version": "1.0.0",
            "skills": ["./skills/present", "./skills/absent"],
        },
        "plugins/alpha/skills/present/SKILL.md": (
            "---\nname: present\ndescription: A skill that exists\n---\n\nDo the thing.\n"
        ),
        "plugins/alpha/commands/review.md": "---\ndescription: Review a diff\n---\nReview it.\n",
        "plugins/beta/.claude-plugin/plugin.json": {
            "name": "beta",
            "description": "Second plugin",
        },
        "plugins/beta/agents/helper.md": "---\nname: helper\ndescription: Helps out\n---\nHelp.\n",
        "plugins/beta/.mcp.json": {
            "mcpServers": {"files": {"command": "npx", "args": ["files-server"]}},
        },
        "README.md": "# Demo\n",
    }


@pytest.fixture
def tarball():
    """Builder for wrapped tar.gz archives."""
    return make_tarball


@pytest.fixture
def zipball():
    """Builder for wrapped zip archives."""
    return make_zipball


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport
