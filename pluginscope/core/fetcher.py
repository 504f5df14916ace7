"""
Repository snapshot retrieval.

A snapshot is a codeload tarball (or zipball) of one repository at one ref.
GitHub wraps every archive in a single "{repo}-{ref}/" directory; that
wrapper is stripped so tree paths are repository-relative.
"""

import io
import logging
import tarfile
import zipfile
import zlib
from collections.abc import Iterator
from typing import Optional

from pluginscope.config import Settings, get_settings
from pluginscope.core.transport import ArchiveCache, HttpxTransport, Transport, TransportError
from pluginscope.core.tree import VirtualFileTree, normalize_path
from pluginscope.lib.errors import CorruptArchiveError, NotFoundError, TransportFailureError
from pluginscope.models.github import GitHubRef

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
EMPTY_ZIP_MAGIC = b"PK\x05\x06"


def _is_unsafe(raw_name: str) -> bool:
    name = raw_name.replace("\\", "/")
    return name.startswith("/") or ".." in name.split("/")


def _iter_tar(data: bytes) -> Iterator[tuple[str, bytes]]:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
        for member in archive:
            if not member.isfile():
                continue
            handle = archive.extractfile(member)
            if handle is None:
                continue
            yield member.name, handle.read()


def _iter_zip(data: bytes) -> Iterator[tuple[str, bytes]]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            yield info.filename, archive.read(info)


def _strip_wrapper(entries: list[tuple[str, bytes]]) -> list[tuple[str, bytes]]:
    """Drop the single top-level directory shared by every entry, if any."""
    if not entries:
        return entries
    heads = {path.split("/", 1)[0] for path, _ in entries}
    if len(heads) != 1 or any("/" not in path for path, _ in entries):
        return entries
    return [(path.split("/", 1)[1], data) for path, data in entries]


def extract_archive(data: bytes, subpath: Optional[str] = None) -> VirtualFileTree:
    """Unpack tar(.gz) or zip bytes into a VirtualFileTree.

    Raises:
        CorruptArchiveError: If the bytes are not a readable tar or zip container
    """
    reader = _iter_zip if data[:4] in (ZIP_MAGIC, EMPTY_ZIP_MAGIC) else _iter_tar

    entries: list[tuple[str, bytes]] = []
    try:
        for raw_name, content in reader(data):
            if _is_unsafe(raw_name):
                logger.warning(f"Skipping unsafe archive entry: {raw_name}")
                continue
            path = normalize_path(raw_name)
            if path:
                entries.append((path, content))
    except (tarfile.TarError, zipfile.BadZipFile, zlib.error, EOFError, OSError) as e:
        raise CorruptArchiveError(f"Cannot read archive: {e}") from e

    entries = _strip_wrapper(entries)
    tree = VirtualFileTree(entries)

    if subpath:
        tree = tree.subtree(subpath)
        if not tree:
            logger.warning(f"Subpath '{subpath}' matched no files in archive")

    return tree


class ArchiveFetcher:
    """Fetch a repository snapshot and expose it as a VirtualFileTree."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        cache: Optional[ArchiveCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self._owned_transport = HttpxTransport(self.settings) if transport is None else None
        self.transport: Transport = transport or self._owned_transport
        self.cache = cache

    def close(self) -> None:
        """Close the default transport. Injected transports are left to their owner."""
        if self._owned_transport is not None:
            self._owned_transport.close()

    def __enter__(self) -> "ArchiveFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def archive_url(self, ref: GitHubRef) -> str:
        return ref.archive_url(self.settings.archive_base_url, self.settings.archive_format)

    def fetch_bytes(self, ref: GitHubRef) -> bytes:
        """Raw archive bytes for ``ref``, via the cache when one is configured.

        Raises:
            NotFoundError: If the repository or ref does not exist
            TransportFailureError: For any other transport fault
        """
        if self.cache is not None:
            cached = self.cache.get(ref)
            if cached is not None:
                logger.debug(f"Archive cache hit for {ref.repository_ref()}")
                return cached

        url = self.archive_url(ref)
        try:
            data = self.transport.get_bytes(url)
        except TransportError as e:
            if e.status_code == 404:
                raise NotFoundError(f"Repository or ref not found: {ref.repository_ref()}") from e
            raise TransportFailureError(str(e)) from e

        if self.cache is not None:
            self.cache.put(ref, data)
        return data

    def fetch(self, ref: GitHubRef) -> VirtualFileTree:
        """Fetch and unpack the snapshot for ``ref``, narrowed to its subpath."""
        data = self.fetch_bytes(ref)
        tree = extract_archive(data, ref.subpath)
        logger.info(f"Fetched {ref}: {len(tree)} files")
        return tree
