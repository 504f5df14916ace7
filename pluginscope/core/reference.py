"""
Source reference parsing.

Accepted forms:
    [github:]owner/repo[/subpath][@ref]
    https://github.com/owner/repo[.git][/tree/<ref>[/<subpath>]]

The last '@' delimits the ref, so refs that themselves contain '@' cannot be
expressed.
"""

from typing import Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from pluginscope.lib.errors import EmptyInputError, InvalidFormatError
from pluginscope.models.github import NAME_PATTERN, GitHubRef

SCHEME_PREFIX = "github:"
WEB_HOSTS = ("github.com", "www.github.com")


def _build(raw: str, owner: str, repo: str, ref: Optional[str], subpath: Optional[str]) -> GitHubRef:
    if not NAME_PATTERN.match(owner) or not NAME_PATTERN.match(repo):
        raise InvalidFormatError(f"Expected owner/repo, got {raw!r}")
    try:
        return GitHubRef(owner=owner, repo=repo, ref=ref, subpath=subpath)
    except ValidationError as e:
        raise InvalidFormatError(f"Invalid reference {raw!r}: {e.errors()[0]['msg']}") from e


def _parse_web_url(raw: str) -> GitHubRef:
    parsed = urlparse(raw)
    if parsed.netloc.lower() not in WEB_HOSTS:
        raise InvalidFormatError(f"Not a GitHub URL: {raw!r}")

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) < 2:
        raise InvalidFormatError(f"Expected owner/repo in URL, got {raw!r}")

    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[:-4]

    ref = None
    subpath = None
    rest = segments[2:]
    if rest:
        if rest[0] not in ("tree", "blob") or len(rest) < 2:
            raise InvalidFormatError(f"Unsupported GitHub URL path: {raw!r}")
        ref = rest[1]
        subpath = "/".join(rest[2:]) or None

    return _build(raw, owner, repo, ref, subpath)


def parse_reference(text: str) -> GitHubRef:
    """Parse a source string into a GitHubRef.

    Raises:
        EmptyInputError: If the input is empty or whitespace only
        InvalidFormatError: If the owner/repo segment is absent or malformed
    """
    raw = text.strip() if text else ""
    if not raw:
        raise EmptyInputError("Reference is empty")

    if any(c.isspace() for c in raw):
        raise InvalidFormatError(f"Reference may not contain whitespace: {raw!r}")

    if raw.startswith(("https://", "http://")):
        return _parse_web_url(raw)

    body = raw[len(SCHEME_PREFIX):] if raw.startswith(SCHEME_PREFIX) else raw

    ref: Optional[str] = None
    if "@" in body:
        body, ref = body.rsplit("@", 1)
        if not ref:
            raise InvalidFormatError(f"Empty ref after '@' in {raw!r}")

    segments = body.split("/")
    if len(segments) < 2:
        raise InvalidFormatError(f"Expected owner/repo, got {raw!r}")

    owner, repo = segments[0], segments[1]
    subpath = "/".join(segments[2:]) or None
    return _build(raw, owner, repo, ref, subpath)
