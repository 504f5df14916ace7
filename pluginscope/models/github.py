"""
GitHub source reference model.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class GitHubRef(BaseModel):
    """A repository on GitHub, optionally pinned to a ref and narrowed to a subpath."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    ref: Optional[str] = None  # branch, tag or commit; None = default branch
    subpath: Optional[str] = None

    @field_validator("owner", "repo")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not NAME_PATTERN.match(value):
            raise ValueError(f"must match {NAME_PATTERN.pattern}, got {value!r}")
        return value

    @field_validator("ref")
    @classmethod
    def _check_ref(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and (not value or any(c.isspace() for c in value)):
            raise ValueError("ref must be a non-empty token without whitespace")
        return value

    @field_validator("subpath")
    @classmethod
    def _normalize_subpath(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.replace("\\", "/").strip("/")
        if not value:
            return None
        for segment in value.split("/"):
            if segment in ("", ".", ".."):
                raise ValueError(f"invalid subpath segment in {value!r}")
            # "@" would be read back as the ref delimiter
            if "@" in segment or any(c.isspace() for c in segment):
                raise ValueError(f"subpath may not contain '@' or whitespace: {value!r}")
        return value

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    def format(self) -> str:
        """Render the canonical reference string, e.g. github:owner/repo/sub@v1."""
        text = f"github:{self.owner}/{self.repo}"
        if self.subpath:
            text += f"/{self.subpath}"
        if self.ref:
            text += f"@{self.ref}"
        return text

    def repository_ref(self) -> "GitHubRef":
        """The same snapshot without a subpath (archives are per repository)."""
        if self.subpath is None:
            return self
        return self.model_copy(update={"subpath": None})

    def archive_url(self, base_url: str, archive_format: str = "tar.gz") -> str:
        """Codeload-style archive URL for this snapshot."""
        return f"{base_url.rstrip('/')}/{self.owner}/{self.repo}/{archive_format}/{self.ref or 'HEAD'}"

    def __str__(self) -> str:
        return self.format()
