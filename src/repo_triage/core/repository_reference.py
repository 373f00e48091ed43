"""Repository URL parsing and branch selection helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from repo_triage.domain.models import RepositoryReference

DEFAULT_HOST: Final[str] = "github.com"
FALLBACK_BRANCH: Final[str] = "main"
_PREFERRED_BRANCHES: Final[tuple[str, ...]] = ("main", "master")

_HOSTED_URL_RE = re.compile(
    r"^(?:[a-z][a-z0-9+.-]*://)?(?:[^@/]+@)?"
    r"(?P<host>[A-Za-z0-9.-]+\.[A-Za-z]{2,}(?::\d+)?)[/:]"
    r"(?P<owner>[^/\s]+)/(?P<name>[^/\s]+?)(?:\.git)?(?:/.*)?$"
)
_SHORTHAND_RE = re.compile(r"^(?P<owner>[^/\s:]+)/(?P<name>[^/\s]+?)(?:\.git)?$")


@dataclass(frozen=True)
class RepositorySlug:
    """Owner/name pair parsed from a repository URL."""

    owner: str
    name: str


def parse_repo_url(url: str) -> RepositorySlug | None:
    """Parse ``host/owner/name[...]`` or ``owner/name`` into a slug."""
    candidate = url.strip().rstrip("/")
    if not candidate:
        return None
    for pattern in (_HOSTED_URL_RE, _SHORTHAND_RE):
        match = pattern.match(candidate)
        if match is None:
            continue
        owner = match.group("owner")
        name = match.group("name")
        if owner and name:
            return RepositorySlug(owner=owner, name=name)
    return None


def build_repo_url(owner: str, name: str, *, host: str = DEFAULT_HOST) -> str:
    """Build the canonical HTTPS URL for one hosted repository."""
    return f"https://{host}/{owner}/{name}"


def reference_from_url(url: str, branch: str | None = None) -> RepositoryReference:
    """Build an analysis target from a free-form repository URL."""
    slug = parse_repo_url(url)
    if slug is None:
        raise ValueError(f"Unrecognized repository URL: {url!r}")
    return RepositoryReference(owner=slug.owner, name=slug.name, branch=branch or FALLBACK_BRANCH)


def default_branch(branch_names: Iterable[str]) -> str:
    """Pick main, then master, then the first listed branch."""
    names = [name for name in branch_names if name]
    for preferred in _PREFERRED_BRANCHES:
        if preferred in names:
            return preferred
    return names[0] if names else FALLBACK_BRANCH
