"""Core domain models for repository analysis requests and results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

RawProviderResponse = dict[str, Any]


def _required_text(value: str, *, label: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{label} must be a non-empty string.")
    return cleaned


@dataclass(frozen=True)
class RepositoryReference:
    """Repository and branch identified for analysis."""

    owner: str
    name: str
    branch: str = "main"

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", _required_text(self.owner, label="owner"))
        object.__setattr__(self, "name", _required_text(self.name, label="name"))
        object.__setattr__(self, "branch", _required_text(self.branch, label="branch"))

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_webhook_item(self) -> dict[str, str]:
        return {
            "repo_owner": self.owner,
            "branch": self.branch,
            "repo_name": self.name,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """One analysis target wrapped in the upstream array envelope."""

    target: RepositoryReference

    def to_payload(self) -> list[dict[str, str]]:
        return [self.target.to_webhook_item()]


@dataclass(frozen=True)
class AnalysisOutcome:
    """Normalized issues and recommendation for one analysis."""

    issues: tuple[str, ...]
    recommendation: str = ""

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)


@dataclass(frozen=True)
class AnalysisRecord:
    """Persisted, immutable result of one successful pipeline run."""

    record_id: str
    user_id: str
    target: RepositoryReference
    outcome: AnalysisOutcome
    created_at: datetime


@dataclass(frozen=True)
class QuotaState:
    """Remaining analysis allowance for one account."""

    user_id: str
    remaining: int
    allowance: int

    @property
    def used(self) -> int:
        return max(0, self.allowance - self.remaining)
