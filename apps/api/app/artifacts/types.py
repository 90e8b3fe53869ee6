"""Value types for the artifact dashboard.

Repository and Artifact are frozen: shared state is updated by building a
new value (see `RepositoryStore.update`), never by assigning fields, so two
concurrent fetch completions can never half-apply an update.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class DeletionPolicy(str, Enum):
    ALL = "all"
    KEEP_LATEST = "keep_latest"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    FAILED = "failed"
    NOT_FOUND = "not_found"


def parse_github_timestamp(value: str) -> datetime:
    """Parse GitHub's ISO-8601 timestamps (``2024-01-01T00:00:00Z``)."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Artifact:
    """A GitHub Actions artifact. ``id`` is only unique within its repository."""

    id: int
    name: str
    size_in_bytes: int
    created_at: datetime
    expired: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Artifact":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            size_in_bytes=int(data.get("size_in_bytes") or 0),
            created_at=parse_github_timestamp(data["created_at"]),
            expired=bool(data.get("expired", False)),
        )


@dataclass(frozen=True)
class Repository:
    """A repository and the artifacts currently known for it.

    ``artifact_count`` and ``total_size`` are derived from ``artifacts``
    whenever a Repository is constructed (including via
    ``dataclasses.replace``), so they always match the collection.
    """

    id: int
    name: str
    full_name: str
    artifacts: tuple[Artifact, ...] = ()
    loading: bool = True
    artifact_count: int = field(init=False)
    total_size: int = field(init=False)

    def __post_init__(self) -> None:
        artifacts = tuple(self.artifacts)
        object.__setattr__(self, "artifacts", artifacts)
        object.__setattr__(self, "artifact_count", len(artifacts))
        object.__setattr__(self, "total_size", sum(a.size_in_bytes for a in artifacts))

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        return cls(id=int(data["id"]), name=data["name"], full_name=data["full_name"])

    @property
    def owner_and_name(self) -> tuple[str, str]:
        owner, _, name = self.full_name.partition("/")
        return owner, name or self.name

    def find_artifact(self, artifact_id: int) -> Optional[Artifact]:
        return next((a for a in self.artifacts if a.id == artifact_id), None)

    def artifacts_newest_first(self) -> list[Artifact]:
        # sorted() is stable with reverse=True: equal timestamps keep provider order.
        return sorted(self.artifacts, key=lambda a: a.created_at, reverse=True)


@dataclass(frozen=True)
class LogEntry:
    id: int
    text: str
    timestamp: datetime


@dataclass
class RepositoryDeletionResult:
    """What a bulk delete actually did to one repository."""

    repository_id: int
    repository_name: str
    policy: DeletionPolicy
    kept: Optional[int] = None
    deleted: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "repository_id": self.repository_id,
            "repository_name": self.repository_name,
            "policy": self.policy.value,
            "kept": self.kept,
            "deleted": list(self.deleted),
            "failed": list(self.failed),
            "is_complete": self.is_complete,
        }


class DeletionInProgressError(Exception):
    """Raised when a bulk delete starts while another one is still running."""
