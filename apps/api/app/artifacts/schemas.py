"""Pydantic schemas for dashboard endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.artifacts.formatting import format_bytes
from app.artifacts.types import (
    DeleteOutcome,
    DeletionPolicy,
    LogEntry,
    Repository,
    RepositoryDeletionResult,
)


class ArtifactResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    size_in_bytes: int
    created_at: datetime
    expired: bool


class RepositorySummary(BaseModel):
    """One dashboard card. ``loading`` stays true until its artifacts arrive."""

    id: int
    name: str
    full_name: str
    artifact_count: int
    total_size: int
    total_size_display: str
    loading: bool

    @classmethod
    def from_repository(cls, repository: Repository) -> "RepositorySummary":
        return cls(
            id=repository.id,
            name=repository.name,
            full_name=repository.full_name,
            artifact_count=repository.artifact_count,
            total_size=repository.total_size,
            total_size_display=format_bytes(repository.total_size),
            loading=repository.loading,
        )


class RepositoryDetail(RepositorySummary):
    """A repository with its artifacts, newest first."""

    artifacts: list[ArtifactResponse]

    @classmethod
    def from_repository(cls, repository: Repository) -> "RepositoryDetail":
        summary = RepositorySummary.from_repository(repository)
        return cls(
            **summary.model_dump(),
            artifacts=[
                ArtifactResponse.model_validate(a) for a in repository.artifacts_newest_first()
            ],
        )


class RepositoryListResponse(BaseModel):
    repositories: list[RepositorySummary]
    count: int
    loading: bool
    deleting: bool
    selected: list[int]


class LoadResponse(BaseModel):
    started: bool


class DeleteArtifactResponse(BaseModel):
    repository_id: int
    artifact_id: int
    outcome: DeleteOutcome
    repository: Optional[RepositorySummary] = None


class PurgeRequest(BaseModel):
    policy: DeletionPolicy = Field(
        default=DeletionPolicy.ALL,
        description="'all' deletes every artifact; 'keep_latest' spares the newest one",
    )


class RepositoryDeletionResponse(BaseModel):
    repository_id: int
    repository_name: str
    policy: DeletionPolicy
    kept: Optional[int]
    deleted: list[int]
    failed: list[int]
    is_complete: bool

    @classmethod
    def from_result(cls, result: RepositoryDeletionResult) -> "RepositoryDeletionResponse":
        return cls.model_validate(result.to_dict())


class BulkDeletionResponse(BaseModel):
    results: list[RepositoryDeletionResponse]
    deleted_count: int
    failed_count: int


class SelectionRequest(BaseModel):
    repository_ids: list[int]


class SelectionResponse(BaseModel):
    selected: list[int]


class LogEntryResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    text: str
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: LogEntry) -> "LogEntryResponse":
        return cls.model_validate(entry)


class LogResponse(BaseModel):
    entries: list[LogEntryResponse]
    count: int
