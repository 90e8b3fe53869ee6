"""Deletion engine: removes artifacts on GitHub and reconciles local state.

Deletes are sent strictly one at a time, both within a repository and
across a multi-repository selection. This is the only throttle on
mutating traffic towards GitHub; do not parallelise it.

Local state follows what GitHub confirmed: an artifact leaves the store
only after its DELETE call succeeded. Artifacts whose call failed stay
visible, so the user can see what is left and retry.
"""

import logging
from typing import Iterable, Optional

import httpx

from app.artifacts.types import (
    Artifact,
    DeleteOutcome,
    DeletionPolicy,
    Repository,
    RepositoryDeletionResult,
)
from app.artifacts.workspace import Workspace
from app.github import client as github_client

logger = logging.getLogger(__name__)


async def delete_one(
    workspace: Workspace,
    credential: str,
    repository_id: int,
    artifact_id: int,
) -> DeleteOutcome:
    """Delete a single artifact. Unknown ids are a silent no-op."""
    repository = workspace.store.get(repository_id)
    if repository is None:
        return DeleteOutcome.NOT_FOUND
    artifact = repository.find_artifact(artifact_id)
    if artifact is None:
        return DeleteOutcome.NOT_FOUND

    workspace.log.append(f'Deleting artifact "{artifact.name}" from {repository.name}...')
    if await _delete_artifact(workspace, credential, repository, artifact):
        return DeleteOutcome.DELETED
    return DeleteOutcome.FAILED


async def delete_many(
    workspace: Workspace,
    credential: str,
    repository_id: int,
    policy: DeletionPolicy,
) -> Optional[RepositoryDeletionResult]:
    """Delete a repository's artifacts under *policy*.

    Candidates come from the artifacts already in the store; nothing is
    re-fetched. Under KEEP_LATEST the newest artifact by ``created_at`` is
    spared (on a tie, the one GitHub listed first). Individual failures are
    recorded and skipped. Returns None for an unknown repository.
    """
    repository = workspace.store.get(repository_id)
    if repository is None:
        return None

    result = RepositoryDeletionResult(
        repository_id=repository.id,
        repository_name=repository.name,
        policy=policy,
    )
    if not repository.artifacts:
        return result

    candidates = list(repository.artifacts)
    if policy is DeletionPolicy.KEEP_LATEST:
        newest_first = repository.artifacts_newest_first()
        result.kept = newest_first[0].id
        candidates = newest_first[1:]

    workspace.log.append(f"Deleting {len(candidates)} artifacts from {repository.name}...")
    for artifact in candidates:
        if await _delete_artifact(workspace, credential, repository, artifact):
            result.deleted.append(artifact.id)
        else:
            result.failed.append(artifact.id)

    workspace.log.append(f"Finished processing {repository.name}")
    if result.failed:
        logger.warning(
            "Bulk delete on %s left %d artifact(s) after failures",
            repository.full_name, len(result.failed),
        )
    return result


async def delete_selected(
    workspace: Workspace,
    credential: str,
    policy: DeletionPolicy,
    repository_ids: Optional[Iterable[int]] = None,
) -> list[RepositoryDeletionResult]:
    """Run `delete_many` over several repositories, one repository at a time.

    Defaults to the workspace's current selection. The selection is cleared
    and the deleting flag dropped once every repository has been processed,
    whatever the individual outcomes.

    Raises DeletionInProgressError if another bulk deletion is running.
    """
    targets = list(workspace.selection if repository_ids is None else repository_ids)
    results: list[RepositoryDeletionResult] = []

    with workspace.deletion_guard():
        try:
            for repository_id in targets:
                result = await delete_many(workspace, credential, repository_id, policy)
                if result is not None:
                    results.append(result)
        finally:
            workspace.clear_selection()

    logger.info(
        "Bulk delete (%s) for %s: %d repositories, %d deleted, %d failed",
        policy.value,
        workspace.login,
        len(results),
        sum(len(r.deleted) for r in results),
        sum(len(r.failed) for r in results),
    )
    return results


async def _delete_artifact(
    workspace: Workspace,
    credential: str,
    repository: Repository,
    artifact: Artifact,
) -> bool:
    """Send one DELETE to GitHub; on success drop the artifact from the store."""
    owner, name = repository.owner_and_name
    try:
        await github_client.delete_artifact(credential, owner, name, artifact.id)
    except httpx.HTTPError as exc:
        logger.warning(
            "Deleting artifact %s from %s failed: %s", artifact.id, repository.full_name, exc
        )
        workspace.log.append(f'Error deleting artifact "{artifact.name}" from {repository.name}')
        return False

    workspace.store.discard_artifacts(repository.id, {artifact.id})
    workspace.log.append(f'Successfully deleted artifact "{artifact.name}" from {repository.name}')
    return True
