"""Repository aggregator: builds a user's dashboard state from GitHub.

A load runs in two phases:

1. List the user's repositories (most recently updated first) and publish
   them immediately, each marked ``loading`` with no artifacts, so the
   dashboard can render placeholders without waiting on N more calls.
2. List artifacts for every repository concurrently, at most
   ``artifact_fetch_concurrency`` at a time. Each result replaces only its
   own repository. A failed listing degrades that repository to empty and
   never affects the others.

The load is finished only once every per-repository fetch has settled.
Nothing is retried; failures show up in the activity log, and the user
can reload.
"""

import asyncio
import logging
from typing import Optional

import httpx

from app.artifacts.formatting import format_bytes
from app.artifacts.types import Artifact, Repository
from app.artifacts.workspace import Workspace
from app.core.config import Settings, get_settings
from app.github import client as github_client

logger = logging.getLogger(__name__)

# Expected fetch failures: transport and HTTP status errors, plus payloads
# missing the fields we read. These are logged without a traceback; any
# other error is logged with one. Either way the fetch degrades to empty.
FETCH_ERRORS = (httpx.HTTPError, KeyError, TypeError, ValueError)


async def load_all(
    workspace: Workspace,
    credential: Optional[str],
    settings: Optional[Settings] = None,
) -> None:
    """Rebuild *workspace* from GitHub. No-op without a credential."""
    if not credential:
        logger.debug("load_all skipped for %s: no credential", workspace.login)
        return

    settings = settings or get_settings()
    log = workspace.log

    log.clear()
    workspace.loading = True
    try:
        log.append("Fetching repositories...")
        try:
            raw_repositories = await github_client.list_repositories_for_user(
                credential,
                per_page=settings.repository_page_size,
                max_pages=settings.repository_max_pages,
                timeout=settings.github_timeout_seconds,
            )
            repositories = [Repository.from_api(r) for r in raw_repositories]
        except Exception as exc:
            if isinstance(exc, FETCH_ERRORS):
                logger.warning("Repository listing failed for %s: %s", workspace.login, exc)
            else:
                logger.exception("Unexpected error listing repositories for %s", workspace.login)
            workspace.store.clear()
            log.append("Error fetching repositories")
            return

        workspace.store.replace_all(repositories)
        log.append(f"Found {len(repositories)} repositories")

        semaphore = asyncio.Semaphore(settings.artifact_fetch_concurrency)
        await asyncio.gather(
            *(
                _load_artifacts(workspace, credential, repository, semaphore, settings)
                for repository in repositories
            ),
            return_exceptions=True,
        )
        log.append("Finished fetching all artifacts")
        logger.info(
            "Loaded %d repositories for %s", len(repositories), workspace.login
        )
    finally:
        workspace.loading = False


async def _load_artifacts(
    workspace: Workspace,
    credential: str,
    repository: Repository,
    semaphore: asyncio.Semaphore,
    settings: Settings,
) -> None:
    """Fetch one repository's artifacts and merge them into the store."""
    async with semaphore:
        workspace.log.append(f"Fetching artifacts for {repository.name}...")
        owner, name = repository.owner_and_name
        try:
            raw_artifacts = await github_client.list_artifacts(
                credential,
                owner,
                name,
                per_page=settings.artifact_page_size,
                max_pages=settings.artifact_max_pages,
                timeout=settings.github_timeout_seconds,
            )
            artifacts = tuple(Artifact.from_api(a) for a in raw_artifacts)
        except Exception as exc:
            if isinstance(exc, FETCH_ERRORS):
                logger.warning("Artifact listing failed for %s: %s", repository.full_name, exc)
            else:
                logger.exception("Unexpected error listing artifacts for %s", repository.full_name)
            workspace.store.update(repository.id, artifacts=(), loading=False)
            workspace.log.append(f"Error fetching artifacts for {repository.name}")
            return

    updated = workspace.store.update(repository.id, artifacts=artifacts, loading=False)
    total_size = updated.total_size if updated else sum(a.size_in_bytes for a in artifacts)
    workspace.log.append(
        f"Found {len(artifacts)} artifacts in {repository.name} ({format_bytes(total_size)})"
    )
