"""Owned in-memory store for a user's repository view state.

Every mutation goes through `RepositoryStore.update` (or the bulk
`replace_all` / `clear` used when a load starts or fails). Updates are
plain synchronous functions that build a new tuple from the current one;
with no ``await`` between reading and writing, an update cannot interleave
with another coroutine's update on the same event loop, so concurrent
artifact fetches each land their own repository without losing the
others' results.
"""

import dataclasses
import logging
from typing import Iterable, Optional

from app.artifacts.types import Repository

logger = logging.getLogger(__name__)


class RepositoryStore:
    def __init__(self) -> None:
        self._repositories: tuple[Repository, ...] = ()

    def __len__(self) -> int:
        return len(self._repositories)

    def all(self) -> list[Repository]:
        return list(self._repositories)

    def get(self, repository_id: int) -> Optional[Repository]:
        return next((r for r in self._repositories if r.id == repository_id), None)

    def ids(self) -> set[int]:
        return {r.id for r in self._repositories}

    def replace_all(self, repositories: Iterable[Repository]) -> None:
        self._repositories = tuple(repositories)

    def clear(self) -> None:
        self._repositories = ()

    def update(self, repository_id: int, **changes) -> Optional[Repository]:
        """Apply *changes* to one repository and return the new value.

        Unknown ids are ignored (returns None): a late fetch result for a
        repository dropped by a newer load has nowhere to go. Passing
        ``artifacts`` recomputes ``artifact_count`` and ``total_size`` as
        part of the same replacement.
        """
        updated: Optional[Repository] = None
        repositories = []
        for repository in self._repositories:
            if repository.id == repository_id:
                updated = dataclasses.replace(repository, **changes)
                repositories.append(updated)
            else:
                repositories.append(repository)

        if updated is None:
            logger.debug("store: ignoring update for unknown repository %s", repository_id)
            return None

        self._repositories = tuple(repositories)
        return updated

    def discard_artifacts(self, repository_id: int, artifact_ids: set[int]) -> Optional[Repository]:
        """Remove the given artifacts from one repository, keeping the rest in order."""
        current = self.get(repository_id)
        if current is None:
            return None
        remaining = tuple(a for a in current.artifacts if a.id not in artifact_ids)
        return self.update(repository_id, artifacts=remaining)
