"""Per-user dashboard state.

A Workspace bundles everything the dashboard shows for one signed-in
GitHub user: the repository store, the activity log, the repository
selection, and the two in-flight flags (loading, deleting). Workspaces
live in process memory only; signing out or restarting the API discards
them and the next load rebuilds them from GitHub.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from app.artifacts.activity import ActivityLog
from app.artifacts.store import RepositoryStore
from app.artifacts.types import DeletionInProgressError


@dataclass
class Workspace:
    login: str
    store: RepositoryStore = field(default_factory=RepositoryStore)
    log: ActivityLog = field(init=False)
    loading: bool = False
    deleting: bool = False
    _selection: dict[int, None] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.log = ActivityLog(owner=self.login)

    @property
    def busy(self) -> bool:
        return self.loading or self.deleting

    @property
    def selection(self) -> list[int]:
        """Selected repository ids, in the order they were selected."""
        return list(self._selection)

    def select(self, repository_ids: Iterable[int]) -> list[int]:
        """Replace the selection. Ids not in the store are dropped."""
        known = self.store.ids()
        self._selection = dict.fromkeys(rid for rid in repository_ids if rid in known)
        return self.selection

    def clear_selection(self) -> None:
        self._selection = {}

    @contextmanager
    def deletion_guard(self) -> Iterator[None]:
        """Mark a bulk deletion as running for the duration of the block."""
        if self.deleting:
            raise DeletionInProgressError(f"A deletion is already running for {self.login}")
        self.deleting = True
        try:
            yield
        finally:
            self.deleting = False


class WorkspaceRegistry:
    """Workspaces keyed by GitHub login."""

    def __init__(self) -> None:
        self._workspaces: dict[str, Workspace] = {}

    def __contains__(self, login: str) -> bool:
        return login in self._workspaces

    def get_or_create(self, login: str) -> Workspace:
        workspace = self._workspaces.get(login)
        if workspace is None:
            workspace = self._workspaces[login] = Workspace(login=login)
        return workspace

    def discard(self, login: str) -> None:
        self._workspaces.pop(login, None)
