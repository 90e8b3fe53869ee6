"""Tests for Workspace and WorkspaceRegistry."""

import pytest

from app.artifacts.types import DeletionInProgressError
from app.artifacts.workspace import Workspace, WorkspaceRegistry
from tests.conftest import make_repository


class TestSelection:
    def test_select_drops_unknown_ids_and_keeps_order(self, workspace: Workspace):
        workspace.store.replace_all([make_repository(1, "a"), make_repository(2, "b"), make_repository(3, "c")])

        assert workspace.select([3, 99, 1, 3]) == [3, 1]
        assert workspace.selection == [3, 1]

    def test_select_replaces_previous_selection(self, workspace: Workspace):
        workspace.store.replace_all([make_repository(1, "a"), make_repository(2, "b")])
        workspace.select([1])

        assert workspace.select([2]) == [2]

    def test_clear_selection(self, workspace: Workspace):
        workspace.store.replace_all([make_repository(1, "a")])
        workspace.select([1])
        workspace.clear_selection()

        assert workspace.selection == []


class TestDeletionGuard:
    def test_sets_and_clears_flag(self, workspace: Workspace):
        with workspace.deletion_guard():
            assert workspace.deleting is True
            assert workspace.busy is True
        assert workspace.deleting is False

    def test_clears_flag_on_error(self, workspace: Workspace):
        with pytest.raises(RuntimeError):
            with workspace.deletion_guard():
                raise RuntimeError("boom")
        assert workspace.deleting is False

    def test_rejects_nested_deletion(self, workspace: Workspace):
        with workspace.deletion_guard():
            with pytest.raises(DeletionInProgressError):
                with workspace.deletion_guard():
                    pass
            assert workspace.deleting is True


class TestWorkspaceRegistry:
    def test_get_or_create_returns_same_workspace(self):
        registry = WorkspaceRegistry()

        first = registry.get_or_create("octocat")

        assert registry.get_or_create("octocat") is first
        assert "octocat" in registry

    def test_workspaces_are_isolated_per_login(self):
        registry = WorkspaceRegistry()
        registry.get_or_create("octocat").log.append("hello")

        assert len(registry.get_or_create("hubot").log) == 0

    def test_discard(self):
        registry = WorkspaceRegistry()
        registry.get_or_create("octocat")
        registry.discard("octocat")
        registry.discard("never-created")

        assert "octocat" not in registry
