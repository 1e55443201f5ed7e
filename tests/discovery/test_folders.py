"""Tests for vnext_sync.discovery.folders."""

from __future__ import annotations

import pytest

from vnext_sync.core.errors import ConfigError
from vnext_sync.discovery.config import ComponentType, ProjectConfigLoader
from vnext_sync.discovery.folders import DiscoveredFolders, discover_components, list_discovered


class TestDiscoverComponents:
    def test_only_existing_configured_folders(self, project):
        found = discover_components(project, ProjectConfigLoader(project).load())
        assert set(found) == {ComponentType.WORKFLOWS, ComponentType.TASKS, ComponentType.SCHEMAS}
        assert found[ComponentType.TASKS] == (project / "core" / "Tasks").resolve()

    def test_missing_folder_is_left_out(self, project):
        (project / "core" / "Schemas").rmdir()
        found = discover_components(project, ProjectConfigLoader(project).load())
        assert ComponentType.SCHEMAS not in found

    def test_unconfigured_folders_are_never_scanned(self, project):
        (project / "core" / "Views").mkdir()
        found = discover_components(project, ProjectConfigLoader(project).load())
        assert ComponentType.VIEWS not in found

    def test_list_discovered_reports_missing(self, project):
        (project / "core" / "Schemas").rmdir()
        entries = {e.component_type: e for e in list_discovered(project, ProjectConfigLoader(project).load())}
        assert entries[ComponentType.TASKS].found
        assert not entries[ComponentType.SCHEMAS].found
        assert entries[ComponentType.SCHEMAS].folder_name == "Schemas"


class TestDiscoveredFolders:
    def test_owner_of_prefers_deepest_folder(self, tmp_path):
        outer = tmp_path / "Workflows"
        inner = outer / "Tasks"
        inner.mkdir(parents=True)
        folders = DiscoveredFolders({ComponentType.WORKFLOWS: outer, ComponentType.TASKS: inner})
        assert folders.owner_of(inner / "t.json") is ComponentType.TASKS
        assert folders.owner_of(outer / "w.json") is ComponentType.WORKFLOWS
        assert folders.owner_of(tmp_path / "x.json") is None

    def test_require_any(self):
        with pytest.raises(ConfigError, match="No component folders"):
            DiscoveredFolders({}).require_any()
