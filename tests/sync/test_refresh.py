"""Tests for writing remote workflow state back to local files."""

import json

import pytest
import yaml

from n8n_sync.errors import ValidationError
from n8n_sync.sync.engine import WorkflowSyncer
from n8n_sync.sync.refresh import (
    ensure_directory,
    refresh_directory,
    refresh_file,
    refresh_single,
    write_workflow,
)
from n8n_sync.sync.report import Reporter
from n8n_sync.workflow.files import build_index
from n8n_sync.workflow.models import Workflow


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _read(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestWriteWorkflow:
    """Test single-workflow write-back decisions."""

    def test_creates_new_file(self, tmp_path):
        report = Reporter()

        path = write_workflow(Workflow(id="1", name="Fresh Flow"), {}, tmp_path, report=report)

        assert path == tmp_path / "Fresh_Flow.json"
        assert _read(path)["originalName"] == "Fresh Flow"
        assert report.messages == [f"Creating workflow 'Fresh Flow' (ID: 1) to file: {path}"]

    def test_unchanged_file_is_left_alone(self, tmp_path):
        path = _write(tmp_path / "flow.json", {"id": "1", "name": "Flow", "active": True, "originalName": "Flow"})
        before = path.read_text(encoding="utf-8")
        report = Reporter()

        write_workflow(Workflow(id="1", name="Flow", active=True), build_index(tmp_path), tmp_path, report=report)

        assert path.read_text(encoding="utf-8") == before
        assert report.messages == [f"No changes for workflow 'Flow' (ID: 1) in file: {path}"]

    def test_file_without_marker_is_rewritten(self, tmp_path):
        path = _write(tmp_path / "flow.json", {"id": "1", "name": "Flow"})

        write_workflow(Workflow(id="1", name="Flow"), build_index(tmp_path), tmp_path)

        assert _read(path)["originalName"] == "Flow"

    def test_remote_rename_keeps_path_and_original_name(self, tmp_path):
        path = _write(tmp_path / "flow.json", {"id": "1", "name": "Flow", "originalName": "Flow"})

        result = write_workflow(Workflow(id="1", name="Renamed"), build_index(tmp_path), tmp_path)

        assert result == path
        data = _read(path)
        assert data["name"] == "Renamed"
        assert data["originalName"] == "Flow"
        assert not (tmp_path / "Renamed.json").exists()

    def test_conversion_writes_yaml_next_to_json(self, tmp_path):
        _write(tmp_path / "flow.json", {"id": "1", "name": "Flow", "originalName": "Flow"})

        path = write_workflow(Workflow(id="1", name="Flow"), build_index(tmp_path), tmp_path, output="yaml")

        assert path == tmp_path / "Flow.yaml"
        assert path.read_text(encoding="utf-8").startswith("---\n")
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["id"] == "1"

    def test_dry_run_writes_nothing(self, tmp_path):
        report = Reporter()

        path = write_workflow(Workflow(id="1", name="Flow"), {}, tmp_path, dry_run=True, report=report)

        assert not path.exists()
        assert report.messages == [f"Would create workflow 'Flow' (ID: 1) to file: {path}"]

    def test_workflow_without_id_is_skipped(self, tmp_path):
        report = Reporter()

        assert write_workflow(Workflow(name="Ghost"), {}, tmp_path, report=report) is None
        assert report.messages == ["Skipping workflow 'Ghost' with no ID"]
        assert list(tmp_path.iterdir()) == []


class TestRefreshDirectory:
    """Test directory refreshes against a fake instance."""

    @pytest.mark.asyncio
    async def test_only_tracked_workflows_without_all(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="1", name="Tracked"), Workflow(id="2", name="Remote Only")])
        _write(tmp_path / "tracked.json", {"id": "1", "name": "Old"})

        written = await refresh_directory(n8n, tmp_path)

        assert written == [tmp_path / "tracked.json"]
        assert _read(tmp_path / "tracked.json")["name"] == "Tracked"
        assert not (tmp_path / "Remote_Only.json").exists()
        assert n8n.calls_named("list_all") == []

    @pytest.mark.asyncio
    async def test_all_includes_remote_only(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="1", name="Tracked"), Workflow(id="2", name="Remote Only")])
        _write(tmp_path / "tracked.json", {"id": "1", "name": "Old"})

        await refresh_directory(n8n, tmp_path, refresh_all=True)

        assert (tmp_path / "Remote_Only.json").exists()
        assert _read(tmp_path / "tracked.json")["name"] == "Tracked"

    @pytest.mark.asyncio
    async def test_empty_directory_pulls_everything(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="1", name="One")])
        target = tmp_path / "new_dir"

        await refresh_directory(n8n, target, output="yaml")

        assert (target / "One.yaml").exists()

    @pytest.mark.asyncio
    async def test_missing_remote_workflow_is_warned_and_skipped(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="1", name="Alive")])
        _write(tmp_path / "alive.json", {"id": "1", "name": "Alive"})
        _write(tmp_path / "gone.json", {"id": "2", "name": "Gone"})
        report = Reporter()

        written = await refresh_directory(n8n, tmp_path, report=report)

        assert written == [tmp_path / "alive.json"]
        assert any(m.startswith("Warning: Could not fetch workflow with ID 2") for m in report.messages)
        assert _read(tmp_path / "gone.json") == {"id": "2", "name": "Gone"}

    @pytest.mark.asyncio
    async def test_dry_run_does_not_create_directory(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="1", name="One")])
        target = tmp_path / "later"
        report = Reporter()

        await refresh_directory(n8n, target, dry_run=True, report=report)

        assert not target.exists()
        assert f"Would create directory: {target}" in report.messages


class TestSyncThenRefresh:
    """A created workflow is written back to the file it came from."""

    @pytest.mark.asyncio
    async def test_created_id_is_written_to_same_file(self, tmp_path, fake_n8n):
        n8n = fake_n8n()
        source = _write(tmp_path / "a.json", {"name": "A"})

        result = await WorkflowSyncer(n8n).sync_directory(tmp_path)
        await refresh_directory(n8n, tmp_path, known_files=result.synced_files)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.json"]
        data = _read(source)
        assert data["id"] == "100"
        assert data["name"] == "A"
        assert data["originalName"] == "A"


class TestSingleFile:
    """Test refreshing one fixed file."""

    def test_refresh_file_keeps_existing_original_name(self, tmp_path):
        path = _write(tmp_path / "custom.json", {"id": "1", "name": "Old", "originalName": "First"})

        refresh_file(Workflow(id="1", name="New"), path)

        assert _read(path)["originalName"] == "First"
        assert _read(path)["name"] == "New"

    @pytest.mark.asyncio
    async def test_refresh_single_uses_file_id(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="5", name="Five", settings={"v": 2})])
        path = _write(tmp_path / "five.json", {"id": "5", "name": "Five"})

        await refresh_single(n8n, path)

        assert _read(path)["settings"] == {"v": 2}

    @pytest.mark.asyncio
    async def test_refresh_single_by_name(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="5", name="Five")])
        path = tmp_path / "out" / "five.yaml"

        await refresh_single(n8n, path, workflow_name="Five")

        assert yaml.safe_load(path.read_text(encoding="utf-8"))["id"] == "5"

    @pytest.mark.asyncio
    async def test_refresh_single_converts_with_output(self, tmp_path, fake_n8n):
        n8n = fake_n8n([Workflow(id="5", name="Five")])
        _write(tmp_path / "five.json", {"id": "5", "name": "Five"})

        path = await refresh_single(n8n, tmp_path / "five.json", output="yaml")

        assert path == tmp_path / "five.yaml"
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["id"] == "5"

    @pytest.mark.asyncio
    async def test_refresh_single_requires_identity(self, tmp_path, fake_n8n):
        with pytest.raises(ValidationError):
            await refresh_single(fake_n8n(), tmp_path / "missing.json")


def test_ensure_directory_creates(tmp_path):
    report = Reporter()
    target = tmp_path / "a" / "b"

    ensure_directory(target, dry_run=False, report=report)

    assert target.is_dir()
    assert report.messages == [f"Created directory: {target}"]
