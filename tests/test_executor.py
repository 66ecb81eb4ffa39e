# =============================================================================
# CROSSDECK APPLY EXECUTOR TESTS
# =============================================================================
# Tests for manifest writes, transient applies and imperative commands.
# =============================================================================

from unittest.mock import patch

import pytest
import yaml

from crossdeck.core import builder
from crossdeck.core.executor import ApplyExecutor, serialize
from crossdeck.domain.models import Action, ResourceKind
from crossdeck.errors import ExecutionError, ValidationError


@pytest.fixture
def executor(settings, runner):
    return ApplyExecutor(settings, runner)


@pytest.fixture
def manifest(vm_params):
    return builder.build(ResourceKind.INSTANCE, "teamA", vm_params)


class TestSerialize:
    """Tests for YAML serialization."""

    def test_envelope_first(self, manifest):
        """apiVersion / kind / metadata lead the document."""
        text = serialize(manifest)
        keys = [line.split(":")[0] for line in text.splitlines() if not line.startswith(" ")]
        assert keys == ["apiVersion", "kind", "metadata", "spec"]

    def test_parses_back(self, manifest):
        assert yaml.safe_load(serialize(manifest)) == manifest.to_document()


class TestApply:
    """Tests for ApplyExecutor.apply."""

    def test_writes_then_applies(self, executor, runner, manifest, settings):
        path = settings.manifest_path("teamA", "vm1")
        result = executor.apply(manifest, path)

        assert path.is_file()
        assert runner.applied == [path]
        # The file was on disk with the full manifest when apply ran
        assert runner.documents[0] == manifest.to_document()
        assert result.kind == "InstanceV2"
        assert result.name == "vm1"
        assert result.output == "resource configured\n"

    def test_overwrites_existing_file(self, executor, runner, manifest, settings):
        path = settings.manifest_path("teamA", "vm1")
        path.parent.mkdir(parents=True)
        path.write_text("stale: true\n")

        executor.apply(manifest, path)
        assert yaml.safe_load(path.read_text()) == manifest.to_document()

    def test_apply_failure_keeps_stderr(self, executor, runner, manifest, settings):
        runner.apply_error = ExecutionError(
            "Command exited with status 1", exit_status=1, stderr="admission webhook denied"
        )
        with pytest.raises(ExecutionError) as exc_info:
            executor.apply(manifest, settings.manifest_path("teamA", "vm1"))
        assert exc_info.value.stderr == "admission webhook denied"

    def test_write_failure(self, executor, runner, manifest, settings):
        with patch("pathlib.Path.write_text", side_effect=PermissionError("read-only")):
            with pytest.raises(ExecutionError) as exc_info:
                executor.apply(manifest, settings.manifest_path("teamA", "vm1"))
        assert "read-only" in exc_info.value.stderr
        assert runner.applied == []


class TestApplyTransient:
    """Tests for scratch-file applies."""

    def test_file_removed_after_apply(self, executor, runner, manifest, settings):
        result = executor.apply_transient(manifest, "vm1-block.yaml")

        assert result.path == settings.scratch_dir / "vm1-block.yaml"
        assert runner.documents[0] == manifest.to_document()
        assert not result.path.exists()

    def test_file_removed_after_failure(self, executor, runner, manifest, settings):
        runner.apply_error = ExecutionError("Command exited with status 1", exit_status=1)
        with pytest.raises(ExecutionError):
            executor.apply_transient(manifest, "namespace-teamA.yaml")
        assert not (settings.scratch_dir / "namespace-teamA.yaml").exists()


class TestCommandFor:
    """Tests for imperative command lines."""

    def test_start(self, executor):
        argv = executor.command_for(Action.START, "vm1", "teamA")
        assert argv == ["bash", "-c", "source /opt/admin.sh && openstack server start vm1"]

    def test_stop(self, executor):
        argv = executor.command_for("stop", "vm1", "teamA")
        assert argv[2].endswith("openstack server stop vm1")

    def test_delete_through_admin_shell(self, executor):
        argv = executor.command_for(Action.DELETE, "vm1", "teamA")
        assert argv[2] == (
            "source /opt/admin.sh && kubectl delete instancev2 vm1 --namespace teamA"
        )

    @pytest.mark.parametrize("target", ["vm1; rm -rf /", "--all", "-A", "../vm1", "a/b"])
    def test_unsafe_target_rejected(self, executor, target):
        """Flags, paths and shell metacharacters never become arguments."""
        with pytest.raises(ValidationError) as exc_info:
            executor.command_for(Action.REMOVE, target, "teamA")
        assert exc_info.value.fields == ["target"]

    def test_unsafe_tenant_rejected(self, executor):
        with pytest.raises(ValidationError) as exc_info:
            executor.command_for(Action.SCALE, "web", "--all-namespaces", replicas=1)
        assert exc_info.value.fields == ["tenant"]

    def test_scale(self, executor):
        argv = executor.command_for(Action.SCALE, "web", "teamA", replicas=3)
        assert argv == ["kubectl", "scale", "deployment/web", "--replicas=3", "-n", "teamA"]

    def test_scale_to_zero(self, executor):
        argv = executor.command_for(Action.SCALE, "web", "teamA", replicas=0)
        assert "--replicas=0" in argv

    def test_scale_without_replicas(self, executor):
        with pytest.raises(ValidationError):
            executor.command_for(Action.SCALE, "web", "teamA")

    def test_remove(self, executor):
        argv = executor.command_for(Action.REMOVE, "vm1", "teamA")
        assert argv == ["kubectl", "delete", "instancev2", "vm1", "-n", "teamA"]

    def test_unknown_action(self, executor):
        with pytest.raises(ValidationError) as exc_info:
            executor.command_for("reboot", "vm1", "teamA")
        assert "reboot" in str(exc_info.value)


class TestRun:
    """Tests for ApplyExecutor.run."""

    def test_captures_stdout(self, executor, runner):
        runner.action_stdout = "Request to start server vm1 has been accepted.\n"
        result = executor.run(Action.START, "vm1", "teamA")
        assert result.action == "start"
        assert result.target == "vm1"
        assert result.stdout == "Request to start server vm1 has been accepted.\n"
        assert len(runner.mutating_actions) == 1

    def test_failure_propagates(self, executor, runner):
        runner.action_error = ExecutionError(
            "Command exited with status 1", exit_status=1, stderr="Forbidden"
        )
        with pytest.raises(ExecutionError) as exc_info:
            executor.run(Action.REMOVE, "vm1", "teamA")
        assert exc_info.value.exit_status == 1
