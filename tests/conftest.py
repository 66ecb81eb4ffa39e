"""
Pytest configuration and fixtures for Crossdeck tests.
"""

import json
import sys
from pathlib import Path

import pytest
import yaml

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from crossdeck.config import Settings
from crossdeck.core.orchestrator import ActionOrchestrator
from crossdeck.domain.models import TASK_STATE_FIELD
from crossdeck.errors import ExecutionError
from crossdeck.infra.runner import CommandResult


class FakeRunner:
    """
    Recording stand-in for the Command Runner.

    - Status queries (`server show`, `get namespace`) answer from
      server_status / namespace_status (or the raw *_output overrides).
    - Every other command is recorded and answered with action_stdout,
      or raises action_error when set.
    - Applies record the path and the YAML that was on disk at apply time.
    """

    def __init__(self) -> None:
        self.applied: list[Path] = []
        self.documents: list[dict] = []
        self.actions: list[list[str]] = []

        self.server_status: dict = {"name": "vm1", "status": "ACTIVE", TASK_STATE_FIELD: None}
        self.status_output: str | None = None
        self.status_error: ExecutionError | None = None
        self.namespace_status: dict = {"kind": "Namespace", "metadata": {"name": "teamA"}}
        self.namespace_error: ExecutionError | None = None

        self.apply_stdout = "resource configured\n"
        self.apply_error: ExecutionError | None = None
        self.action_stdout = "done\n"
        self.action_error: ExecutionError | None = None

    def apply_manifest(self, path: Path) -> CommandResult:
        path = Path(path)
        self.applied.append(path)
        self.documents.append(yaml.safe_load(path.read_text()))
        if self.apply_error:
            raise self.apply_error
        return CommandResult(["kubectl", "apply", "-f", str(path)], 0, stdout=self.apply_stdout)

    def run_action(self, argv: list[str]) -> CommandResult:
        line = " ".join(argv)
        if "server show" in line:
            self.actions.append(list(argv))
            if self.status_error:
                raise self.status_error
            output = self.status_output
            if output is None:
                output = json.dumps(self.server_status)
            return CommandResult(list(argv), 0, stdout=output)

        if "get namespace" in line:
            self.actions.append(list(argv))
            if self.namespace_error:
                raise self.namespace_error
            return CommandResult(list(argv), 0, stdout=json.dumps(self.namespace_status))

        self.actions.append(list(argv))
        if self.action_error:
            raise self.action_error
        return CommandResult(list(argv), 0, stdout=self.action_stdout)

    @property
    def mutating_actions(self) -> list[list[str]]:
        """Recorded commands other than status queries."""
        return [
            argv for argv in self.actions
            if "server show" not in " ".join(argv) and "get namespace" not in " ".join(argv)
        ]


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary directory."""
    return Settings(
        manifest_dir=tmp_path / "manifests",
        scratch_dir=tmp_path / "scratch",
        admin_script="/opt/admin.sh",
    )


@pytest.fixture
def runner():
    """A fresh recording runner."""
    return FakeRunner()


@pytest.fixture
def orchestrator(settings, runner):
    """Orchestrator wired to the fake runner."""
    return ActionOrchestrator(settings, runner)


@pytest.fixture
def client(orchestrator):
    """TestClient whose orchestrator dependency is the fixture orchestrator."""
    from fastapi.testclient import TestClient

    from crossdeck.api import app, get_orchestrator

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def vm_params():
    """Valid VM creation parameters (camelCase, as the API receives them)."""
    return {"name": "vm1", "imageId": "img1", "flavorId": "f1", "networkId": "net1"}
