# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# THE APPLY EXECUTOR
# -----------------------------------------------------------------------------
# Responsibility: The single point where state changes.
#
# - apply():           write the manifest to its file, then `kubectl apply -f`
# - apply_transient(): same, but in the scratch dir, file removed afterwards
# - run():             imperative start / stop / delete / scale commands
#
# "Applied" means accepted for reconciliation. The executor does not wait
# for the reconciler to converge; callers poll status for that.
# -----------------------------------------------------------------------------

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import yaml
from rich.console import Console

from crossdeck.config import Settings
from crossdeck.core.builder import validate_name
from crossdeck.domain.models import Action, ResourceManifest
from crossdeck.errors import ExecutionError, ValidationError
from crossdeck.infra.runner import CommandRunner, admin_shell_command, openstack_command

console = Console()


@dataclass
class ApplyResult:
    """A manifest was written and handed to the reconciler."""

    kind: str
    name: str
    path: Path
    output: str = ""


@dataclass
class ExecutionResult:
    """An imperative command ran to completion."""

    action: str
    target: str
    stdout: str = ""
    stderr: str = ""


def serialize(manifest: ResourceManifest) -> str:
    """Manifest as a YAML document, keys in manifest order."""
    return yaml.safe_dump(manifest.to_document(), sort_keys=False, default_flow_style=False)


class ApplyExecutor:
    """
    Writes manifests and drives the Command Runner.

    Args:
        settings: Scratch dir and binary names.
        runner: CommandRunner used for every external call.
    """

    def __init__(self, settings: Settings, runner: CommandRunner) -> None:
        self._settings = settings
        self._runner = runner

    def _write(self, manifest: ResourceManifest, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(serialize(manifest))
        except OSError as e:
            raise ExecutionError(
                f"Failed to write manifest to {path}: {e}", exit_status=-1, stderr=str(e)
            ) from e

    def apply(self, manifest: ResourceManifest, path: Path) -> ApplyResult:
        """
        Persist manifest at path (overwriting) and invoke the apply verb.

        Raises:
            ExecutionError: Write failed, or kubectl could not run / exited != 0.
        """
        console.print(
            f"[cyan][EXECUTOR] Applying {manifest.kind} "
            f"{manifest.namespace or '-'}/{manifest.name} -> {path}[/cyan]"
        )
        self._write(manifest, path)
        result = self._runner.apply_manifest(path)
        console.print(f"[green][EXECUTOR] Accepted: {manifest.kind} {manifest.name}[/green]")
        return ApplyResult(kind=manifest.kind, name=manifest.name, path=path, output=result.stdout)

    @contextmanager
    def _scratch_file(self, filename: str) -> Iterator[Path]:
        path = self._settings.scratch_dir / filename
        try:
            yield path
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass

    def apply_transient(self, manifest: ResourceManifest, filename: str) -> ApplyResult:
        """Apply through a scratch file that is removed once the call returns."""
        with self._scratch_file(filename) as path:
            return self.apply(manifest, path)

    def command_for(
        self,
        action: Action | str,
        target: str,
        tenant: str,
        replicas: int | None = None,
    ) -> list[str]:
        """
        Command line for an imperative action.

        Raises:
            ValidationError: Unknown action, scale without a replica count, or
                a target / tenant that could be read as a flag or a path.
        """
        try:
            action = Action(action)
        except ValueError:
            raise ValidationError(f"Unsupported action '{action}'.") from None
        validate_name(target, "target")
        validate_name(tenant, "tenant")

        kubectl = self._settings.kubectl_bin
        if action is Action.START:
            return openstack_command(self._settings, "server", "start", target)
        if action is Action.STOP:
            return openstack_command(self._settings, "server", "stop", target)
        if action is Action.DELETE:
            return admin_shell_command(
                self._settings,
                [kubectl, "delete", "instancev2", target, "--namespace", tenant],
            )
        if action is Action.SCALE:
            if replicas is None:
                raise ValidationError.missing(["replicas"])
            return [kubectl, "scale", f"deployment/{target}", f"--replicas={replicas}", "-n", tenant]
        return [kubectl, "delete", "instancev2", target, "-n", tenant]

    def run(
        self,
        action: Action | str,
        target: str,
        tenant: str,
        replicas: int | None = None,
    ) -> ExecutionResult:
        """
        Run an imperative command, capturing stdout and stderr separately.

        Raises:
            ValidationError: See command_for().
            ExecutionError: Process could not start or exited non-zero.
        """
        argv = self.command_for(action, target, tenant, replicas=replicas)
        action_name = Action(action).value
        console.print(f"[cyan][EXECUTOR] {action_name} {tenant}/{target}[/cyan]")
        result = self._runner.run_action(argv)
        return ExecutionResult(
            action=action_name,
            target=target,
            stdout=result.stdout,
            stderr=result.stderr,
        )
